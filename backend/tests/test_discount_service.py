# Overview: Pytest coverage for role-template and calendar discount resolution.

from datetime import date
from decimal import Decimal

import pytest

from venuebook.services import discount_service
from venuebook.services.discount_service import compute_discount
from venuebook.validation import ValidationError


CHRISTMAS = date(2026, 12, 25)


class TestComputeDiscount:

    def test_percentage(self):
        assert compute_discount("percentage", 10, Decimal("100000")) == Decimal("10000.00")

    def test_percentage_rounds_half_up_to_cents(self):
        assert compute_discount("percentage", 15, Decimal("0.10")) == Decimal("0.02")

    def test_fixed_is_clamped_to_amount(self):
        assert compute_discount("fixed", 150000, Decimal("100000")) == Decimal("100000.00")

    def test_free_discounts_everything(self):
        assert compute_discount("free", 0, Decimal("75000")) == Decimal("75000.00")

    def test_none_and_zero_amount(self):
        assert compute_discount("none", 50, Decimal("100")) == Decimal("0.00")
        assert compute_discount("percentage", 50, Decimal("0")) == Decimal("0.00")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            compute_discount("bogus", 10, Decimal("100"))


class TestRoleDiscount:

    def test_applies_template(self, db_session, company_a, store_a, make_template):
        student = make_template(company_a, "Student", "percentage", 50)

        result = discount_service.resolve_role_discount(
            company_a.id, store_a.id, student.id, Decimal("100000"), as_of=CHRISTMAS
        )

        assert result.applied
        assert result.discount_amount == Decimal("50000.00")
        assert result.discounted_amount == Decimal("50000.00")
        assert result.provenance["source"] == "role_template"
        assert result.provenance["applied"][0]["id"] == student.id
        assert result.provenance["applied"][0]["scope"] == "company"

    def test_no_template(self, db_session, company_a, store_a):
        result = discount_service.resolve_role_discount(company_a.id, store_a.id, None, Decimal("100"))
        assert not result.applied
        assert result.discount_amount == Decimal("0.00")
        assert result.provenance["reason"] == "no_template"

    def test_inactive_template_gives_no_discount(self, db_session, company_a, store_a, make_template):
        template = make_template(company_a, "Senior", "percentage", 20, is_active=False)
        result = discount_service.resolve_role_discount(company_a.id, store_a.id, template.id, Decimal("100"))
        assert result.provenance["reason"] == "template_inactive"
        assert result.discounted_amount == Decimal("100.00")

    def test_out_of_scope_store(self, db_session, company_a, store_a, store_a2, make_template):
        template = make_template(company_a, "Member", "fixed", 10000, store_ids=[store_a2.id])
        result = discount_service.resolve_role_discount(company_a.id, store_a.id, template.id, Decimal("100000"))
        assert result.provenance["reason"] == "template_out_of_scope"

    def test_outside_validity_window(self, db_session, company_a, store_a, make_template):
        template = make_template(
            company_a, "Summer Kid", "percentage", 25,
            valid_from=date(2026, 6, 1), valid_to=date(2026, 8, 31),
        )
        inside = discount_service.resolve_role_discount(
            company_a.id, store_a.id, template.id, Decimal("100000"), as_of=date(2026, 7, 15)
        )
        outside = discount_service.resolve_role_discount(
            company_a.id, store_a.id, template.id, Decimal("100000"), as_of=date(2026, 9, 1)
        )
        assert inside.discount_amount == Decimal("25000.00")
        assert outside.provenance["reason"] == "template_not_valid"

    def test_other_company_template_not_found(self, db_session, company_a, company_b, store_a, make_template):
        foreign = make_template(company_b, "Student", "percentage", 50)
        result = discount_service.resolve_role_discount(company_a.id, store_a.id, foreign.id, Decimal("100"))
        assert result.provenance["reason"] == "template_not_found"

    def test_store_specific_twin_shadows_company_wide(
        self, db_session, company_a, store_a, store_a2, make_template
    ):
        company_wide = make_template(company_a, "Student", "percentage", 50)
        local = make_template(company_a, "Student", "percentage", 30, store_ids=[store_a.id])

        at_a = discount_service.resolve_role_discount(
            company_a.id, store_a.id, company_wide.id, Decimal("100000"), as_of=CHRISTMAS
        )
        at_a2 = discount_service.resolve_role_discount(
            company_a.id, store_a2.id, company_wide.id, Decimal("100000"), as_of=CHRISTMAS
        )

        assert at_a.discount_amount == Decimal("30000.00")
        assert at_a.template.id == local.id
        assert at_a.provenance["shadowed_template_id"] == company_wide.id
        assert at_a2.discount_amount == Decimal("50000.00")
        assert "shadowed_template_id" not in at_a2.provenance

    def test_available_templates_hide_shadowed(self, db_session, company_a, store_a, store_a2, make_template):
        company_wide = make_template(company_a, "Student", "percentage", 50)
        local = make_template(company_a, "Student", "percentage", 30, store_ids=[store_a.id])
        kid = make_template(company_a, "Kid", "fixed", 20000)
        make_template(company_a, "Retired", "percentage", 10, is_active=False)

        at_a = discount_service.list_available_templates(company_a.id, store_a.id, as_of=CHRISTMAS)
        at_a2 = discount_service.list_available_templates(company_a.id, store_a2.id, as_of=CHRISTMAS)

        assert [t.id for t in at_a] == [kid.id, local.id]
        assert {t.id for t in at_a2} == {company_wide.id, kid.id}


class TestCalendarDiscount:

    def test_holiday_then_special_stack_sequentially(self, db_session, company_a, store_a, make_calendar_entry):
        # Created out of priority order; stacking still runs holiday first
        special = make_calendar_entry(company_a, CHRISTMAS, "special", "fixed", 5000, store_ids=[store_a.id])
        holiday = make_calendar_entry(company_a, CHRISTMAS, "holiday", "percentage", 10)

        result = discount_service.resolve_calendar_discount(company_a.id, store_a.id, CHRISTMAS, Decimal("100000"))

        assert result.discounted_amount == Decimal("85000.00")
        assert result.discount_amount == Decimal("15000.00")
        steps = result.provenance["applied"]
        assert [s["id"] for s in steps] == [holiday.id, special.id]
        assert [s["amount"] for s in steps] == ["10000.00", "5000.00"]

    def test_store_entry_shadows_company_entry_of_same_type(
        self, db_session, company_a, store_a, store_a2, make_calendar_entry
    ):
        make_calendar_entry(company_a, CHRISTMAS, "holiday", "percentage", 10)
        make_calendar_entry(company_a, CHRISTMAS, "holiday", "percentage", 20, store_ids=[store_a.id])

        at_a = discount_service.resolve_calendar_discount(company_a.id, store_a.id, CHRISTMAS, Decimal("100000"))
        at_a2 = discount_service.resolve_calendar_discount(company_a.id, store_a2.id, CHRISTMAS, Decimal("100000"))

        assert at_a.discounted_amount == Decimal("80000.00")
        assert at_a2.discounted_amount == Decimal("90000.00")

    def test_stacking_never_goes_negative(self, db_session, company_a, store_a, make_calendar_entry):
        make_calendar_entry(company_a, CHRISTMAS, "holiday", "fixed", 80000)
        make_calendar_entry(company_a, CHRISTMAS, "promotion", "fixed", 80000, store_ids=[store_a.id])

        result = discount_service.resolve_calendar_discount(company_a.id, store_a.id, CHRISTMAS, Decimal("100000"))

        assert result.discounted_amount == Decimal("0.00")
        assert result.discount_amount == Decimal("100000.00")

    def test_no_entry_and_no_date(self, db_session, company_a, store_a):
        empty = discount_service.resolve_calendar_discount(company_a.id, store_a.id, CHRISTMAS, Decimal("100"))
        undated = discount_service.resolve_calendar_discount(company_a.id, store_a.id, None, Decimal("100"))
        bad = discount_service.resolve_calendar_discount(company_a.id, store_a.id, "not-a-date", Decimal("100"))

        assert empty.provenance["reason"] == "no_calendar_entry"
        assert undated.provenance["reason"] == "no_date"
        assert bad.provenance["reason"] == "invalid_date"
        assert bad.discounted_amount == Decimal("100.00")

    def test_inactive_entry_ignored(self, db_session, company_a, store_a, make_calendar_entry):
        entry = make_calendar_entry(company_a, CHRISTMAS, "holiday", "percentage", 10)
        entry.is_active = False
        db_session.commit()

        result = discount_service.resolve_calendar_discount(company_a.id, store_a.id, CHRISTMAS, Decimal("100"))
        assert not result.applied
