# Overview: Pytest coverage for role pricing templates and the pricing calendar.

from datetime import date, timedelta
from decimal import Decimal

import pytest

from venuebook.models import PricingCalendarEntry
from venuebook.services import pricing_calendar_service, role_pricing_service
from venuebook.services.tenant_service import TenantAccessError
from venuebook.time_utils import today
from venuebook.validation import ConflictError, NotFoundError, ValidationError


def _entry_payload(on_date="2026-12-25", **overrides):
    payload = {
        "calendar_date": on_date,
        "calendar_type": "holiday",
        "discount_type": "percentage",
        "discount_value": "10",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# ROLE PRICING TEMPLATES
# =============================================================================

class TestRoleTemplates:

    def test_create_and_update(self, db_session, company_a, store_a):
        template = role_pricing_service.create_template(company_a.id, {
            "role_name": "Student",
            "discount_type": "percentage",
            "discount_value": "20",
            "store_ids": [store_a.id, store_a.id],
        })
        assert template.discount_value == Decimal("20.00")
        assert template.store_ids == [store_a.id]

        updated = role_pricing_service.update_template(template.id, company_a.id, {"discount_value": "25"})
        assert updated.discount_value == Decimal("25.00")

    def test_free_defaults_value_to_zero(self, db_session, company_a):
        template = role_pricing_service.create_template(company_a.id, {"role_name": "Birthday", "discount_type": "free"})
        assert template.discount_value == Decimal("0.00")

    @pytest.mark.parametrize("payload", [
        {"role_name": "Student", "discount_type": "percentage", "discount_value": "120"},
        {"role_name": "Student", "discount_type": "fixed", "discount_value": "-1"},
        {"role_name": "Student", "discount_type": "bogus", "discount_value": "1"},
        {"role_name": "Student", "discount_type": "fixed", "discount_value": "1",
         "valid_from": "2026-12-31", "valid_to": "2026-01-01"},
        {"role_name": "Student", "discount_type": "fixed", "discount_value": "1", "company_id": 99},
        {"discount_type": "fixed", "discount_value": "1"},
    ])
    def test_invalid_payloads(self, db_session, company_a, payload):
        with pytest.raises(ValidationError):
            role_pricing_service.create_template(company_a.id, payload)

    def test_partial_update_checks_merged_values(self, db_session, company_a, make_template):
        template = make_template(company_a, "Kid", "fixed", "90")
        with pytest.raises(ValidationError):
            role_pricing_service.update_template(template.id, company_a.id, {"discount_type": "percentage", "discount_value": "150"})

    def test_other_company_template_is_not_found(self, db_session, company_a, company_b, make_template):
        template = make_template(company_a, "Kid", "fixed", "90")
        with pytest.raises(NotFoundError):
            role_pricing_service.get_template(template.id, company_b.id)

    def test_foreign_store_rejected(self, db_session, company_a, store_b):
        with pytest.raises(TenantAccessError):
            role_pricing_service.create_template(company_a.id, {
                "role_name": "Student", "discount_type": "fixed", "discount_value": "1", "store_ids": [store_b.id],
            })

    def test_copy_to_stores(self, db_session, company_a, store_a2, store_b, make_template):
        source = make_template(company_a, "Senior", "percentage", "30")

        copy = role_pricing_service.copy_template_to_stores(source.id, company_a.id, [store_a2.id])
        assert copy.id != source.id
        assert copy.store_ids == [store_a2.id]
        assert copy.role_name == "Senior"
        assert copy.discount_value == Decimal("30.00")

        with pytest.raises(TenantAccessError):
            role_pricing_service.copy_template_to_stores(source.id, company_a.id, [store_b.id])

    def test_list_filters_by_store_and_activity(self, db_session, company_a, store_a, store_a2, make_template):
        make_template(company_a, "Everyone", "fixed", "1")
        make_template(company_a, "Harbour Only", "fixed", "1", store_ids=[store_a2.id])
        make_template(company_a, "Retired", "fixed", "1", is_active=False)

        names = [t.role_name for t in role_pricing_service.list_templates(company_a.id, store_id=store_a.id)]
        assert names == ["Everyone"]

        all_names = {t.role_name for t in role_pricing_service.list_templates(company_a.id, include_inactive=True)}
        assert all_names == {"Everyone", "Harbour Only", "Retired"}

    def test_deactivate_is_soft(self, db_session, company_a, make_template):
        template = make_template(company_a, "Kid", "fixed", "90")
        role_pricing_service.deactivate_template(template.id, company_a.id)
        assert role_pricing_service.get_template(template.id, company_a.id).is_active is False

    def test_expiring_templates(self, db_session, company_a, make_template):
        now = today()
        make_template(company_a, "Ends Today", "fixed", "1", valid_to=now)
        make_template(company_a, "Ends Soon", "fixed", "1", valid_to=now + timedelta(days=3))
        make_template(company_a, "Ends Later", "fixed", "1", valid_to=now + timedelta(days=30))
        make_template(company_a, "Inactive Soon", "fixed", "1", valid_to=now + timedelta(days=2), is_active=False)

        names = [t.role_name for t in role_pricing_service.list_expiring_templates(company_a.id, days=7)]
        assert names == ["Ends Soon"]

        with pytest.raises(ValidationError):
            role_pricing_service.list_expiring_templates(company_a.id, days=-1)


# =============================================================================
# PRICING CALENDAR
# =============================================================================

class TestCalendar:

    def test_create_entry(self, db_session, company_a):
        entry = pricing_calendar_service.create_entry(company_a.id, _entry_payload(description="Christmas"))
        assert entry.calendar_date == date(2026, 12, 25)
        assert entry.scope_key == "*"
        assert entry.discount_value == Decimal("10.00")

    def test_duplicate_date_and_scope_is_conflict(self, db_session, company_a, store_a):
        pricing_calendar_service.create_entry(company_a.id, _entry_payload())
        with pytest.raises(ConflictError):
            pricing_calendar_service.create_entry(company_a.id, _entry_payload(calendar_type="special"))

        store_entry = pricing_calendar_service.create_entry(company_a.id, _entry_payload(store_ids=[store_a.id]))
        assert store_entry.scope_key == str(store_a.id)

    def test_same_date_in_other_company_is_fine(self, db_session, company_a, company_b):
        pricing_calendar_service.create_entry(company_a.id, _entry_payload())
        pricing_calendar_service.create_entry(company_b.id, _entry_payload())

    @pytest.mark.parametrize("overrides", [
        {"discount_type": "free"},
        {"calendar_type": "birthday"},
        {"discount_value": "101"},
        {"calendar_date": "25/12/2026"},
    ])
    def test_invalid_entries(self, db_session, company_a, overrides):
        with pytest.raises(ValidationError):
            pricing_calendar_service.create_entry(company_a.id, _entry_payload(**overrides))

    def test_update_recomputes_scope_key(self, db_session, company_a, store_a, store_a2):
        entry = pricing_calendar_service.create_entry(company_a.id, _entry_payload())

        updated = pricing_calendar_service.update_entry(
            entry.id, company_a.id, {"store_ids": [store_a2.id, store_a.id]}
        )
        assert updated.scope_key == ",".join(str(s) for s in sorted([store_a.id, store_a2.id]))

    def test_update_into_taken_slot_is_conflict(self, db_session, company_a):
        pricing_calendar_service.create_entry(company_a.id, _entry_payload("2026-12-25"))
        other = pricing_calendar_service.create_entry(company_a.id, _entry_payload("2026-12-26"))
        with pytest.raises(ConflictError):
            pricing_calendar_service.update_entry(other.id, company_a.id, {"calendar_date": "2026-12-25"})

    def test_list_entries_range_and_type(self, db_session, company_a):
        pricing_calendar_service.create_entry(company_a.id, _entry_payload("2026-12-24", calendar_type="special"))
        pricing_calendar_service.create_entry(company_a.id, _entry_payload("2026-12-25"))
        pricing_calendar_service.create_entry(company_a.id, _entry_payload("2027-01-01"))

        rows = pricing_calendar_service.list_entries(
            company_a.id, date_from=date(2026, 12, 25), date_to=date(2026, 12, 31)
        )
        assert [e.calendar_date for e in rows] == [date(2026, 12, 25)]

        specials = pricing_calendar_service.list_entries(company_a.id, calendar_type="special")
        assert [e.calendar_date for e in specials] == [date(2026, 12, 24)]

    def test_batch_update_status_stays_in_company(self, db_session, company_a, company_b):
        a1 = pricing_calendar_service.create_entry(company_a.id, _entry_payload("2026-12-25"))
        a2 = pricing_calendar_service.create_entry(company_a.id, _entry_payload("2026-12-26"))
        b1 = pricing_calendar_service.create_entry(company_b.id, _entry_payload("2026-12-25"))

        updated = pricing_calendar_service.batch_update_status(company_a.id, [a1.id, a2.id, b1.id], False)

        assert updated == 2
        assert db_session.get(PricingCalendarEntry, b1.id).is_active is True
        assert pricing_calendar_service.list_entries(company_a.id) == []

        with pytest.raises(ValidationError):
            pricing_calendar_service.batch_update_status(company_a.id, [], True)

    def test_create_holidays(self, db_session, company_a):
        created = pricing_calendar_service.create_holidays(company_a.id, [
            {"date": "2026-12-25", "name": "Christmas", "discount_value": "10"},
            {"date": "2027-01-01", "name": "New Year"},
        ])
        assert [e.description for e in created] == ["Christmas", "New Year"]
        assert all(e.calendar_type == "holiday" for e in created)

    def test_create_holidays_is_all_or_nothing(self, db_session, company_a):
        pricing_calendar_service.create_entry(company_a.id, _entry_payload("2027-01-01"))

        with pytest.raises(ConflictError):
            pricing_calendar_service.create_holidays(company_a.id, [
                {"date": "2026-12-25", "name": "Christmas"},
                {"date": "2027-01-01", "name": "New Year"},
            ])
        with pytest.raises(ValidationError):
            pricing_calendar_service.create_holidays(company_a.id, [
                {"date": "2026-12-31", "name": "Eve"},
                {"date": "2026-12-31", "name": "Eve again"},
            ])

        dates = [e.calendar_date for e in pricing_calendar_service.list_entries(company_a.id)]
        assert dates == [date(2027, 1, 1)]

    def test_copy_entry_to_stores(self, db_session, company_a, store_a, store_b):
        source = pricing_calendar_service.create_entry(company_a.id, _entry_payload())

        copy = pricing_calendar_service.copy_entry_to_stores(source.id, company_a.id, [store_a.id])
        assert copy.store_ids == [store_a.id]
        assert copy.calendar_date == source.calendar_date

        with pytest.raises(ConflictError):
            pricing_calendar_service.copy_entry_to_stores(source.id, company_a.id, [store_a.id])
        with pytest.raises(TenantAccessError):
            pricing_calendar_service.copy_entry_to_stores(source.id, company_a.id, [store_b.id])
