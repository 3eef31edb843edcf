# Overview: Pytest coverage for payment, role usage and pricing calendar reports.

from datetime import date, datetime
from decimal import Decimal

import pytest

from venuebook.services import order_service, payment_service, reporting_service
from venuebook.services.payment_service import PayerInfo


def _pay(order, players, amount, payer="Ash", method="cash", phone=None, confirm=False, on=None, db_session=None):
    payment = payment_service.create_payment(
        order.id, PayerInfo(name=payer, phone=phone), Decimal(amount), [p.id for p in players], method,
        auto_confirm=confirm,
    )
    if on is not None:
        payment.created_at = on
        db_session.commit()
    return payment


def _report(fn, company, stores, start=None, end=None):
    return fn(company_id=company.id, store_ids=[s.id for s in stores], start=start, end=end)


MARCH_1 = datetime(2026, 3, 1, 10, 0)
MARCH_2 = datetime(2026, 3, 2, 18, 30)


# =============================================================================
# PAYMENTS
# =============================================================================

class TestPaymentReports:

    def test_daily_totals_split_confirmed(self, db_session, company_a, store_a, make_multi_order):
        order = make_multi_order(company_a, store_a)
        p1, p2, p3 = order_service.list_players(order.id)
        _pay(order, [p1], "50000", confirm=True, on=MARCH_1, db_session=db_session)
        _pay(order, [p2], "30000", on=MARCH_1, db_session=db_session)
        _pay(order, [p3], "50000", confirm=True, on=MARCH_2, db_session=db_session)

        report = _report(reporting_service.payment_stats, company_a, [store_a])

        assert [r["period"] for r in report["rows"]] == ["2026-03-01", "2026-03-02"]
        first = report["rows"][0]
        assert first["payment_count"] == 2
        assert first["total_amount"] == "80000.00"
        assert first["avg_amount"] == "40000.00"
        assert first["confirmed_count"] == 1
        assert first["confirmed_amount"] == "50000.00"

    def test_date_range_is_inclusive(self, db_session, company_a, store_a, make_multi_order):
        order = make_multi_order(company_a, store_a)
        p1, p2, _ = order_service.list_players(order.id)
        _pay(order, [p1], "50000", on=MARCH_1, db_session=db_session)
        _pay(order, [p2], "50000", on=MARCH_2, db_session=db_session)

        report = _report(reporting_service.payment_stats, company_a, [store_a], start="2026-03-02", end="2026-03-02")

        assert report["start"] == "2026-03-02"
        assert [r["period"] for r in report["rows"]] == ["2026-03-02"]

    @pytest.mark.parametrize("start,end", [("2026-03-05", "2026-03-01"), ("yesterday", None)])
    def test_bad_range_rejected(self, db_session, company_a, store_a, start, end):
        with pytest.raises(reporting_service.ReportError):
            _report(reporting_service.payment_stats, company_a, [store_a], start=start, end=end)

    def test_other_company_and_other_store_excluded(
        self, db_session, company_a, company_b, store_a, store_a2, store_b, make_multi_order
    ):
        for company, store in ((company_a, store_a), (company_a, store_a2), (company_b, store_b)):
            order = make_multi_order(company, store)
            _pay(order, order_service.list_players(order.id)[:1], "50000", on=MARCH_1, db_session=db_session)

        report = _report(reporting_service.payment_stats, company_a, [store_a])
        assert report["store_ids"] == [store_a.id]
        assert report["rows"][0]["payment_count"] == 1

        both = _report(reporting_service.payment_stats, company_a, [store_a, store_a2])
        assert both["rows"][0]["payment_count"] == 2

    def test_method_breakdown_busiest_first(self, db_session, company_a, store_a, make_multi_order):
        order = make_multi_order(company_a, store_a)
        p1, p2, p3 = order_service.list_players(order.id)
        _pay(order, [p1], "50000", method="qris")
        _pay(order, [p2], "20000", method="cash")
        _pay(order, [p3], "40000", method="cash")

        rows = _report(reporting_service.payment_method_stats, company_a, [store_a])["rows"]

        assert [r["payment_method"] for r in rows] == ["cash", "qris"]
        assert rows[0]["payment_count"] == 2
        assert rows[0]["total_amount"] == "60000.00"
        assert rows[0]["avg_amount"] == "30000.00"

    def test_payers_grouped_by_name_and_phone(self, db_session, company_a, store_a, make_multi_order):
        first = make_multi_order(company_a, store_a)
        second = make_multi_order(company_a, store_a)
        _pay(first, order_service.list_players(first.id)[:1], "50000", payer="Misty", phone="0811")
        _pay(second, order_service.list_players(second.id)[:1], "50000", payer="Misty", phone="0811")
        _pay(second, order_service.list_players(second.id)[1:2], "10000", payer="Misty", phone="0899")

        rows = _report(reporting_service.payer_stats, company_a, [store_a])["rows"]

        assert rows[0]["payer_phone"] == "0811"
        assert rows[0]["payment_count"] == 2
        assert rows[0]["order_count"] == 2
        assert rows[0]["total_amount"] == "100000.00"
        assert rows[1]["payer_phone"] == "0899"


# =============================================================================
# ROLES
# =============================================================================

class TestRoleReports:

    def test_role_usage_lists_unused_templates(self, db_session, company_a, store_a, store_a2, make_multi_order, make_template):
        student = make_template(company_a, "Student", "percentage", "50")
        make_template(company_a, "Birthday", "free", "0")
        make_template(company_a, "Uptown only", "fixed", "5000", store_ids=[store_a2.id])
        make_multi_order(
            company_a, store_a, unit_price="100000",
            role_selections=[{"template_id": student.id, "player_count": 2}],
        )

        rows = _report(reporting_service.role_usage_stats, company_a, [store_a])["rows"]

        assert [r["role_name"] for r in rows] == ["Student", "Birthday"]
        assert rows[0]["usage_count"] == 2
        assert rows[0]["order_count"] == 1
        assert rows[0]["total_amount"] == "100000.00"
        assert rows[0]["discount_amount"] == "100000.00"
        assert rows[1]["usage_count"] == 0
        assert rows[1]["avg_amount"] == "0.00"

    def test_role_usage_respects_order_dates(self, db_session, company_a, store_a, make_multi_order, make_template):
        student = make_template(company_a, "Student", "percentage", "50")
        selections = [{"template_id": student.id, "player_count": 1}]
        make_multi_order(company_a, store_a, order_date=date(2026, 3, 1), role_selections=selections)
        make_multi_order(company_a, store_a, order_date=date(2026, 4, 1), role_selections=selections)

        rows = _report(reporting_service.role_usage_stats, company_a, [store_a], start="2026-03-15")["rows"]
        assert rows[0]["usage_count"] == 1

    def test_players_by_role_groups_unassigned(self, db_session, company_a, store_a, make_multi_order, make_template):
        student = make_template(company_a, "Student", "percentage", "50")
        make_multi_order(
            company_a, store_a, unit_price="100000",
            role_selections=[{"template_id": student.id, "player_count": 1}],
        )

        rows = _report(reporting_service.players_by_role, company_a, [store_a])["rows"]
        by_role = {r["role_name"]: r for r in rows}

        assert by_role[None]["player_count"] == 2
        assert by_role[None]["total_amount"] == "200000.00"
        assert by_role["Student"]["player_count"] == 1
        assert by_role["Student"]["discount_amount"] == "50000.00"

    def test_role_template_catalog_stats(self, db_session, company_a, company_b, make_template):
        make_template(company_a, "Student", "percentage", "10")
        make_template(company_a, "Senior", "percentage", "20")
        make_template(company_a, "Birthday", "free", "0", is_active=False)
        make_template(company_b, "Elsewhere", "fixed", "1000")

        stats = reporting_service.role_template_stats(company_id=company_a.id)

        assert stats["total_templates"] == 3
        assert stats["inactive_templates"] == 1
        assert stats["by_discount_type"] == {"fixed": 0, "free": 1, "percentage": 2}
        assert stats["avg_percentage_discount"] == "15.00"
        assert stats["avg_fixed_discount"] is None


# =============================================================================
# PRICING CALENDAR
# =============================================================================

class TestCalendarReports:

    def test_calendar_stats(self, db_session, company_a, make_calendar_entry):
        make_calendar_entry(company_a, date(2026, 12, 25), "holiday", "percentage", "10")
        make_calendar_entry(company_a, date(2026, 12, 26), "holiday", "percentage", "30")
        promo = make_calendar_entry(company_a, date(2026, 12, 27), "promotion", "fixed", "5000")
        promo.is_active = False
        db_session.commit()

        stats = reporting_service.calendar_stats(company_id=company_a.id)

        assert stats["total_entries"] == 3
        assert stats["active_entries"] == 2
        assert stats["by_calendar_type"]["holiday"] == 2
        assert stats["by_calendar_type"]["weekend"] == 0
        assert stats["by_discount_type"] == {"fixed": 1, "percentage": 2}
        assert stats["avg_percentage_discount"] == "20.00"
        assert stats["avg_fixed_discount"] == "5000.00"

    def test_upcoming_window_and_store_filter(self, db_session, company_a, store_a, store_a2, make_calendar_entry):
        make_calendar_entry(company_a, date(2026, 3, 5), "holiday", "percentage", "10")
        make_calendar_entry(company_a, date(2026, 3, 20), "promotion", "fixed", "5000", store_ids=[store_a2.id])
        make_calendar_entry(company_a, date(2026, 5, 1), "special", "percentage", "5")
        make_calendar_entry(company_a, date(2026, 2, 27), "holiday", "percentage", "5")
        hidden = make_calendar_entry(company_a, date(2026, 3, 6), "special", "percentage", "5")
        hidden.is_active = False
        db_session.commit()

        report = reporting_service.upcoming_special_dates(company_id=company_a.id, as_of=date(2026, 3, 1))
        assert [r["days_until"] for r in report["rows"]] == [4, 19]
        assert [r["discount_display"] for r in report["rows"]] == ["10.00%", "Rp 5000.00"]

        for_store = reporting_service.upcoming_special_dates(
            company_id=company_a.id, store_id=store_a.id, as_of=date(2026, 3, 1)
        )
        assert [r["calendar_date"] for r in for_store["rows"]] == ["2026-03-05"]

    @pytest.mark.parametrize("days", [-1, 367, True])
    def test_upcoming_days_bounds(self, db_session, company_a, days):
        with pytest.raises(reporting_service.ReportError):
            reporting_service.upcoming_special_dates(company_id=company_a.id, days=days)


# =============================================================================
# ENDPOINTS
# =============================================================================

class TestReportEndpoints:

    def test_payment_report(self, client, admin_headers, db_session, company_a, store_a, make_multi_order):
        order = make_multi_order(company_a, store_a)
        _pay(order, order_service.list_players(order.id)[:1], "50000", confirm=True)

        response = client.get("/api/reports/payments", headers=admin_headers)

        assert response.status_code == 200
        rows = response.get_json()["rows"]
        assert rows[0]["confirmed_amount"] == "50000.00"

    def test_staff_cannot_read_reports(self, client, staff_headers):
        assert client.get("/api/reports/payments", headers=staff_headers).status_code == 403
        assert client.get("/api/reports/calendar", headers=staff_headers).status_code == 403

    def test_foreign_store_is_not_found(self, client, admin_headers, store_b):
        response = client.get(f"/api/reports/role-usage?store_id={store_b.id}", headers=admin_headers)
        assert response.status_code == 404

    def test_bad_dates_are_bad_requests(self, client, admin_headers):
        response = client.get("/api/reports/payers?start=2026-13-01", headers=admin_headers)
        assert response.status_code == 400
        response = client.get("/api/reports/upcoming-special-dates?days=999", headers=admin_headers)
        assert response.status_code == 400

    def test_catalog_reports(self, client, admin_headers, company_a, make_template, make_calendar_entry):
        make_template(company_a, "Student", "percentage", "10")
        make_calendar_entry(company_a, date(2026, 12, 25), "holiday", "percentage", "10")

        templates = client.get("/api/reports/role-templates", headers=admin_headers).get_json()
        calendar = client.get("/api/reports/calendar", headers=admin_headers).get_json()

        assert templates["total_templates"] == 1
        assert calendar["by_calendar_type"]["holiday"] == 1
