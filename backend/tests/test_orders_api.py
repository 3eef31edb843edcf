# Overview: Endpoint tests for orders, payments and pricing; auth, tenant isolation and response shapes.

from decimal import Decimal

from venuebook.models import SecurityEvent
from venuebook.services import order_service
from venuebook.services.order_service import OrderCreate


def _create_multi_order(client, headers, store_id=None, **extra):
    body = {
        "customer_name": "Team Rocket",
        "unit_price": "50000",
        "player_count": 3,
        "enable_multi_payment": True,
    }
    if store_id is not None:
        body["store_id"] = store_id
    body.update(extra)
    return client.post("/api/orders", json=body, headers=headers)


class TestAuth:

    def test_missing_token(self, client, db_session):
        response = client.get("/api/orders")
        assert response.status_code == 401

    def test_invalid_token(self, client, db_session):
        response = client.get("/api/orders", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_staff_cannot_manage_pricing(self, client, staff_headers):
        response = client.post(
            "/api/role-pricing-templates",
            json={"role_name": "Student", "discount_type": "percentage", "discount_value": "10"},
            headers=staff_headers,
        )
        assert response.status_code == 403
        assert response.get_json()["required_permission"] == "MANAGE_PRICING"

    def test_staff_cannot_refund_players(self, client, staff_headers):
        response = client.post("/api/payments/refund-players", json={"order_id": 1, "player_ids": [1]},
                               headers=staff_headers)
        assert response.status_code == 403


class TestOrderFlow:

    def test_create_multi_order(self, client, admin_headers, store_a):
        response = _create_multi_order(client, admin_headers, store_a.id)

        assert response.status_code == 201
        data = response.get_json()
        assert data["enable_multi_payment"] is True
        assert [p["final_amount"] for p in data["players"]] == ["50000.00"] * 3
        assert data["summary"]["total_final_amount"] == "150000.00"
        assert data["summary"]["mode"] == "multi"

    def test_staff_defaults_to_own_store(self, client, staff_headers, store_a):
        response = _create_multi_order(client, staff_headers)
        assert response.status_code == 201
        assert response.get_json()["store_id"] == store_a.id

    def test_unknown_field_rejected(self, client, admin_headers, store_a):
        response = _create_multi_order(client, admin_headers, store_a.id, discount="lots")
        assert response.status_code == 400

    def test_pay_and_confirm(self, client, admin_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()
        p1 = order["players"][0]["id"]

        created = client.post(f"/api/orders/{order['id']}/payments", json={
            "payer_name": "Ash",
            "payment_amount": "60000",
            "covered_player_ids": [p1],
            "payment_method": "bank_transfer",
            "proof_refs": ["receipt-1.jpg"],
        }, headers=admin_headers)
        assert created.status_code == 201
        payment = created.get_json()["payment"]
        assert payment["payment_status"] == "pending"
        assert created.get_json()["summary"]["total_pending_amount"] == "60000.00"

        confirmed = client.post(f"/api/payments/{payment['id']}/confirm", headers=admin_headers)
        assert confirmed.status_code == 200
        summary = confirmed.get_json()["summary"]
        assert summary["total_paid_amount"] == "60000.00"
        assert summary["payment_completion_percentage"] == "40.00"
        assert [p["payment_status"] for p in summary["players"]] == ["paid", "pending", "pending"]

        again = client.post(f"/api/payments/{payment['id']}/confirm", headers=admin_headers)
        assert again.status_code == 409

        events = client.get(f"/api/orders/{order['id']}/payment-events", headers=admin_headers).get_json()
        assert [e["event_type"] for e in events["events"]] == ["payment.created", "payment.confirmed"]

    def test_out_of_range_amounts_are_bad_requests(self, client, admin_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()
        p1 = order["players"][0]["id"]

        payment = client.post(f"/api/orders/{order['id']}/payments", json={
            "payer_name": "Ash", "payment_amount": "1e30", "covered_player_ids": [p1], "payment_method": "cash",
        }, headers=admin_headers)
        assert payment.status_code == 400

        created = _create_multi_order(client, admin_headers, store_a.id, unit_price="1e30")
        assert created.status_code == 400

        preview = client.post("/api/pricing/preview", json={"unit_price": "1e30", "player_count": 2},
                              headers=admin_headers)
        assert preview.status_code == 400

        oversized_total = client.post("/api/pricing/preview", json={
            "unit_price": "9999999999999", "player_count": 2, "store_id": store_a.id,
        }, headers=admin_headers)
        assert oversized_total.status_code == 400
        assert "order total" in oversized_total.get_json()["error"]

        template = client.post("/api/role-pricing-templates", json={
            "role_name": "Whale", "discount_type": "fixed", "discount_value": "1e30",
        }, headers=admin_headers)
        assert template.status_code == 400

    def test_payment_on_single_order_is_conflict(self, client, admin_headers, store_a):
        order = client.post("/api/orders", json={
            "customer_name": "Solo", "unit_price": "50000", "player_count": 2, "store_id": store_a.id,
        }, headers=admin_headers).get_json()

        response = client.post(f"/api/orders/{order['id']}/payments", json={
            "payer_name": "Solo", "payment_amount": "100000", "covered_player_ids": [1], "payment_method": "cash",
        }, headers=admin_headers)
        assert response.status_code == 409

    def test_split_returns_warning(self, client, admin_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()
        p1, p2 = order["players"][0]["id"], order["players"][1]["id"]
        payment = client.post(f"/api/orders/{order['id']}/payments", json={
            "payer_name": "Ash", "payment_amount": "100000", "covered_player_ids": [p1, p2],
            "payment_method": "cash", "auto_confirm": True,
        }, headers=admin_headers).get_json()["payment"]

        response = client.post(f"/api/payments/{payment['id']}/split", json={"splits": [
            {"payment_amount": "50000", "covered_player_ids": [p1]},
            {"payment_amount": "40000", "covered_player_ids": [p2], "payer_name": "Gary"},
        ]}, headers=admin_headers)

        assert response.status_code == 201
        data = response.get_json()
        assert len(data["payments"]) == 2
        assert data["warnings"][0]["code"] == "split_sum_mismatch"
        assert data["warnings"][0]["details"]["difference"] == "10000.00"
        assert data["summary"]["total_paid_amount"] == "90000.00"

    def test_merge_endpoint(self, client, admin_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()
        ids = []
        for player in order["players"][:2]:
            created = client.post(f"/api/orders/{order['id']}/payments", json={
                "payer_name": "Ash", "payment_amount": "25000", "covered_player_ids": [player["id"]],
                "payment_method": "cash",
            }, headers=admin_headers)
            ids.append(created.get_json()["payment"]["id"])

        response = client.post("/api/payments/merge", json={"payment_ids": ids}, headers=admin_headers)

        assert response.status_code == 201
        merged = response.get_json()["payment"]
        assert merged["payment_amount"] == "50000.00"
        assert merged["notes"] == f"Merged payments: #{ids[0]}, #{ids[1]}"
        remaining = client.get(f"/api/orders/{order['id']}/payments", headers=admin_headers).get_json()
        assert [p["id"] for p in remaining["payments"]] == [merged["id"]]

    def test_single_order_summary_is_synthesized(self, client, admin_headers, store_a):
        order = client.post("/api/orders", json={
            "customer_name": "Solo", "unit_price": "50000", "player_count": 2,
            "payment_status": "DP", "prepaid_amount": "30000", "store_id": store_a.id,
        }, headers=admin_headers).get_json()

        summary = client.get(f"/api/orders/{order['id']}/summary", headers=admin_headers).get_json()
        assert summary["synthesized"] is True
        assert summary["total_paid_amount"] == "30000.00"
        assert [p["paid_amount"] for p in summary["players"]] == ["15000.00", "15000.00"]

    def test_refund_players(self, client, admin_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()
        p1 = order["players"][0]["id"]

        response = client.post("/api/payments/refund-players", json={"order_id": order["id"], "player_ids": [p1]},
                               headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()["players"][0]["payment_status"] == "refunded"


class TestTenantIsolation:

    def test_other_company_order_is_not_found(self, client, admin_headers, admin_b_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()

        response = client.get(f"/api/orders/{order['id']}", headers=admin_b_headers)
        assert response.status_code == 404

        denied = SecurityEvent.query.filter_by(event_type="CROSS_TENANT_ACCESS_DENIED").all()
        assert len(denied) == 1
        assert denied[0].success is False

    def test_staff_cannot_see_other_store(self, client, db_session, company_a, store_a2, staff_headers):
        order = order_service.create_order(
            company_a.id, store_a2.id,
            OrderCreate(customer_name="Harbour Team", unit_price=Decimal("50000"), player_count=2,
                        enable_multi_payment=True),
        )

        assert client.get(f"/api/orders/{order.id}", headers=staff_headers).status_code == 404
        listing = client.get("/api/orders", headers=staff_headers).get_json()
        assert listing["orders"] == []

        player_id = order_service.list_players(order.id)[0].id
        response = client.post(f"/api/orders/{order.id}/payments", json={
            "payer_name": "Sneaky", "payment_amount": "10", "covered_player_ids": [player_id],
            "payment_method": "cash",
        }, headers=staff_headers)
        assert response.status_code == 404

    def test_create_order_in_foreign_store(self, client, admin_headers, store_b):
        response = _create_multi_order(client, admin_headers, store_b.id)
        assert response.status_code == 404

    def test_other_company_payment_is_not_found(self, client, admin_headers, admin_b_headers, store_a):
        order = _create_multi_order(client, admin_headers, store_a.id).get_json()
        payment = client.post(f"/api/orders/{order['id']}/payments", json={
            "payer_name": "Ash", "payment_amount": "100", "covered_player_ids": [order["players"][0]["id"]],
            "payment_method": "cash",
        }, headers=admin_headers).get_json()["payment"]

        assert client.post(f"/api/payments/{payment['id']}/confirm", headers=admin_b_headers).status_code == 404
        assert client.delete(f"/api/payments/{payment['id']}", headers=admin_b_headers).status_code == 404


class TestPricingEndpoints:

    def test_preview(self, client, admin_headers, store_a, company_a, make_template):
        student = make_template(company_a, "Student", "percentage", "50")

        response = client.post("/api/pricing/preview", json={
            "unit_price": "100000",
            "player_count": 3,
            "store_id": store_a.id,
            "role_selections": [{"template_id": student.id, "player_count": 1}],
        }, headers=admin_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert [i["final_amount"] for i in data["items"]] == ["50000.00", "100000.00", "100000.00"]
        assert data["total_final_amount"] == "250000.00"

    def test_preview_rejects_oversubscribed_selections(self, client, staff_headers, company_a, make_template):
        student = make_template(company_a, "Student", "percentage", "50")
        response = client.post("/api/pricing/preview", json={
            "unit_price": "100000",
            "player_count": 1,
            "role_selections": [{"template_id": student.id, "player_count": 2}],
        }, headers=staff_headers)
        assert response.status_code == 400

    def test_role_template_crud(self, client, admin_headers, store_a):
        created = client.post("/api/role-pricing-templates", json={
            "role_name": "Student", "discount_type": "percentage", "discount_value": "10",
        }, headers=admin_headers)
        assert created.status_code == 201
        template_id = created.get_json()["id"]

        patched = client.patch(f"/api/role-pricing-templates/{template_id}", json={"discount_value": "15"},
                               headers=admin_headers)
        assert patched.get_json()["discount_value"] == "15.00"

        bad = client.patch(f"/api/role-pricing-templates/{template_id}", json={"discount_value": "150"},
                           headers=admin_headers)
        assert bad.status_code == 400

        removed = client.delete(f"/api/role-pricing-templates/{template_id}", headers=admin_headers)
        assert removed.status_code == 200
        assert removed.get_json()["is_active"] is False

    def test_calendar_duplicate_is_conflict(self, client, admin_headers, store_a):
        body = {"calendar_date": "2026-12-25", "calendar_type": "holiday",
                "discount_type": "percentage", "discount_value": "10"}
        assert client.post("/api/pricing-calendar", json=body, headers=admin_headers).status_code == 201
        assert client.post("/api/pricing-calendar", json=body, headers=admin_headers).status_code == 409
