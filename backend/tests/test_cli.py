# Overview: Flask CLI commands exercised through the click test runner.

from datetime import timedelta
from decimal import Decimal

from venuebook.models import Company, Order, User
from venuebook.services import session_service
from venuebook.time_utils import today


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--company", "Escape Co", "--code", "ESC", "--store", "Downtown"])
    second = runner.invoke(args=["system", "init", "--code", "ESC"])

    assert first.exit_code == 0, first.output
    assert "Created company: Escape Co" in first.output
    assert second.exit_code == 0, second.output
    assert "Using existing company" in second.output
    assert db_session.query(Company).filter_by(code="ESC").count() == 1


def test_create_user_and_issue_token(app, db_session, company_a, store_a):
    runner = app.test_cli_runner()

    created = runner.invoke(args=[
        "users", "create", "--company-id", str(company_a.id), "--username", "desk",
        "--email", "desk@example.com", "--role", "staff", "--store-id", str(store_a.id),
    ])
    assert created.exit_code == 0, created.output
    user = db_session.query(User).filter_by(username="desk").one()
    assert user.account_level == "store"

    issued = runner.invoke(args=["users", "issue-token", "--company-id", str(company_a.id), "--username", "desk"])
    assert issued.exit_code == 0, issued.output
    token = issued.stdout.strip().splitlines()[0]
    assert session_service.validate_session(token).user.id == user.id


def test_create_user_in_foreign_store_fails(app, db_session, company_a, store_b):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--company-id", str(company_a.id), "--username", "x",
        "--email", "x@example.com", "--role", "staff", "--store-id", str(store_b.id),
    ])
    assert result.exit_code != 0


def test_refresh_summaries_repairs_cache(app, db_session, company_a, store_a, make_multi_order):
    order = make_multi_order(company_a, store_a)
    order.total_final_amount = Decimal("1.00")
    order.total_paid_amount = Decimal("999.00")
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["orders", "refresh-summaries", "--company-id", str(company_a.id)])

    assert result.exit_code == 0, result.output
    assert "Refreshed 1 orders" in result.output
    repaired = db_session.get(Order, order.id)
    assert repaired.total_final_amount == Decimal("150000.00")
    assert repaired.total_paid_amount == Decimal("0.00")


def test_expiring_templates(app, db_session, company_a, make_template):
    make_template(company_a, "Summer Student", "percentage", "20", valid_to=today() + timedelta(days=2))
    runner = app.test_cli_runner()

    result = runner.invoke(args=["pricing", "expiring-templates", "--company-id", str(company_a.id)])
    assert result.exit_code == 0, result.output
    assert "Summer Student" in result.output
    assert "company-wide" in result.output

    empty = runner.invoke(args=["pricing", "expiring-templates", "--company-id", str(company_a.id), "--days", "1"])
    assert "No templates expire within 1 days" in empty.output
