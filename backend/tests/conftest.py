"""
Pytest fixtures for venuebook backend tests.

Provides an in-memory database, two tenants (companies) with stores, users
with default roles, bearer tokens, and small builders for pricing catalogs
and orders.
"""

from decimal import Decimal

import pytest

from venuebook import create_app
from venuebook.extensions import db
from venuebook.models import Company, Store, User, RolePricingTemplate, PricingCalendarEntry
from venuebook.models.pricing import scope_key_for
from venuebook.services import permission_service, order_service
from venuebook.services.order_service import OrderCreate
from venuebook.services.session_service import create_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(config_overrides={
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        app.config['PAYMENT_COVERAGE_MODE'] = 'full'

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def company_a(db_session):
    company = Company(name="Company A - Locked Rooms", code="LOCK", is_active=True)
    db_session.add(company)
    db_session.commit()
    permission_service.initialize_permissions()
    permission_service.ensure_default_roles(company.id)
    permission_service.assign_default_role_permissions(company.id)
    return company


@pytest.fixture(scope='function')
def company_b(db_session):
    company = Company(name="Company B - Puzzle House", code="PUZZ", is_active=True)
    db_session.add(company)
    db_session.commit()
    permission_service.initialize_permissions()
    permission_service.ensure_default_roles(company.id)
    permission_service.assign_default_role_permissions(company.id)
    return company


@pytest.fixture(scope='function')
def store_a(db_session, company_a):
    store = Store(company_id=company_a.id, name="Downtown", code="A1")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_a2(db_session, company_a):
    store = Store(company_id=company_a.id, name="Harbour", code="A2")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session, company_b):
    store = Store(company_id=company_b.id, name="Old Town", code="B1")
    db_session.add(store)
    db_session.commit()
    return store


def _make_user(db_session, company, username, role, store=None):
    user = User(
        company_id=company.id,
        username=username,
        email=f"{username}@example.com",
        account_level="store" if store else "company",
        store_id=store.id if store else None,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    permission_service.assign_role(user.id, company.id, role)
    return user


@pytest.fixture(scope='function')
def admin_a(db_session, company_a, store_a):
    """Company-level admin of company A."""
    return _make_user(db_session, company_a, "admin_a", "admin")


@pytest.fixture(scope='function')
def staff_a(db_session, company_a, store_a):
    """Store-level staff at store A1."""
    return _make_user(db_session, company_a, "staff_a", "staff", store=store_a)


@pytest.fixture(scope='function')
def admin_b(db_session, company_b, store_b):
    return _make_user(db_session, company_b, "admin_b", "admin")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_a):
    _, token = create_session(admin_a.id, user_agent="pytest")
    return auth_headers(token)


@pytest.fixture(scope='function')
def staff_headers(staff_a):
    _, token = create_session(staff_a.id, user_agent="pytest")
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_b_headers(admin_b):
    _, token = create_session(admin_b.id, user_agent="pytest")
    return auth_headers(token)


# =============================================================================
# PRICING / ORDER BUILDERS
# =============================================================================

@pytest.fixture(scope='function')
def make_template(db_session):
    def _make(company, role_name, discount_type, value, store_ids=None, **extra):
        template = RolePricingTemplate(
            company_id=company.id,
            store_ids=store_ids,
            role_name=role_name,
            discount_type=discount_type,
            discount_value=Decimal(str(value)),
            **extra,
        )
        db_session.add(template)
        db_session.commit()
        return template
    return _make


@pytest.fixture(scope='function')
def make_calendar_entry(db_session):
    def _make(company, on_date, calendar_type, discount_type, value, store_ids=None):
        entry = PricingCalendarEntry(
            company_id=company.id,
            store_ids=store_ids,
            scope_key=scope_key_for(store_ids),
            calendar_date=on_date,
            calendar_type=calendar_type,
            discount_type=discount_type,
            discount_value=Decimal(str(value)),
        )
        db_session.add(entry)
        db_session.commit()
        return entry
    return _make


@pytest.fixture(scope='function')
def make_multi_order(db_session):
    """Multi-payment order builder; defaults to 3 seats at 50,000."""
    def _make(company, store, unit_price="50000", player_count=3, role_selections=None, **extra):
        data = OrderCreate(
            customer_name="Team Rocket",
            unit_price=Decimal(unit_price),
            player_count=player_count,
            enable_multi_payment=True,
            role_selections=role_selections,
            **extra,
        )
        return order_service.create_order(company.id, store.id, data)
    return _make
