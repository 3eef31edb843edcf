# Overview: Flask CLI command groups for bootstrap, reconciliation upkeep, and pricing housekeeping.

# backend/venuebook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init --company "Escape Co" --code ESC --store "Downtown"
#   Create a company with one store, its default roles and permissions.
# - python -m flask system init-permissions [--company-id 1]
#   Initialize permissions and assign defaults to roles (all companies if omitted).
#
# Users:
# - python -m flask users create --company-id 1 --username desk --email desk@example.com --role staff --store-id 1
#   Create a staff account.
# - python -m flask users issue-token --company-id 1 --username desk
#   Print a bearer token for the account.
#
# Orders:
# - python -m flask orders refresh-summaries [--company-id 1]
#   Recompute player statuses and cached order totals from the live ledger.
#
# Pricing:
# - python -m flask pricing expiring-templates --company-id 1 [--days 7]
#   List role templates whose validity ends soon.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Company, Store, User, Order
from .services import permission_service, payment_service, summary_service, session_service
from .services.role_pricing_service import list_expiring_templates
from .time_utils import to_iso_date


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--company', 'company_name', default='Default Company', help='Company name')
@click.option('--code', 'company_code', default='DEFAULT', help='Company code')
@click.option('--store', 'store_name', default='Main Venue', help='First store name')
@with_appcontext
def init_system(company_name, company_code, store_name):
    """
    Create (or reuse) a company and its first store, then seed roles and permissions.

    Idempotent: an existing company with the same code is reused.
    """
    company = db.session.query(Company).filter_by(code=company_code).first()
    if not company:
        company = Company(name=company_name, code=company_code, is_active=True)
        db.session.add(company)
        db.session.commit()
        click.echo(f"PASS Created company: {company.name} (ID: {company.id})")
    else:
        click.echo(f"PASS Using existing company: {company.name} (ID: {company.id})")

    store = db.session.query(Store).filter_by(company_id=company.id).first()
    if not store:
        store = Store(company_id=company.id, name=store_name, is_active=True)
        db.session.add(store)
        db.session.commit()
        click.echo(f"PASS Created store: {store.name} (ID: {store.id})")
    else:
        click.echo(f"PASS Using existing store: {store.name} (ID: {store.id})")

    _seed_permissions([company])


@system_group.command('init-permissions')
@click.option('--company-id', type=int, help='Only seed this company')
@with_appcontext
def init_permissions(company_id):
    """
    Initialize permission system.

    Creates all permissions and assigns default permissions to roles.
    Safe to run multiple times (idempotent).
    """
    q = db.session.query(Company)
    if company_id is not None:
        q = q.filter_by(id=company_id)
    companies = q.order_by(Company.id.asc()).all()
    if company_id is not None and not companies:
        raise click.ClickException(f"Company {company_id} not found")
    _seed_permissions(companies)


def _seed_permissions(companies) -> None:
    perm_count = permission_service.initialize_permissions()
    click.echo(f"PASS Created {perm_count} new permissions")

    for company in companies:
        roles = permission_service.ensure_default_roles(company.id)
        assigned = permission_service.assign_default_role_permissions(company.id)
        click.echo(
            f"PASS {company.name}: roles {', '.join(sorted(roles))}; "
            f"{assigned} new role-permission assignments"
        )


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('create')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--username', required=True, help='Username')
@click.option('--email', required=True, help='Email address')
@click.option('--role', type=click.Choice(['admin', 'manager', 'staff']), required=True, help='Role')
@click.option('--store-id', type=int, help='Primary store; omit for a company-level account')
@with_appcontext
def create_user_cli(company_id, username, email, role, store_id):
    if db.session.get(Company, company_id) is None:
        raise click.ClickException(f"Company {company_id} not found")
    if store_id is not None:
        store = db.session.get(Store, store_id)
        if store is None or store.company_id != company_id:
            raise click.ClickException(f"Store {store_id} not found in company {company_id}")

    user = User(
        company_id=company_id,
        username=username,
        email=email,
        account_level="store" if store_id else "company",
        store_id=store_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()

    try:
        permission_service.assign_role(user.id, company_id, role)
    except ValueError as e:
        raise click.ClickException(f"{e}; run 'flask system init-permissions' first")
    click.echo(f"PASS Created user {user.username} (ID: {user.id}) with role {role}")


@users_group.command('issue-token')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--username', required=True, help='Username')
@with_appcontext
def issue_token_cli(company_id, username):
    """Print a bearer token; it is shown once and stored only as a hash."""
    user = db.session.query(User).filter_by(company_id=company_id, username=username).first()
    if not user:
        raise click.ClickException("User not found")
    try:
        session, token = session_service.create_session(user.id, user_agent="flask-cli")
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(token)
    click.echo(f"expires at {session.expires_at.isoformat()}", err=True)


@click.group('orders')
def orders_group():
    """Order reconciliation commands."""


@orders_group.command('refresh-summaries')
@click.option('--company-id', type=int, help='Only refresh this company')
@with_appcontext
def refresh_summaries(company_id):
    """
    Re-derive player statuses and cached order totals from live rows.

    Repairs caches after manual database edits; a no-op on consistent data.
    """
    q = db.session.query(Order)
    if company_id is not None:
        q = q.filter_by(company_id=company_id)

    refreshed = 0
    for order in q.order_by(Order.id.asc()).all():
        if order.enable_multi_payment:
            payment_service.recompute_order_players(order)
        summary_service.refresh_order_summary(order)
        refreshed += 1
    db.session.commit()

    current_app.logger.info("Refreshed summaries for %s orders", refreshed)
    click.echo(f"PASS Refreshed {refreshed} orders")


@click.group('pricing')
def pricing_group():
    """Pricing catalog housekeeping."""


@pricing_group.command('expiring-templates')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--days', type=int, help='Look-ahead window (defaults to TEMPLATE_EXPIRY_WARNING_DAYS)')
@with_appcontext
def expiring_templates(company_id, days):
    if days is None:
        days = current_app.config["TEMPLATE_EXPIRY_WARNING_DAYS"]
    templates = list_expiring_templates(company_id, days=days)
    if not templates:
        click.echo(f"No templates expire within {days} days")
        return
    for t in templates:
        scope = "company-wide" if t.is_company_wide else f"stores {t.store_ids}"
        click.echo(f"{t.id:<6} {t.role_name:<24} valid_to={to_iso_date(t.valid_to)}  {scope}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(pricing_group)
