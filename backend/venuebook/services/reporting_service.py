# Overview: Service-layer operations for reporting; payment, payer, role usage and pricing calendar statistics.

"""
Reports

Read-only aggregates over the payment ledger and the pricing catalogs.
Every report is scoped to one company and a list of its stores; date
ranges are inclusive calendar days. Money comes back as 2-place strings.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP

from sqlalchemy import case, func

from ..extensions import db
from ..models import Order, OrderPayment, OrderPlayer, PricingCalendarEntry, RolePricingTemplate
from ..validation import CALENDAR_DISCOUNT_TYPES, CALENDAR_TYPES, ROLE_DISCOUNT_TYPES
from venuebook.money_utils import ZERO, CENT, money_str, round_money
from venuebook.time_utils import parse_iso_date, to_iso_date, today

MAX_UPCOMING_DAYS = 366


class ReportError(Exception):
    """Raised when report parameters are unusable."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    try:
        start_d = parse_iso_date(start) if start else None
        end_d = parse_iso_date(end) if end else None
    except (TypeError, ValueError):
        raise ReportError("start and end must be ISO-8601 dates")
    if start_d and end_d and start_d > end_d:
        raise ReportError("start must be on or before end")
    return start_d, end_d


def _average(total, count: int):
    if not count:
        return ZERO
    return (round_money(total) / count).quantize(CENT, rounding=ROUND_HALF_UP)


def _envelope(store_ids, start_d, end_d, rows: list[dict]) -> dict:
    return {
        "store_ids": sorted(store_ids),
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "rows": rows,
    }


def _payment_query(company_id: int, store_ids, start_d, end_d, *columns):
    day = func.strftime("%Y-%m-%d", OrderPayment.created_at)
    query = db.session.query(*columns).join(Order, Order.id == OrderPayment.order_id).filter(
        Order.company_id == company_id,
        Order.store_id.in_(store_ids),
    )
    if start_d:
        query = query.filter(day >= start_d.isoformat())
    if end_d:
        query = query.filter(day <= end_d.isoformat())
    return query


# =============================================================================
# PAYMENTS
# =============================================================================

def payment_stats(*, company_id: int, store_ids, start: str | None, end: str | None) -> dict:
    """Per-day payment volume; confirmed money reported beside the raw total."""
    start_d, end_d = _parse_range(start, end)
    is_confirmed = OrderPayment.payment_status == "confirmed"

    period = func.strftime("%Y-%m-%d", OrderPayment.created_at).label("period")
    rows = _payment_query(
        company_id, store_ids, start_d, end_d,
        period,
        func.count(OrderPayment.id).label("payment_count"),
        func.coalesce(func.sum(OrderPayment.payment_amount), 0).label("total_amount"),
        func.sum(case((is_confirmed, 1), else_=0)).label("confirmed_count"),
        func.coalesce(func.sum(case((is_confirmed, OrderPayment.payment_amount), else_=0)), 0).label("confirmed_amount"),
    ).group_by("period").order_by("period").all()

    return _envelope(store_ids, start_d, end_d, [
        {
            "period": row.period,
            "payment_count": int(row.payment_count or 0),
            "total_amount": money_str(row.total_amount or 0),
            "avg_amount": money_str(_average(row.total_amount or 0, row.payment_count)),
            "confirmed_count": int(row.confirmed_count or 0),
            "confirmed_amount": money_str(row.confirmed_amount or 0),
        }
        for row in rows
    ])


def payment_method_stats(*, company_id: int, store_ids, start: str | None, end: str | None) -> dict:
    start_d, end_d = _parse_range(start, end)

    rows = _payment_query(
        company_id, store_ids, start_d, end_d,
        OrderPayment.payment_method,
        func.count(OrderPayment.id).label("payment_count"),
        func.coalesce(func.sum(OrderPayment.payment_amount), 0).label("total_amount"),
    ).group_by(OrderPayment.payment_method).order_by(
        func.count(OrderPayment.id).desc(), OrderPayment.payment_method.asc()
    ).all()

    return _envelope(store_ids, start_d, end_d, [
        {
            "payment_method": row.payment_method,
            "payment_count": int(row.payment_count or 0),
            "total_amount": money_str(row.total_amount or 0),
            "avg_amount": money_str(_average(row.total_amount or 0, row.payment_count)),
        }
        for row in rows
    ])


def payer_stats(*, company_id: int, store_ids, start: str | None, end: str | None) -> dict:
    """Payments grouped by (payer_name, payer_phone), busiest payer first."""
    start_d, end_d = _parse_range(start, end)

    rows = _payment_query(
        company_id, store_ids, start_d, end_d,
        OrderPayment.payer_name,
        OrderPayment.payer_phone,
        func.count(OrderPayment.id).label("payment_count"),
        func.count(func.distinct(OrderPayment.order_id)).label("order_count"),
        func.coalesce(func.sum(OrderPayment.payment_amount), 0).label("total_amount"),
    ).group_by(OrderPayment.payer_name, OrderPayment.payer_phone).order_by(
        func.count(OrderPayment.id).desc(), OrderPayment.payer_name.asc()
    ).all()

    return _envelope(store_ids, start_d, end_d, [
        {
            "payer_name": row.payer_name,
            "payer_phone": row.payer_phone,
            "payment_count": int(row.payment_count or 0),
            "order_count": int(row.order_count or 0),
            "total_amount": money_str(row.total_amount or 0),
            "avg_amount": money_str(_average(row.total_amount or 0, row.payment_count)),
        }
        for row in rows
    ])


# =============================================================================
# PLAYERS / ROLES
# =============================================================================

def _player_query(company_id: int, store_ids, start_d, end_d, *columns):
    query = db.session.query(*columns).join(Order, Order.id == OrderPlayer.order_id).filter(
        Order.company_id == company_id,
        Order.store_id.in_(store_ids),
    )
    if start_d:
        query = query.filter(Order.order_date >= start_d)
    if end_d:
        query = query.filter(Order.order_date <= end_d)
    return query


def players_by_role(*, company_id: int, store_ids, start: str | None, end: str | None) -> dict:
    """
    Player rows grouped by the role name they booked under.

    Players without a role are grouped under role_name None. Dates filter
    on the order's booking date.
    """
    start_d, end_d = _parse_range(start, end)

    rows = _player_query(
        company_id, store_ids, start_d, end_d,
        OrderPlayer.selected_role_name,
        func.count(OrderPlayer.id).label("player_count"),
        func.coalesce(func.sum(OrderPlayer.final_amount), 0).label("total_amount"),
        func.coalesce(func.sum(OrderPlayer.discount_amount), 0).label("discount_amount"),
    ).group_by(OrderPlayer.selected_role_name).order_by(
        func.count(OrderPlayer.id).desc(), OrderPlayer.selected_role_name.asc()
    ).all()

    return _envelope(store_ids, start_d, end_d, [
        {
            "role_name": row.selected_role_name,
            "player_count": int(row.player_count or 0),
            "total_amount": money_str(row.total_amount or 0),
            "discount_amount": money_str(row.discount_amount or 0),
            "avg_amount": money_str(_average(row.total_amount or 0, row.player_count)),
        }
        for row in rows
    ])


def role_usage_stats(*, company_id: int, store_ids, start: str | None, end: str | None) -> dict:
    """
    Every role template of the company with how often it was booked.

    Templates never used in the range still appear with zero counts.
    Usage is matched on role_template_id, so a renamed template keeps
    its history.
    """
    start_d, end_d = _parse_range(start, end)

    usage = _player_query(
        company_id, store_ids, start_d, end_d,
        OrderPlayer.role_template_id.label("template_id"),
        func.count(OrderPlayer.id).label("usage_count"),
        func.count(func.distinct(OrderPlayer.order_id)).label("order_count"),
        func.coalesce(func.sum(OrderPlayer.final_amount), 0).label("total_amount"),
        func.coalesce(func.sum(OrderPlayer.discount_amount), 0).label("discount_amount"),
    ).filter(OrderPlayer.role_template_id.isnot(None)).group_by(OrderPlayer.role_template_id).subquery()

    usage_count = func.coalesce(usage.c.usage_count, 0)
    rows = db.session.query(
        RolePricingTemplate,
        usage_count.label("usage_count"),
        func.coalesce(usage.c.order_count, 0).label("order_count"),
        func.coalesce(usage.c.total_amount, 0).label("total_amount"),
        func.coalesce(usage.c.discount_amount, 0).label("discount_amount"),
    ).outerjoin(usage, usage.c.template_id == RolePricingTemplate.id).filter(
        RolePricingTemplate.company_id == company_id,
    ).order_by(
        usage_count.desc(), RolePricingTemplate.sort_order.asc(), RolePricingTemplate.id.asc()
    ).all()

    report_rows = []
    for template, used, orders, total, discount in rows:
        if not any(template.applies_to_store(sid) for sid in store_ids):
            continue
        report_rows.append({
            "template_id": template.id,
            "role_name": template.role_name,
            "discount_type": template.discount_type,
            "discount_value": money_str(template.discount_value),
            "is_active": template.is_active,
            "usage_count": int(used or 0),
            "order_count": int(orders or 0),
            "total_amount": money_str(total or 0),
            "discount_amount": money_str(discount or 0),
            "avg_amount": money_str(_average(total or 0, used)),
        })
    return _envelope(store_ids, start_d, end_d, report_rows)


def role_template_stats(*, company_id: int) -> dict:
    """Catalog counts: active/inactive and per discount type, with average values."""
    is_active = RolePricingTemplate.is_active.is_(True)
    row = db.session.query(
        func.count(RolePricingTemplate.id).label("total"),
        func.sum(case((is_active, 1), else_=0)).label("active"),
        *[
            func.sum(case((RolePricingTemplate.discount_type == t, 1), else_=0)).label(t)
            for t in sorted(ROLE_DISCOUNT_TYPES)
        ],
        func.avg(case((RolePricingTemplate.discount_type == "percentage", RolePricingTemplate.discount_value))).label("avg_pct"),
        func.avg(case((RolePricingTemplate.discount_type == "fixed", RolePricingTemplate.discount_value))).label("avg_fixed"),
    ).filter(RolePricingTemplate.company_id == company_id).one()

    total = int(row.total or 0)
    active = int(row.active or 0)
    return {
        "total_templates": total,
        "active_templates": active,
        "inactive_templates": total - active,
        "by_discount_type": {t: int(getattr(row, t) or 0) for t in sorted(ROLE_DISCOUNT_TYPES)},
        "avg_percentage_discount": money_str(row.avg_pct) if row.avg_pct is not None else None,
        "avg_fixed_discount": money_str(row.avg_fixed) if row.avg_fixed is not None else None,
    }


# =============================================================================
# PRICING CALENDAR
# =============================================================================

def calendar_stats(*, company_id: int) -> dict:
    """Calendar entry counts by activity, calendar_type and discount_type."""
    is_active = PricingCalendarEntry.is_active.is_(True)
    row = db.session.query(
        func.count(PricingCalendarEntry.id).label("total"),
        func.sum(case((is_active, 1), else_=0)).label("active"),
        *[
            func.sum(case((PricingCalendarEntry.calendar_type == t, 1), else_=0)).label(f"type_{t}")
            for t in sorted(CALENDAR_TYPES)
        ],
        *[
            func.sum(case((PricingCalendarEntry.discount_type == t, 1), else_=0)).label(f"discount_{t}")
            for t in sorted(CALENDAR_DISCOUNT_TYPES)
        ],
        func.avg(case((PricingCalendarEntry.discount_type == "percentage", PricingCalendarEntry.discount_value))).label("avg_pct"),
        func.avg(case((PricingCalendarEntry.discount_type == "fixed", PricingCalendarEntry.discount_value))).label("avg_fixed"),
    ).filter(PricingCalendarEntry.company_id == company_id).one()

    total = int(row.total or 0)
    active = int(row.active or 0)
    return {
        "total_entries": total,
        "active_entries": active,
        "inactive_entries": total - active,
        "by_calendar_type": {t: int(getattr(row, f"type_{t}") or 0) for t in sorted(CALENDAR_TYPES)},
        "by_discount_type": {t: int(getattr(row, f"discount_{t}") or 0) for t in sorted(CALENDAR_DISCOUNT_TYPES)},
        "avg_percentage_discount": money_str(row.avg_pct) if row.avg_pct is not None else None,
        "avg_fixed_discount": money_str(row.avg_fixed) if row.avg_fixed is not None else None,
    }


def _discount_display(entry: PricingCalendarEntry) -> str:
    if entry.discount_type == "percentage":
        return f"{money_str(entry.discount_value)}%"
    return f"Rp {money_str(entry.discount_value)}"


def upcoming_special_dates(
    *,
    company_id: int,
    store_id: int | None = None,
    days: int = 30,
    as_of: date | None = None,
) -> dict:
    """
    Active calendar entries from as_of (default today) through as_of + days.

    With store_id, only entries that apply to that store are listed.
    """
    if isinstance(days, bool) or not isinstance(days, int) or days < 0 or days > MAX_UPCOMING_DAYS:
        raise ReportError(f"days must be between 0 and {MAX_UPCOMING_DAYS}")
    start_d = as_of or today()
    end_d = start_d + timedelta(days=days)

    entries = db.session.query(PricingCalendarEntry).filter(
        PricingCalendarEntry.company_id == company_id,
        PricingCalendarEntry.is_active.is_(True),
        PricingCalendarEntry.calendar_date >= start_d,
        PricingCalendarEntry.calendar_date <= end_d,
    ).order_by(PricingCalendarEntry.calendar_date.asc(), PricingCalendarEntry.id.asc()).all()

    rows = []
    for entry in entries:
        if store_id is not None and not entry.applies_to_store(store_id):
            continue
        row = entry.to_dict()
        row["days_until"] = (entry.calendar_date - start_d).days
        row["discount_display"] = _discount_display(entry)
        rows.append(row)

    return {
        "store_id": store_id,
        "start": to_iso_date(start_d),
        "end": to_iso_date(end_d),
        "days": days,
        "rows": rows,
    }
