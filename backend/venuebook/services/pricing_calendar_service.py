# Overview: Service-layer operations for the pricing calendar (date-keyed discounts).

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import PricingCalendarEntry
from ..models.pricing import scope_key_for
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_calendar_entry,
    validate_payload,
)
from .tenant_service import require_stores_in_company
from venuebook.time_utils import parse_iso_date


CALENDAR_ENTRY_POLICY = ModelValidationPolicy(
    writable_fields={
        "store_ids",
        "calendar_date",
        "calendar_type",
        "discount_type",
        "discount_value",
        "description",
        "is_active",
    },
    required_on_create={"calendar_date", "calendar_type", "discount_type", "discount_value"},
)


def _get_entry(entry_id: int, company_id: int) -> PricingCalendarEntry:
    entry = db.session.get(PricingCalendarEntry, entry_id)
    if not entry or entry.company_id != company_id:
        raise NotFoundError("Calendar entry not found")
    return entry


def _ensure_slot_free(company_id: int, calendar_date, scope_key: str, exclude_id: int | None = None) -> None:
    q = db.session.query(PricingCalendarEntry).filter_by(
        company_id=company_id,
        calendar_date=calendar_date,
        scope_key=scope_key,
    )
    if exclude_id is not None:
        q = q.filter(PricingCalendarEntry.id != exclude_id)
    if q.first():
        raise ConflictError(f"Calendar entry already exists for {calendar_date.isoformat()} ({scope_key})")


def _build_entry(company_id: int, patch: dict, user_id: int | None) -> PricingCalendarEntry:
    enforce_rules_calendar_entry(patch)
    require_stores_in_company(patch.get("store_ids") or [], company_id)
    scope_key = scope_key_for(patch.get("store_ids"))
    _ensure_slot_free(company_id, patch["calendar_date"], scope_key)
    return PricingCalendarEntry(company_id=company_id, scope_key=scope_key, created_by_user_id=user_id, **patch)


def _commit_or_conflict() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Calendar entry already exists for this date and scope")


def get_entry(entry_id: int, company_id: int) -> PricingCalendarEntry:
    return _get_entry(entry_id, company_id)


def list_entries(
    company_id: int,
    *,
    store_id: int | None = None,
    date_from=None,
    date_to=None,
    calendar_type: str | None = None,
    include_inactive: bool = False,
) -> list[PricingCalendarEntry]:
    q = db.session.query(PricingCalendarEntry).filter_by(company_id=company_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    if date_from is not None:
        q = q.filter(PricingCalendarEntry.calendar_date >= date_from)
    if date_to is not None:
        q = q.filter(PricingCalendarEntry.calendar_date <= date_to)
    if calendar_type:
        q = q.filter_by(calendar_type=calendar_type)
    rows = q.order_by(PricingCalendarEntry.calendar_date.asc(), PricingCalendarEntry.id.asc()).all()
    if store_id is not None:
        rows = [e for e in rows if e.applies_to_store(store_id)]
    return rows


def create_entry(company_id: int, payload: dict, user_id: int | None = None) -> PricingCalendarEntry:
    patch = validate_payload(model=PricingCalendarEntry, payload=payload, policy=CALENDAR_ENTRY_POLICY, partial=False)
    entry = _build_entry(company_id, patch, user_id)
    db.session.add(entry)
    _commit_or_conflict()
    return entry


def update_entry(entry_id: int, company_id: int, payload: dict) -> PricingCalendarEntry:
    entry = _get_entry(entry_id, company_id)
    patch = validate_payload(model=PricingCalendarEntry, payload=payload, policy=CALENDAR_ENTRY_POLICY, partial=True)
    enforce_rules_calendar_entry(patch, existing=entry)

    if "store_ids" in patch:
        require_stores_in_company(patch["store_ids"] or [], company_id)
        patch["scope_key"] = scope_key_for(patch["store_ids"])

    if "store_ids" in patch or "calendar_date" in patch:
        _ensure_slot_free(
            company_id,
            patch.get("calendar_date", entry.calendar_date),
            patch.get("scope_key", entry.scope_key),
            exclude_id=entry.id,
        )

    for key, value in patch.items():
        setattr(entry, key, value)
    _commit_or_conflict()
    return entry


def deactivate_entry(entry_id: int, company_id: int) -> PricingCalendarEntry:
    entry = _get_entry(entry_id, company_id)
    entry.is_active = False
    db.session.commit()
    return entry


def batch_update_status(company_id: int, entry_ids: list[int], is_active: bool) -> int:
    """Flip is_active on several entries of the company; returns the number updated."""
    if not isinstance(entry_ids, list) or not entry_ids:
        raise ValidationError("ids must be a non-empty list")
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be true or false")

    entries = (
        db.session.query(PricingCalendarEntry)
        .filter(
            PricingCalendarEntry.company_id == company_id,
            PricingCalendarEntry.id.in_(entry_ids),
        )
        .all()
    )
    for entry in entries:
        entry.is_active = is_active
    db.session.commit()
    return len(entries)


def create_holidays(company_id: int, holidays: list[dict], user_id: int | None = None) -> list[PricingCalendarEntry]:
    """
    Bulk-create company-wide holiday entries.

    Each item: {"date", "name" | "description", "discount_type"?, "discount_value"?}.
    All-or-nothing: one duplicate date rejects the whole batch.
    """
    if not isinstance(holidays, list) or not holidays:
        raise ValidationError("holidays must be a non-empty list")

    created = []
    seen_dates = set()
    try:
        _stage_holidays(company_id, holidays, user_id, created, seen_dates)
    except Exception:
        db.session.rollback()
        raise

    _commit_or_conflict()
    return created


def _stage_holidays(company_id, holidays, user_id, created, seen_dates) -> None:
    for item in holidays:
        if not isinstance(item, dict) or "date" not in item:
            raise ValidationError("each holiday needs a date")
        try:
            holiday_date = parse_iso_date(item["date"])
        except (TypeError, ValueError):
            raise ValidationError("holiday date must be an ISO-8601 date")
        if holiday_date in seen_dates:
            raise ValidationError(f"Duplicate holiday date {holiday_date.isoformat()}")
        seen_dates.add(holiday_date)

        payload = {
            "calendar_date": item["date"],
            "calendar_type": "holiday",
            "discount_type": item.get("discount_type", "percentage"),
            "discount_value": item.get("discount_value", 0),
            "description": item.get("description") or item.get("name"),
        }
        patch = validate_payload(model=PricingCalendarEntry, payload=payload, policy=CALENDAR_ENTRY_POLICY, partial=False)
        entry = _build_entry(company_id, patch, user_id)
        db.session.add(entry)
        created.append(entry)


def copy_entry_to_stores(
    entry_id: int,
    company_id: int,
    store_ids: list[int],
    user_id: int | None = None,
) -> PricingCalendarEntry:
    source = _get_entry(entry_id, company_id)
    if not isinstance(store_ids, list) or not store_ids:
        raise ValidationError("store_ids must be a non-empty list")
    patch = {
        "store_ids": store_ids,
        "calendar_date": source.calendar_date,
        "calendar_type": source.calendar_type,
        "discount_type": source.discount_type,
        "discount_value": source.discount_value,
        "description": source.description,
        "is_active": source.is_active,
    }
    entry = _build_entry(company_id, patch, user_id)
    db.session.add(entry)
    _commit_or_conflict()
    return entry
