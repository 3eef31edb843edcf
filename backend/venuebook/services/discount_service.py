# Overview: Discount resolution for role pricing templates and pricing calendar entries.

"""
Discount Resolver

Read-only: nothing here writes to the database.

Scope: an entry applies to a store when its store_ids list is empty/NULL
(company-wide) or contains the store. A store-specific entry shadows a
company-wide entry of the same logical rule (same role_name for templates,
same calendar_type for calendar entries). Different rules are evaluated
independently.

Failure mode: unknown, inactive, out-of-scope or foreign-company ids never
raise. They return the original amount with provenance
{"source": "none", "reason": ...}.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import RolePricingTemplate, PricingCalendarEntry
from ..validation import ValidationError
from venuebook.money_utils import CENT, HUNDRED, ZERO, money_str, to_money
from venuebook.time_utils import parse_iso_date, today, to_iso_date


# Calendar discounts stack in this order on the running amount
CALENDAR_TYPE_PRIORITY = ("holiday", "weekend", "special", "promotion")

DISCOUNT_TYPES = ("none", "percentage", "fixed", "free")


@dataclass(frozen=True)
class DiscountResult:
    original_amount: Decimal
    discount_amount: Decimal
    discounted_amount: Decimal
    provenance: dict
    template: RolePricingTemplate | None = field(default=None, compare=False, repr=False)

    @property
    def applied(self) -> bool:
        return self.provenance.get("source") != "none"

    def to_dict(self) -> dict:
        return {
            "original_amount": money_str(self.original_amount),
            "discount_amount": money_str(self.discount_amount),
            "discounted_amount": money_str(self.discounted_amount),
            "provenance": self.provenance,
        }


def compute_discount(discount_type: str | None, value, amount) -> Decimal:
    """
    Discount for one amount, rounded half-up to cents.

    percentage = amount * value / 100; fixed = min(value, amount);
    free = amount; none = 0. Never negative, never above amount.
    """
    amount = to_money(amount)
    if amount <= 0:
        return ZERO

    if discount_type in (None, "none"):
        return ZERO

    value = to_money(value if value is not None else 0)
    if value < 0:
        value = ZERO

    if discount_type == "percentage":
        discount = (amount * value / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    elif discount_type == "fixed":
        discount = value
    elif discount_type == "free":
        discount = amount
    else:
        raise ValidationError(f"Unknown discount_type: {discount_type}")

    return min(max(discount, ZERO), amount)


def _no_discount(amount: Decimal, reason: str) -> DiscountResult:
    return DiscountResult(
        original_amount=amount,
        discount_amount=ZERO,
        discounted_amount=amount,
        provenance={"source": "none", "applied": [], "reason": reason},
    )


def _scope_label(entry) -> str:
    return "company" if entry.is_company_wide else "store"


# =============================================================================
# ROLE TEMPLATES
# =============================================================================

def _store_specific_twin(template: RolePricingTemplate, store_id: int | None, as_of) -> RolePricingTemplate | None:
    """Active, valid store-specific template with the same role_name for this store."""
    if store_id is None:
        return None
    candidates = (
        db.session.query(RolePricingTemplate)
        .filter(
            RolePricingTemplate.company_id == template.company_id,
            RolePricingTemplate.role_name == template.role_name,
            RolePricingTemplate.is_active.is_(True),
            RolePricingTemplate.id != template.id,
        )
        .order_by(RolePricingTemplate.sort_order.asc(), RolePricingTemplate.id.asc())
        .all()
    )
    for candidate in candidates:
        if candidate.is_company_wide:
            continue
        if candidate.applies_to_store(store_id) and candidate.is_valid_on(as_of):
            return candidate
    return None


def resolve_role_discount(
    company_id: int,
    store_id: int | None,
    template_id: int | None,
    original_amount,
    as_of=None,
) -> DiscountResult:
    """Apply one role pricing template to one seat's amount."""
    amount = to_money(original_amount)
    as_of = parse_iso_date(as_of) or today()

    if template_id is None:
        return _no_discount(amount, "no_template")

    template = db.session.get(RolePricingTemplate, template_id)
    if template is None or template.company_id != company_id:
        return _no_discount(amount, "template_not_found")
    if not template.is_active:
        return _no_discount(amount, "template_inactive")
    if not template.applies_to_store(store_id):
        return _no_discount(amount, "template_out_of_scope")
    if not template.is_valid_on(as_of):
        return _no_discount(amount, "template_not_valid")

    shadowed_id = None
    if template.is_company_wide:
        twin = _store_specific_twin(template, store_id, as_of)
        if twin is not None:
            shadowed_id = template.id
            template = twin

    discount = compute_discount(template.discount_type, template.discount_value, amount)
    provenance = {
        "source": "role_template",
        "applied": [{
            "id": template.id,
            "kind": "role",
            "role_name": template.role_name,
            "discount_type": template.discount_type,
            "value": money_str(template.discount_value),
            "scope": _scope_label(template),
            "amount": money_str(discount),
        }],
        "reason": None,
        "as_of": to_iso_date(as_of),
    }
    if shadowed_id is not None:
        provenance["shadowed_template_id"] = shadowed_id

    return DiscountResult(
        original_amount=amount,
        discount_amount=discount,
        discounted_amount=amount - discount,
        provenance=provenance,
        template=template,
    )


def list_available_templates(company_id: int, store_id: int | None, as_of=None) -> list[RolePricingTemplate]:
    """
    Templates selectable when booking at a store on a date.

    Active, valid and in scope; company-wide first, then store-specific;
    company-wide templates shadowed by a store-specific one are left out.
    """
    as_of = parse_iso_date(as_of) or today()
    rows = (
        db.session.query(RolePricingTemplate)
        .filter_by(company_id=company_id, is_active=True)
        .order_by(RolePricingTemplate.sort_order.asc(), RolePricingTemplate.id.asc())
        .all()
    )
    usable = [t for t in rows if t.applies_to_store(store_id) and t.is_valid_on(as_of)]

    store_specific_names = {t.role_name for t in usable if not t.is_company_wide}
    company_wide = [t for t in usable if t.is_company_wide and t.role_name not in store_specific_names]
    store_specific = [t for t in usable if not t.is_company_wide]
    return company_wide + store_specific


# =============================================================================
# CALENDAR
# =============================================================================

def applicable_calendar_entries(company_id: int, store_id: int | None, on_date) -> list[PricingCalendarEntry]:
    """
    Entries that apply to a store on a date, in stacking order.

    Within one calendar_type, store-specific entries shadow company-wide ones.
    """
    rows = (
        db.session.query(PricingCalendarEntry)
        .filter_by(company_id=company_id, calendar_date=on_date, is_active=True)
        .order_by(PricingCalendarEntry.id.asc())
        .all()
    )
    in_scope = [e for e in rows if e.applies_to_store(store_id)]

    store_specific_types = {e.calendar_type for e in in_scope if not e.is_company_wide}
    kept = [
        e for e in in_scope
        if not (e.is_company_wide and e.calendar_type in store_specific_types)
    ]

    def _priority(entry):
        try:
            rank = CALENDAR_TYPE_PRIORITY.index(entry.calendar_type)
        except ValueError:
            rank = len(CALENDAR_TYPE_PRIORITY)
        return (rank, entry.id)

    return sorted(kept, key=_priority)


def resolve_calendar_discount(company_id: int, store_id: int | None, on_date, amount) -> DiscountResult:
    """
    Stack every applicable calendar entry on the running amount.

    Order: holiday, weekend, special, promotion.
    """
    amount = to_money(amount)
    try:
        on_date = parse_iso_date(on_date)
    except (TypeError, ValueError):
        return _no_discount(amount, "invalid_date")
    if on_date is None:
        return _no_discount(amount, "no_date")

    entries = applicable_calendar_entries(company_id, store_id, on_date)
    if not entries:
        return _no_discount(amount, "no_calendar_entry")

    running = amount
    applied = []
    for entry in entries:
        step = compute_discount(entry.discount_type, entry.discount_value, running)
        running -= step
        applied.append({
            "id": entry.id,
            "kind": entry.calendar_type,
            "discount_type": entry.discount_type,
            "value": money_str(entry.discount_value),
            "scope": _scope_label(entry),
            "amount": money_str(step),
        })

    return DiscountResult(
        original_amount=amount,
        discount_amount=amount - running,
        discounted_amount=running,
        provenance={
            "source": "calendar",
            "applied": applied,
            "reason": None,
            "date": to_iso_date(on_date),
        },
    )


@dataclass(frozen=True)
class RoleDiscountQuery:
    template_id: int
    amount: Decimal
    store_id: int | None = None
    as_of: date | None = None


@dataclass(frozen=True)
class CalendarDiscountQuery:
    date: date
    amount: Decimal
    store_id: int | None = None
