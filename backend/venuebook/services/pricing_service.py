# Overview: Price decomposition; turns a booking into one payment item per seat.

"""
Price Decomposition Engine

decompose() resolves each role selection's discount once and emits one
PaymentItem per seat, then one undiscounted item per remaining seat. One
seat, one item: any subset of seats can later be paid by any combination of
payers.

Rounding is per item (2 places, half-up). Totals are sums of rounded items
and are never re-derived from an unrounded aggregate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ..validation import ValidationError
from . import discount_service
from venuebook.money_utils import MAX_AMOUNT, ZERO, money_str, percentage, sum_money, to_money
from venuebook.time_utils import parse_iso_date, to_iso_date


@dataclass(frozen=True)
class RoleSelection:
    """This many seats use this template."""
    template_id: int | None
    player_count: int


@dataclass(frozen=True)
class PaymentItem:
    player_order: int
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    discount_type: str = "none"
    role_template_id: int | None = None
    selected_role_name: str | None = None
    template_snapshot: dict | None = None

    def to_dict(self) -> dict:
        return {
            "player_order": self.player_order,
            "original_amount": money_str(self.original_amount),
            "discount_amount": money_str(self.discount_amount),
            "final_amount": money_str(self.final_amount),
            "discount_type": self.discount_type,
            "role_template_id": self.role_template_id,
            "selected_role_name": self.selected_role_name,
            "template_snapshot": self.template_snapshot,
        }


@dataclass(frozen=True)
class PricePreview:
    unit_price: Decimal
    player_count: int
    items: list[PaymentItem] = field(default_factory=list)
    booking_date: object = None

    @property
    def total_original_amount(self) -> Decimal:
        return sum_money(i.original_amount for i in self.items)

    @property
    def total_discount_amount(self) -> Decimal:
        return sum_money(i.discount_amount for i in self.items)

    @property
    def total_final_amount(self) -> Decimal:
        return sum_money(i.final_amount for i in self.items)

    def to_dict(self) -> dict:
        with_discount = sum(1 for i in self.items if i.discount_amount > 0)
        return {
            "unit_price": money_str(self.unit_price),
            "player_count": self.player_count,
            "booking_date": to_iso_date(self.booking_date),
            "items": [i.to_dict() for i in self.items],
            "total_original_amount": money_str(self.total_original_amount),
            "total_discount_amount": money_str(self.total_discount_amount),
            "total_final_amount": money_str(self.total_final_amount),
            "total_players_with_discount": with_discount,
            "total_players_without_discount": len(self.items) - with_discount,
            "total_discount_percentage": money_str(
                percentage(self.total_discount_amount, self.total_original_amount)
            ),
        }


def coerce_role_selections(raw) -> list[RoleSelection]:
    """Accept RoleSelection objects or {"template_id", "player_count"} dicts."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("role_selections must be a list")

    selections = []
    for item in raw:
        if isinstance(item, RoleSelection):
            selections.append(item)
            continue
        if not isinstance(item, dict):
            raise ValidationError("each role selection must be an object")
        unknown = sorted(set(item) - {"template_id", "player_count"})
        if unknown:
            raise ValidationError(f"Unknown field: {', '.join(unknown)}")
        template_id = item.get("template_id")
        count = item.get("player_count")
        if template_id is not None and (not isinstance(template_id, int) or isinstance(template_id, bool)):
            raise ValidationError("template_id must be an integer")
        if not isinstance(count, int) or isinstance(count, bool):
            raise ValidationError("player_count must be an integer")
        selections.append(RoleSelection(template_id=template_id, player_count=count))
    return selections


def _validate_inputs(unit_price, player_count, selections: list[RoleSelection]) -> Decimal:
    try:
        unit_price = to_money(unit_price)
    except ValueError:
        raise ValidationError("unit_price must be a number")
    if unit_price < 0:
        raise ValidationError("unit_price must be >= 0")
    if not isinstance(player_count, int) or isinstance(player_count, bool) or player_count < 0:
        raise ValidationError("player_count must be a non-negative integer")
    if unit_price * player_count > MAX_AMOUNT:
        raise ValidationError(f"order total cannot exceed {MAX_AMOUNT}")
    for sel in selections:
        if not isinstance(sel.player_count, int) or sel.player_count < 0:
            raise ValidationError("role selection player_count must be >= 0")
    return unit_price


def decompose(
    unit_price,
    player_count: int,
    role_selections,
    *,
    company_id: int,
    store_id: int | None,
    as_of=None,
    booking_date=None,
) -> list[PaymentItem]:
    """
    One PaymentItem per seat.

    booking_date: the calendar discount for that date is taken off each
    seat's base before its role discount; both land in discount_amount and
    the calendar provenance is kept in template_snapshot.
    as_of: template validity date (defaults to booking_date, then today).
    """
    selections = coerce_role_selections(role_selections)
    unit_price = _validate_inputs(unit_price, player_count, selections)

    if unit_price == 0 or player_count == 0:
        return []

    selected_seats = sum(sel.player_count for sel in selections)
    if selected_seats > player_count:
        raise ValidationError(
            f"Role selections cover {selected_seats} seats but the order has {player_count}"
        )

    try:
        booking_date = parse_iso_date(booking_date)
        as_of = parse_iso_date(as_of) or booking_date
    except (TypeError, ValueError):
        raise ValidationError("dates must be ISO-8601")

    calendar_discount = ZERO
    calendar_provenance = None
    base = unit_price
    if booking_date is not None:
        cal = discount_service.resolve_calendar_discount(company_id, store_id, booking_date, unit_price)
        if cal.applied:
            calendar_discount = cal.discount_amount
            calendar_provenance = cal.provenance
            base = cal.discounted_amount

    items: list[PaymentItem] = []
    seat = 1

    for sel in selections:
        if sel.player_count == 0:
            continue
        res = discount_service.resolve_role_discount(company_id, store_id, sel.template_id, base, as_of)

        if res.template is not None:
            snapshot = res.template.snapshot()
            snapshot["provenance"] = res.provenance
            role_template_id = res.template.id
            role_name = res.template.role_name
            discount_type = res.template.discount_type
        else:
            snapshot = {"requested_template_id": sel.template_id, "provenance": res.provenance}
            role_template_id = None
            role_name = None
            discount_type = "none"
        if calendar_provenance:
            snapshot["calendar"] = calendar_provenance

        discount = min(calendar_discount + res.discount_amount, unit_price)
        for _ in range(sel.player_count):
            items.append(PaymentItem(
                player_order=seat,
                original_amount=unit_price,
                discount_amount=discount,
                final_amount=unit_price - discount,
                discount_type=discount_type,
                role_template_id=role_template_id,
                selected_role_name=role_name,
                template_snapshot=dict(snapshot),
            ))
            seat += 1

    while seat <= player_count:
        items.append(PaymentItem(
            player_order=seat,
            original_amount=unit_price,
            discount_amount=calendar_discount,
            final_amount=unit_price - calendar_discount,
            template_snapshot={"calendar": calendar_provenance} if calendar_provenance else None,
        ))
        seat += 1

    return items


def preview_order_price(
    unit_price,
    player_count: int,
    role_selections,
    *,
    company_id: int,
    store_id: int | None,
    as_of=None,
    booking_date=None,
) -> PricePreview:
    items = decompose(
        unit_price,
        player_count,
        role_selections,
        company_id=company_id,
        store_id=store_id,
        as_of=as_of,
        booking_date=booking_date,
    )
    return PricePreview(
        unit_price=to_money(unit_price),
        player_count=player_count,
        items=items,
        booking_date=parse_iso_date(booking_date),
    )


@dataclass(frozen=True)
class PriceQuery:
    """Body of a price preview request."""
    unit_price: Decimal
    player_count: int
    store_id: int | None = None
    role_selections: list | None = None
    booking_date: date | None = None
    as_of: date | None = None
