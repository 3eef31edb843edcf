# Overview: Reconciliation aggregator; order summaries for multi-payment and single-payment orders.

"""
Order Summary

Two paths, chosen by Order.enable_multi_payment, returning the same
OrderSummary shape:

- multi: derived only from live OrderPlayer / OrderPayment rows. The cached
  total_* columns on Order are written here but never read back as truth.
- single: derived from the header (total_amount, payment_status,
  prepaid_amount). There are no per-player rows, so the player breakdown is
  an equal split of the total flagged synthesized=True.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from ..extensions import db
from ..models import Order, OrderPlayer, OrderPayment
from ..validation import NotFoundError
from venuebook.money_utils import CENT, HUNDRED, ZERO, money_str, percentage, round_money, sum_money, to_money
from venuebook.time_utils import to_utc_z


# Single-payment header statuses
SINGLE_STATUS_FULL = "FULL"
SINGLE_STATUS_DEPOSIT = "DP"
SINGLE_STATUS_NOT_YET = "Not Yet"
SINGLE_STATUS_FREE = "Free"

SINGLE_PAYMENT_STATUSES = (SINGLE_STATUS_FULL, SINGLE_STATUS_DEPOSIT, SINGLE_STATUS_NOT_YET, SINGLE_STATUS_FREE)


@dataclass(frozen=True)
class PlayerBreakdown:
    player_order: int
    player_id: int | None
    player_name: str | None
    selected_role_name: str | None
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    paid_amount: Decimal
    payment_status: str
    synthesized: bool = False

    def to_dict(self) -> dict:
        return {
            "player_order": self.player_order,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "selected_role_name": self.selected_role_name,
            "original_amount": money_str(self.original_amount),
            "discount_amount": money_str(self.discount_amount),
            "final_amount": money_str(self.final_amount),
            "paid_amount": money_str(self.paid_amount),
            "payment_status": self.payment_status,
            "synthesized": self.synthesized,
        }


@dataclass(frozen=True)
class OrderSummary:
    order_id: int
    mode: str  # "multi" | "single"
    synthesized: bool
    player_count: int
    total_original_amount: Decimal
    total_discount_amount: Decimal
    total_final_amount: Decimal
    total_players_with_discount: int
    total_players_without_discount: int
    total_discount_percentage: Decimal
    total_paid_amount: Decimal
    total_pending_amount: Decimal
    outstanding_amount: Decimal
    payment_completion_percentage: Decimal
    payment_split_count: int
    confirmed_payment_count: int
    pending_payment_count: int
    paid_players: int = 0
    partial_players: int = 0
    pending_players: int = 0
    refunded_players: int = 0
    first_payment_received_at: datetime | None = None
    last_payment_received_at: datetime | None = None
    all_payments_completed_at: datetime | None = None
    players: list[PlayerBreakdown] = field(default_factory=list)

    @property
    def is_fully_paid(self) -> bool:
        return self.player_count > 0 and self.payment_completion_percentage >= HUNDRED

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "mode": self.mode,
            "synthesized": self.synthesized,
            "player_count": self.player_count,
            "total_original_amount": money_str(self.total_original_amount),
            "total_discount_amount": money_str(self.total_discount_amount),
            "total_final_amount": money_str(self.total_final_amount),
            "total_players_with_discount": self.total_players_with_discount,
            "total_players_without_discount": self.total_players_without_discount,
            "total_discount_percentage": money_str(self.total_discount_percentage),
            "total_paid_amount": money_str(self.total_paid_amount),
            "total_pending_amount": money_str(self.total_pending_amount),
            "outstanding_amount": money_str(self.outstanding_amount),
            "payment_completion_percentage": money_str(self.payment_completion_percentage),
            "payment_split_count": self.payment_split_count,
            "confirmed_payment_count": self.confirmed_payment_count,
            "pending_payment_count": self.pending_payment_count,
            "paid_players": self.paid_players,
            "partial_players": self.partial_players,
            "pending_players": self.pending_players,
            "refunded_players": self.refunded_players,
            "first_payment_received_at": to_utc_z(self.first_payment_received_at),
            "last_payment_received_at": to_utc_z(self.last_payment_received_at),
            "all_payments_completed_at": to_utc_z(self.all_payments_completed_at),
            "players": [p.to_dict() for p in self.players],
        }


def completion_percentage(paid, total, has_players: bool) -> Decimal:
    """min(100, paid / total * 100); 100 when the total is 0 and there are players."""
    total = round_money(total)
    if total <= 0:
        return HUNDRED.quantize(CENT) if has_players else ZERO
    return min(percentage(paid, total), HUNDRED.quantize(CENT))


def player_status_counts(statuses) -> dict:
    counts = {"paid_players": 0, "partial_players": 0, "pending_players": 0, "refunded_players": 0}
    for status in statuses:
        key = f"{status}_players"
        if key in counts:
            counts[key] += 1
    return counts


def equal_split(total, count: int) -> list[Decimal]:
    """Per-seat shares rounded to cents; the remainder goes to the last seat."""
    if count <= 0:
        return []
    total = round_money(total)
    share = (total / count).quantize(CENT, rounding=ROUND_HALF_UP)
    shares = [share] * (count - 1)
    shares.append(total - share * (count - 1))
    return shares


# =============================================================================
# MULTI-PAYMENT PATH
# =============================================================================

def _multi_summary(order: Order) -> OrderSummary:
    db.session.flush()
    players = (
        db.session.query(OrderPlayer)
        .filter_by(order_id=order.id)
        .order_by(OrderPlayer.player_order.asc())
        .all()
    )
    payments = (
        db.session.query(OrderPayment)
        .filter_by(order_id=order.id)
        .order_by(OrderPayment.id.asc())
        .all()
    )

    confirmed = [p for p in payments if p.payment_status == "confirmed"]
    pending = [p for p in payments if p.payment_status == "pending"]

    total_original = sum_money(p.original_amount for p in players)
    total_discount = sum_money(p.discount_amount for p in players)
    total_final = sum_money(p.final_amount for p in players)
    paid = sum_money(p.payment_amount for p in confirmed)
    pending_amount = sum_money(p.payment_amount for p in pending)
    with_discount = sum(1 for p in players if p.has_discount)

    stamps = [p.confirmed_at for p in confirmed if p.confirmed_at]
    first_received = min(stamps) if stamps else None
    last_received = max(stamps) if stamps else None

    all_settled = bool(players) and all(p.payment_status in ("paid", "refunded") for p in players)
    # Latest confirmation among live rows
    completed_at = last_received if all_settled else None

    return OrderSummary(
        order_id=order.id,
        mode="multi",
        synthesized=False,
        player_count=len(players),
        total_original_amount=total_original,
        total_discount_amount=total_discount,
        total_final_amount=total_final,
        total_players_with_discount=with_discount,
        total_players_without_discount=len(players) - with_discount,
        total_discount_percentage=percentage(total_discount, total_original),
        total_paid_amount=paid,
        total_pending_amount=pending_amount,
        outstanding_amount=max(total_final - paid, ZERO),
        payment_completion_percentage=completion_percentage(paid, total_final, bool(players)),
        payment_split_count=len(confirmed) + len(pending),
        confirmed_payment_count=len(confirmed),
        pending_payment_count=len(pending),
        **player_status_counts(p.payment_status for p in players),
        first_payment_received_at=first_received,
        last_payment_received_at=last_received,
        all_payments_completed_at=completed_at,
        players=[
            PlayerBreakdown(
                player_order=p.player_order,
                player_id=p.id,
                player_name=p.player_name,
                selected_role_name=p.selected_role_name,
                original_amount=to_money(p.original_amount),
                discount_amount=to_money(p.discount_amount),
                final_amount=to_money(p.final_amount),
                paid_amount=to_money(p.credited_amount or 0),
                payment_status=p.payment_status,
            )
            for p in players
        ],
    )


# =============================================================================
# SINGLE-PAYMENT PATH
# =============================================================================

def _single_summary(order: Order) -> OrderSummary:
    count = order.player_count or 0
    status = order.payment_status if order.payment_status in SINGLE_PAYMENT_STATUSES else SINGLE_STATUS_NOT_YET

    total = ZERO if status == SINGLE_STATUS_FREE else to_money(order.total_amount or 0)

    if status in (SINGLE_STATUS_FULL, SINGLE_STATUS_FREE):
        paid = total
    elif status == SINGLE_STATUS_DEPOSIT:
        paid = min(to_money(order.prepaid_amount or 0), total)
    else:
        paid = ZERO

    finals = equal_split(total, count)
    paid_shares = equal_split(paid, count)

    players = []
    for index, (final, paid_share) in enumerate(zip(finals, paid_shares), start=1):
        if status in (SINGLE_STATUS_FULL, SINGLE_STATUS_FREE):
            seat_status = "paid"
        elif status == SINGLE_STATUS_DEPOSIT:
            seat_status = "paid" if paid_share >= final else ("partial" if paid_share > 0 else "pending")
        else:
            seat_status = "pending"
        players.append(PlayerBreakdown(
            player_order=index,
            player_id=None,
            player_name=None,
            selected_role_name=None,
            original_amount=final,
            discount_amount=ZERO,
            final_amount=final,
            paid_amount=paid_share,
            payment_status=seat_status,
            synthesized=True,
        ))

    return OrderSummary(
        order_id=order.id,
        mode="single",
        synthesized=True,
        player_count=count,
        total_original_amount=total,
        total_discount_amount=ZERO,
        total_final_amount=total,
        total_players_with_discount=0,
        total_players_without_discount=count,
        total_discount_percentage=ZERO,
        total_paid_amount=paid,
        total_pending_amount=ZERO,
        outstanding_amount=max(total - paid, ZERO),
        payment_completion_percentage=completion_percentage(paid, total, count > 0),
        payment_split_count=0,
        confirmed_payment_count=0,
        pending_payment_count=0,
        **player_status_counts(p.payment_status for p in players),
        players=players,
    )


# =============================================================================
# PUBLIC API
# =============================================================================

def build_order_summary(order: Order) -> OrderSummary:
    if order.enable_multi_payment:
        return _multi_summary(order)
    return _single_summary(order)


def get_order_summary(order_id: int) -> OrderSummary:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return build_order_summary(order)


def describe_multi_payment(summary: OrderSummary) -> str:
    """One-line human summary stored in Order.multi_payment_summary."""
    parts = [f"{summary.player_count} players"]
    if summary.total_players_with_discount:
        parts.append(
            f"{summary.total_players_with_discount} discounted "
            f"({money_str(summary.total_discount_percentage)}% off)"
        )
    parts.append(
        f"paid {money_str(summary.total_paid_amount)} of {money_str(summary.total_final_amount)} "
        f"({money_str(summary.payment_completion_percentage)}%)"
    )
    parts.append(
        f"{summary.confirmed_payment_count} confirmed, {summary.pending_payment_count} pending payments"
    )
    return "; ".join(parts)


def _set_if_changed(order: Order, attr: str, value) -> None:
    if getattr(order, attr) != value:
        setattr(order, attr, value)


def refresh_order_summary(order: Order) -> OrderSummary:
    """
    Rewrite the order's summary cache from live rows.

    Runs inside the caller's transaction; does not commit.
    """
    summary = build_order_summary(order)

    _set_if_changed(order, "total_original_amount", summary.total_original_amount)
    _set_if_changed(order, "total_discount_amount", summary.total_discount_amount)
    _set_if_changed(order, "total_final_amount", summary.total_final_amount)
    _set_if_changed(order, "total_players_with_discount", summary.total_players_with_discount)
    _set_if_changed(order, "total_players_without_discount", summary.total_players_without_discount)
    _set_if_changed(order, "total_discount_percentage", summary.total_discount_percentage)
    _set_if_changed(order, "total_paid_amount", summary.total_paid_amount)
    _set_if_changed(order, "total_pending_amount", summary.total_pending_amount)
    _set_if_changed(order, "payment_completion_percentage", summary.payment_completion_percentage)
    _set_if_changed(order, "payment_split_count", summary.payment_split_count)
    _set_if_changed(order, "first_payment_received_at", summary.first_payment_received_at)
    _set_if_changed(order, "last_payment_received_at", summary.last_payment_received_at)
    _set_if_changed(order, "all_payments_completed_at", summary.all_payments_completed_at)

    if order.enable_multi_payment:
        _set_if_changed(order, "multi_payment_summary", describe_multi_payment(summary))
        _set_if_changed(order, "total_amount", summary.total_final_amount)

    return summary
