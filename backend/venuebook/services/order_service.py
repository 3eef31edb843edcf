# Overview: Service-layer operations for orders and their players; encapsulates business logic and database work.

"""
Orders and Players

Single-payment orders carry their settlement on the header. Multi-payment
orders get one OrderPlayer per seat, seeded from the price decomposition,
and are settled through the payment ledger.

Player pricing always goes through pricing_service.decompose so a seat
added later is priced exactly like a seat created with the order, and its
template_snapshot is taken at that moment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Order, OrderPlayer, OrderPayment
from ..validation import ConflictError, NotFoundError, ValidationError
from venuebook.money_utils import ZERO, MAX_AMOUNT, to_money
from venuebook.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import append_payment_event
from .pricing_service import PaymentItem, RoleSelection, coerce_role_selections, decompose
from .summary_service import SINGLE_PAYMENT_STATUSES, refresh_order_summary
from .tenant_service import require_store_in_company
from . import payment_service


@dataclass(frozen=True)
class OrderCreate:
    customer_name: str
    unit_price: Decimal
    player_count: int
    order_date: date | None = None
    payment_status: str = "Not Yet"
    prepaid_amount: Decimal | None = None
    total_amount: Decimal | None = None
    enable_multi_payment: bool = False
    role_selections: list | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PlayerCreate:
    player_name: str | None = None
    player_phone: str | None = None
    role_template_id: int | None = None
    player_order: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PlayerUpdate:
    """Fields left as None are unchanged; clear_role drops the role discount."""
    player_name: str | None = None
    player_phone: str | None = None
    role_template_id: int | None = None
    clear_role: bool = False
    notes: str | None = None


# =============================================================================
# HELPERS
# =============================================================================

def _lock_order(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def _require_multi(order: Order) -> None:
    if not order.enable_multi_payment:
        raise ConflictError("Order is not in multi-payment mode")


def _money(value, field_name: str, *, allow_zero: bool = True) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be a number")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field_name} must be >= 0")
    return amount


def _zero_item(player_order: int) -> PaymentItem:
    return PaymentItem(player_order=player_order, original_amount=ZERO, discount_amount=ZERO, final_amount=ZERO)


def _seat_items(order: Order, player_count: int, selections) -> list[PaymentItem]:
    items = decompose(
        order.unit_price,
        player_count,
        selections,
        company_id=order.company_id,
        store_id=order.store_id,
        as_of=order.order_date,
        booking_date=order.order_date,
    )
    if not items:
        items = [_zero_item(i) for i in range(1, player_count + 1)]
    return items


def _apply_item(player: OrderPlayer, item: PaymentItem) -> None:
    player.original_amount = item.original_amount
    player.discount_amount = item.discount_amount
    player.final_amount = max(item.original_amount - item.discount_amount, ZERO)
    player.discount_type = item.discount_type
    player.role_template_id = item.role_template_id
    player.selected_role_name = item.selected_role_name
    player.template_snapshot = item.template_snapshot


def _player_from_item(item: PaymentItem, player_order: int | None = None) -> OrderPlayer:
    player = OrderPlayer(player_order=player_order or item.player_order, payment_status="pending")
    _apply_item(player, item)
    return player


def _price_single_seat(order: Order, role_template_id: int | None) -> PaymentItem:
    selections = [RoleSelection(template_id=role_template_id, player_count=1)] if role_template_id else []
    return _seat_items(order, 1, selections)[0]


def next_player_order(order: Order) -> int:
    current = db.session.query(db.func.max(OrderPlayer.player_order)).filter_by(order_id=order.id).scalar()
    return (current or 0) + 1


def _carry_over_header_payment(order: Order, user_id: int | None) -> OrderPayment | None:
    """Turn a single-payment order's recorded payment into a confirmed ledger payment."""
    if order.payment_status == "FULL":
        amount = to_money(order.total_amount or 0)
    elif order.payment_status == "DP":
        amount = to_money(order.prepaid_amount or 0)
    else:
        return None
    if amount <= 0 or not order.players:
        return None

    payment = OrderPayment(
        payer_name=order.customer_name,
        payment_amount=amount,
        payment_method="other",
        payment_status=payment_service.PAYMENT_CONFIRMED,
        confirmed_at=utcnow(),
        proof_refs=[],
        notes=f"Carried over from single-payment status {order.payment_status}",
        created_by_user_id=user_id,
    )
    order.payments.append(payment)
    payment.covered_players = list(order.players)
    append_payment_event(payment=payment, event_type="payment.confirmed", actor_user_id=user_id,
                         note="carried over")
    return payment


# =============================================================================
# ORDERS
# =============================================================================

def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders(company_id: int, store_ids, *, order_date=None) -> list[Order]:
    q = db.session.query(Order).filter(Order.company_id == company_id, Order.store_id.in_(list(store_ids)))
    if order_date is not None:
        q = q.filter(Order.order_date == order_date)
    return q.order_by(Order.id.desc()).all()


def create_order(company_id: int, store_id: int, data: OrderCreate, user_id: int | None = None) -> Order:
    """
    Create an order; multi-payment orders are seeded with one player per seat.

    Raises:
        ValidationError: bad amounts/counts/status, selections exceeding seats
        TenantAccessError: store outside the company
    """
    require_store_in_company(store_id, company_id)

    def _op():
        name = (data.customer_name or "").strip()
        if not name:
            raise ValidationError("customer_name is required")
        if len(name) > 255:
            raise ValidationError("customer_name exceeds max length 255")
        unit_price = _money(data.unit_price, "unit_price")
        if not isinstance(data.player_count, int) or isinstance(data.player_count, bool) or data.player_count < 0:
            raise ValidationError("player_count must be a non-negative integer")
        if data.payment_status not in SINGLE_PAYMENT_STATUSES:
            raise ValidationError(f"payment_status must be one of {list(SINGLE_PAYMENT_STATUSES)}")
        prepaid = _money(data.prepaid_amount, "prepaid_amount") if data.prepaid_amount is not None else ZERO
        selections = coerce_role_selections(data.role_selections)
        if selections and not data.enable_multi_payment:
            raise ValidationError("role_selections require enable_multi_payment")

        if data.total_amount is not None:
            total = _money(data.total_amount, "total_amount")
        else:
            total = unit_price * data.player_count
            if total > MAX_AMOUNT:
                raise ValidationError(f"order total cannot exceed {MAX_AMOUNT}")

        order = Order(
            company_id=company_id,
            store_id=store_id,
            customer_name=name,
            order_date=data.order_date,
            unit_price=unit_price,
            player_count=data.player_count,
            total_amount=total,
            payment_status=data.payment_status,
            prepaid_amount=prepaid,
            enable_multi_payment=bool(data.enable_multi_payment),
            notes=data.notes,
            created_by_user_id=user_id,
        )
        db.session.add(order)

        if order.enable_multi_payment:
            for item in _seat_items(order, data.player_count, selections):
                order.players.append(_player_from_item(item))
            db.session.flush()
            payment_service.recompute_order_players(order)

        refresh_order_summary(order)
        db.session.commit()
        return order

    return run_with_retry(_op)


def enable_multi_payment(order_id: int, role_selections=None, *, user_id: int | None = None) -> Order:
    """
    Switch a single-payment order to per-player settlement.

    Seats are decomposed from unit_price/player_count; a FULL or DP header
    payment is carried over as one confirmed payment covering every seat.

    Raises:
        ConflictError: order already in multi-payment mode
    """
    def _op():
        order = _lock_order(order_id)
        if order.enable_multi_payment:
            raise ConflictError("Order is already in multi-payment mode")

        selections = coerce_role_selections(role_selections)
        for item in _seat_items(order, order.player_count, selections):
            order.players.append(_player_from_item(item))
        order.enable_multi_payment = True
        db.session.flush()

        _carry_over_header_payment(order, user_id)
        payment_service.recompute_order_players(order)
        refresh_order_summary(order)
        db.session.commit()
        current_app.logger.info("Enabled multi-payment on order %s", order.id)
        return order

    return run_with_retry(_op)


def delete_order(order_id: int) -> None:
    """Delete an order with its players, payments, coverage rows and events."""
    def _op():
        order = _lock_order(order_id)
        db.session.delete(order)
        db.session.commit()
        current_app.logger.info("Deleted order %s", order_id)

    run_with_retry(_op)


# =============================================================================
# PLAYERS
# =============================================================================

def list_players(order_id: int) -> list[OrderPlayer]:
    return (
        db.session.query(OrderPlayer)
        .filter_by(order_id=order_id)
        .order_by(OrderPlayer.player_order.asc())
        .all()
    )


def _get_player(order: Order, player_id: int) -> OrderPlayer:
    for player in order.players:
        if player.id == player_id:
            return player
    raise NotFoundError("Player not found")


def create_player(order_id: int, data: PlayerCreate, user_id: int | None = None) -> OrderPlayer:
    """Add a seat to a multi-payment order, priced like the order's other seats."""
    def _op():
        order = _lock_order(order_id)
        _require_multi(order)

        player_order = data.player_order if data.player_order is not None else next_player_order(order)
        if not isinstance(player_order, int) or player_order < 1:
            raise ValidationError("player_order must be a positive integer")
        if any(p.player_order == player_order for p in order.players):
            raise ConflictError(f"player_order {player_order} is already taken")

        player = _player_from_item(_price_single_seat(order, data.role_template_id), player_order)
        player.player_name = data.player_name
        player.player_phone = data.player_phone
        player.notes = data.notes
        order.players.append(player)
        order.player_count = len(order.players)
        db.session.flush()

        payment_service.recompute_order_players(order)
        refresh_order_summary(order)
        db.session.commit()
        return player

    return run_with_retry(_op)


def update_player(order_id: int, player_id: int, update: PlayerUpdate, user_id: int | None = None) -> OrderPlayer:
    """Edit a player; a role change re-prices the seat and takes a fresh snapshot."""
    def _op():
        order = _lock_order(order_id)
        _require_multi(order)
        player = _get_player(order, player_id)

        if update.player_name is not None:
            player.player_name = update.player_name
        if update.player_phone is not None:
            player.player_phone = update.player_phone
        if update.notes is not None:
            player.notes = update.notes

        if update.clear_role and update.role_template_id is not None:
            raise ValidationError("clear_role and role_template_id are mutually exclusive")
        if update.clear_role or update.role_template_id is not None:
            _apply_item(player, _price_single_seat(order, update.role_template_id))

        db.session.flush()
        payment_service.recompute_order_players(order)
        refresh_order_summary(order)
        db.session.commit()
        return player

    return run_with_retry(_op)


def delete_player(order_id: int, player_id: int, user_id: int | None = None) -> Order:
    """
    Remove a seat.

    Raises:
        ConflictError: the player is covered by a confirmed payment, or is the
        only player covered by a pending payment
    """
    def _op():
        order = _lock_order(order_id)
        _require_multi(order)
        player = _get_player(order, player_id)

        for payment in player.covering_payments:
            if payment.payment_status == payment_service.PAYMENT_CONFIRMED:
                raise ConflictError(f"Player is covered by confirmed payment {payment.id}")
            if payment.payment_status == payment_service.PAYMENT_PENDING and len(payment.covered_players) == 1:
                raise ConflictError(f"Player is the only player covered by pending payment {payment.id}")

        order.players.remove(player)
        order.player_count = len(order.players)
        db.session.flush()

        payment_service.recompute_order_players(order)
        refresh_order_summary(order)
        db.session.commit()
        current_app.logger.info("Deleted player %s from order %s", player_id, order.id)
        return order

    return run_with_retry(_op)
