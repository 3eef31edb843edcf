# Overview: Service-layer operations for the multi-payer payment ledger; encapsulates business logic and database work.

"""
Order Payment Ledger

WHY: One booking is often paid by several people, each covering some seats.
Payments record who paid how much for which players; player status is
derived from the confirmed payments covering each player.

DESIGN PRINCIPLES:
- State machine: pending -> confirmed | failed | cancelled (all terminal)
- Only pending payments are editable
- One transaction per mutation: payment state + covered players' status +
  order summary cache + event log commit together or not at all
- Player status is recomputed from a fresh read of every confirmed payment
  covering the player, never incremented
- Amounts need not match covered totals; over/under payments are reconciled
  at recompute time
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Order, OrderPlayer, OrderPayment
from ..validation import ConflictError, NotFoundError, ValidationError
from venuebook.money_utils import CENT, ZERO, money_str, sum_money, to_money
from venuebook.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import append_payment_event, list_payment_events
from . import summary_service


# =============================================================================
# CONSTANTS
# =============================================================================

PAYMENT_METHODS = ("cash", "bank_transfer", "qris", "credit_card", "e_wallet", "other")

PAYMENT_PENDING = "pending"
PAYMENT_CONFIRMED = "confirmed"
PAYMENT_FAILED = "failed"
PAYMENT_CANCELLED = "cancelled"

PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_CONFIRMED, PAYMENT_FAILED, PAYMENT_CANCELLED)

PLAYER_PENDING = "pending"
PLAYER_PARTIAL = "partial"
PLAYER_PAID = "paid"
PLAYER_REFUNDED = "refunded"

COVERAGE_MODES = ("full", "proportional")


# =============================================================================
# COMMANDS
# =============================================================================

@dataclass(frozen=True)
class PayerInfo:
    name: str
    phone: str | None = None


@dataclass(frozen=True)
class PaymentCreate:
    payer_name: str
    payment_amount: Decimal
    covered_player_ids: tuple[int, ...]
    payment_method: str
    payer_phone: str | None = None
    proof_refs: tuple[str, ...] = ()
    notes: str | None = None
    auto_confirm: bool = False


@dataclass(frozen=True)
class PaymentUpdate:
    """Fields left as None are unchanged."""
    payer_name: str | None = None
    payer_phone: str | None = None
    payment_amount: Decimal | None = None
    payment_method: str | None = None
    covered_player_ids: tuple[int, ...] | None = None
    notes: str | None = None


@dataclass(frozen=True)
class MergeTarget:
    """Attributes of the merged payment; defaults come from the first input."""
    payer_name: str | None = None
    payer_phone: str | None = None
    payment_method: str | None = None
    payment_status: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class MergeCommand:
    payment_ids: tuple[int, ...]
    payer_name: str | None = None
    payer_phone: str | None = None
    payment_method: str | None = None
    payment_status: str | None = None
    notes: str | None = None

    def target(self) -> MergeTarget:
        return MergeTarget(
            payer_name=self.payer_name,
            payer_phone=self.payer_phone,
            payment_method=self.payment_method,
            payment_status=self.payment_status,
            notes=self.notes,
        )


@dataclass(frozen=True)
class SplitSpec:
    payment_amount: Decimal
    covered_player_ids: tuple[int, ...]
    payer_name: str | None = None
    payer_phone: str | None = None
    payment_method: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ReconciliationWarning:
    """Soft warning returned alongside a successful ledger result."""
    code: str
    message: str
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass
class SplitResult:
    payments: list[OrderPayment]
    warnings: list[ReconciliationWarning] = field(default_factory=list)


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def _positive_amount(value) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError("payment_amount must be a number")
    if amount <= 0:
        raise ValidationError("payment_amount must be greater than 0")
    return amount


def _check_method(method) -> str:
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {list(PAYMENT_METHODS)}")
    return method


def _check_payer_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("payer_name is required")
    if len(name.strip()) > 255:
        raise ValidationError("payer_name exceeds max length 255")
    return name.strip()


def _coerce_payer(payer) -> PayerInfo:
    if isinstance(payer, PayerInfo):
        return PayerInfo(name=_check_payer_name(payer.name), phone=payer.phone)
    return PayerInfo(name=_check_payer_name(payer))


def _dedupe_refs(refs) -> list[str]:
    if refs is None:
        return []
    if isinstance(refs, str) or not isinstance(refs, (list, tuple)):
        raise ValidationError("proof_refs must be a list")
    seen = []
    for ref in refs:
        if not isinstance(ref, str) or not ref.strip():
            raise ValidationError("proof_refs must contain non-empty strings")
        ref = ref.strip()
        if ref not in seen:
            seen.append(ref)
    return seen


def _lock_order(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def _lock_payment(payment_id: int) -> OrderPayment:
    payment = lock_for_update(db.session.query(OrderPayment).filter_by(id=payment_id)).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def _players_of_order(order: Order, player_ids) -> list[OrderPlayer]:
    """Resolve covered player ids; every id must belong to the order."""
    if not player_ids:
        raise ValidationError("covered_player_ids must not be empty")

    wanted = []
    for pid in player_ids:
        if not isinstance(pid, int) or isinstance(pid, bool):
            raise ValidationError("covered_player_ids must contain integers")
        if pid not in wanted:
            wanted.append(pid)

    by_id = {p.id: p for p in order.players}
    missing = [pid for pid in wanted if pid not in by_id]
    if missing:
        raise ValidationError(f"Players not in order {order.id}: {missing}")

    return sorted((by_id[pid] for pid in wanted), key=lambda p: p.player_order)


def _require_pending(payment: OrderPayment, action: str) -> None:
    if payment.payment_status != PAYMENT_PENDING:
        raise ConflictError(
            f"Payment {payment.id} is {payment.payment_status}; only pending payments can be {action}"
        )


# =============================================================================
# RECOMPUTE
# =============================================================================

def coverage_mode() -> str:
    mode = current_app.config.get("PAYMENT_COVERAGE_MODE", "full")
    if mode not in COVERAGE_MODES:
        raise ValueError(f"Unsupported PAYMENT_COVERAGE_MODE: {mode}")
    return mode


def allocate_payment(amount, players: list[OrderPlayer]) -> list[tuple[OrderPlayer, Decimal]]:
    """
    Split one payment across its covered players by final amount.

    Shares are rounded per player; the remainder lands on the last player
    so the shares sum to the payment amount exactly.
    """
    amount = to_money(amount)
    if not players:
        return []
    players = sorted(players, key=lambda p: p.player_order)
    weights = [to_money(p.final_amount) for p in players]
    total_weight = sum_money(weights)
    if total_weight <= 0:
        weights = [Decimal(1)] * len(players)
        total_weight = Decimal(len(players))

    shares = []
    allocated = ZERO
    for player, weight in zip(players[:-1], weights[:-1]):
        share = (amount * weight / total_weight).quantize(CENT, rounding=ROUND_HALF_UP)
        shares.append((player, share))
        allocated += share
    shares.append((players[-1], amount - allocated))
    return shares


def player_status_for(final_amount, credited_amount) -> str:
    final_amount = to_money(final_amount)
    credited_amount = to_money(credited_amount)
    if final_amount <= 0 or credited_amount >= final_amount:
        return PLAYER_PAID
    if credited_amount > 0:
        return PLAYER_PARTIAL
    return PLAYER_PENDING


def _confirmed_credit(order_id: int) -> dict[int, Decimal]:
    """player_id -> credit from every confirmed payment of the order (fresh read)."""
    mode = coverage_mode()
    payments = (
        db.session.query(OrderPayment)
        .filter_by(order_id=order_id, payment_status=PAYMENT_CONFIRMED)
        .order_by(OrderPayment.id.asc())
        .all()
    )
    credit: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        covered = list(payment.covered_players)
        if not covered:
            continue
        if mode == "proportional":
            for player, share in allocate_payment(payment.payment_amount, covered):
                credit[player.id] += share
        else:
            for player in covered:
                credit[player.id] += to_money(payment.payment_amount)
    return credit


def recompute_order_players(order: Order) -> list[OrderPlayer]:
    """
    Re-derive credited_amount and payment_status for every player of the order.

    Idempotent: running it twice gives the same result. Refunded players keep
    their status. Returns the players whose status changed.
    """
    db.session.flush()
    credit = _confirmed_credit(order.id)
    changed = []
    for player in order.players:
        credited = credit.get(player.id, ZERO)
        if to_money(player.credited_amount or 0) != credited:
            player.credited_amount = credited
        if player.payment_status == PLAYER_REFUNDED:
            continue
        status = player_status_for(player.final_amount, credited)
        if player.payment_status != status:
            player.payment_status = status
            changed.append(player)
    return changed


def _reconcile(order: Order) -> None:
    recompute_order_players(order)
    summary_service.refresh_order_summary(order)


# =============================================================================
# CREATE / EDIT
# =============================================================================

def create_payment(
    order_id: int,
    payer,
    amount,
    covered_player_ids,
    method: str,
    *,
    proof_refs=(),
    notes: str | None = None,
    user_id: int | None = None,
    auto_confirm: bool = False,
) -> OrderPayment:
    """
    Record a payer's payment toward one or more players.

    payer: PayerInfo or a plain payer name.
    Amount must be > 0 but need not equal the covered players' total.
    auto_confirm confirms in the same transaction.

    Raises:
        ValidationError: bad amount/method/payer or players outside the order
        ConflictError: order is not in multi-payment mode
        NotFoundError: order missing
    """
    def _op():
        payer_info = _coerce_payer(payer)
        payment_amount = _positive_amount(amount)
        _check_method(method)
        refs = _dedupe_refs(proof_refs)

        order = _lock_order(order_id)
        if not order.enable_multi_payment:
            raise ConflictError("Order is not in multi-payment mode")

        players = _players_of_order(order, covered_player_ids)

        payment = OrderPayment(
            payer_name=payer_info.name,
            payer_phone=payer_info.phone,
            payment_amount=payment_amount,
            payment_method=method,
            payment_status=PAYMENT_PENDING,
            proof_refs=refs,
            notes=notes,
            created_by_user_id=user_id,
        )
        order.payments.append(payment)
        payment.covered_players = players

        append_payment_event(payment=payment, event_type="payment.created", actor_user_id=user_id)

        if auto_confirm:
            _confirm_locked(payment, user_id)

        _reconcile(order)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def create_payment_from_command(order_id: int, command: PaymentCreate, user_id: int | None = None) -> OrderPayment:
    return create_payment(
        order_id,
        PayerInfo(name=command.payer_name, phone=command.payer_phone),
        command.payment_amount,
        command.covered_player_ids,
        command.payment_method,
        proof_refs=command.proof_refs,
        notes=command.notes,
        user_id=user_id,
        auto_confirm=command.auto_confirm,
    )


def update_payment(payment_id: int, update: PaymentUpdate, user_id: int | None = None) -> OrderPayment:
    """
    Edit a pending payment.

    Raises:
        ConflictError: payment is not pending
    """
    def _op():
        payment = _lock_payment(payment_id)
        order = _lock_order(payment.order_id)
        _require_pending(payment, "edited")

        changed = []
        if update.payer_name is not None:
            payment.payer_name = _check_payer_name(update.payer_name)
            changed.append("payer_name")
        if update.payer_phone is not None:
            payment.payer_phone = update.payer_phone
            changed.append("payer_phone")
        if update.payment_amount is not None:
            payment.payment_amount = _positive_amount(update.payment_amount)
            changed.append("payment_amount")
        if update.payment_method is not None:
            payment.payment_method = _check_method(update.payment_method)
            changed.append("payment_method")
        if update.covered_player_ids is not None:
            payment.covered_players = _players_of_order(order, update.covered_player_ids)
            changed.append("covered_player_ids")
        if update.notes is not None:
            payment.notes = update.notes
            changed.append("notes")

        if not changed:
            raise ValidationError("No fields to update")

        append_payment_event(
            payment=payment,
            event_type="payment.updated",
            actor_user_id=user_id,
            extra={"changed_fields": changed},
        )
        _reconcile(order)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def attach_payment_proofs(
    payment_id: int,
    refs,
    *,
    mode: str = "append",
    user_id: int | None = None,
) -> OrderPayment:
    """Add (or replace) opaque proof references on a pending payment; duplicates are dropped."""
    if mode not in ("append", "replace"):
        raise ValidationError("mode must be append or replace")

    def _op():
        new_refs = _dedupe_refs(refs)
        payment = _lock_payment(payment_id)
        _require_pending(payment, "edited")

        if mode == "replace":
            payment.proof_refs = new_refs
        else:
            # JSON column: assign a new list so the change is tracked
            payment.proof_refs = _dedupe_refs(list(payment.proof_refs or []) + new_refs)

        append_payment_event(
            payment=payment,
            event_type="payment.updated",
            actor_user_id=user_id,
            extra={"changed_fields": ["proof_refs"], "proof_mode": mode},
        )
        db.session.commit()
        return payment

    return run_with_retry(_op)


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def _confirm_locked(payment: OrderPayment, user_id: int | None) -> None:
    _require_pending(payment, "confirmed")
    payment.payment_status = PAYMENT_CONFIRMED
    payment.confirmed_at = utcnow()
    append_payment_event(payment=payment, event_type="payment.confirmed", actor_user_id=user_id)


def confirm_payment(payment_id: int, user_id: int | None = None) -> OrderPayment:
    """
    Confirm a pending payment and recompute every covered player.

    Re-confirming is rejected (ConflictError), and the recompute sums distinct
    confirmed payments, so a payment never counts twice.
    """
    def _op():
        payment = _lock_payment(payment_id)
        order = _lock_order(payment.order_id)
        _confirm_locked(payment, user_id)
        _reconcile(order)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def _close_payment(payment_id: int, status: str, event_type: str, user_id: int | None, reason: str | None) -> OrderPayment:
    def _op():
        payment = _lock_payment(payment_id)
        order = _lock_order(payment.order_id)
        _require_pending(payment, status)
        payment.payment_status = status
        append_payment_event(payment=payment, event_type=event_type, actor_user_id=user_id, note=reason)
        _reconcile(order)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def fail_payment(payment_id: int, user_id: int | None = None, reason: str | None = None) -> OrderPayment:
    return _close_payment(payment_id, PAYMENT_FAILED, "payment.failed", user_id, reason)


def cancel_payment(payment_id: int, user_id: int | None = None, reason: str | None = None) -> OrderPayment:
    return _close_payment(payment_id, PAYMENT_CANCELLED, "payment.cancelled", user_id, reason)


def delete_payment(payment_id: int, user_id: int | None = None) -> Order:
    """
    Remove a payment; previously covered players are recomputed as if it never existed.

    Players are never deleted. The event log keeps a snapshot.
    """
    def _op():
        payment = _lock_payment(payment_id)
        order = _lock_order(payment.order_id)

        append_payment_event(payment=payment, event_type="payment.deleted", actor_user_id=user_id)
        order.payments.remove(payment)
        db.session.flush()

        _reconcile(order)
        db.session.commit()
        current_app.logger.info("Deleted payment %s from order %s", payment_id, order.id)
        return order

    return run_with_retry(_op)


# =============================================================================
# MERGE / SPLIT
# =============================================================================

def merge_payments(payment_ids, target: MergeTarget | None = None, user_id: int | None = None) -> OrderPayment:
    """
    Merge payments of one order into a single new payment.

    amount = sum of inputs; covered players = union; proofs = deduplicated
    union. Status defaults to confirmed iff every input is confirmed,
    otherwise pending; target.payment_status may override (pending or
    confirmed only). The originals are deleted; their snapshots stay in the
    event log as payment.merged_away.

    Raises:
        ValidationError: empty input, mixed orders, bad target
        ConflictError: an input is failed/cancelled
        NotFoundError: an input is missing
    """
    target = target or MergeTarget()

    def _op():
        ids = []
        for pid in payment_ids or []:
            if not isinstance(pid, int) or isinstance(pid, bool):
                raise ValidationError("payment_ids must contain integers")
            if pid not in ids:
                ids.append(pid)
        if not ids:
            raise ValidationError("payment_ids must not be empty")

        payments = (
            lock_for_update(db.session.query(OrderPayment).filter(OrderPayment.id.in_(ids)))
            .order_by(OrderPayment.id.asc())
            .all()
        )
        found = {p.id for p in payments}
        missing = [pid for pid in ids if pid not in found]
        if missing:
            raise NotFoundError(f"Payments not found: {missing}")

        order_ids = {p.order_id for p in payments}
        if len(order_ids) != 1:
            raise ValidationError("Payments must belong to the same order")

        for p in payments:
            if p.payment_status not in (PAYMENT_PENDING, PAYMENT_CONFIRMED):
                raise ConflictError(f"Payment {p.id} is {p.payment_status} and cannot be merged")

        order = _lock_order(order_ids.pop())
        first = payments[0]

        all_confirmed = all(p.payment_status == PAYMENT_CONFIRMED for p in payments)
        status = target.payment_status or (PAYMENT_CONFIRMED if all_confirmed else PAYMENT_PENDING)
        if status not in (PAYMENT_PENDING, PAYMENT_CONFIRMED):
            raise ValidationError("merged payment_status must be pending or confirmed")

        covered: dict[int, OrderPlayer] = {}
        refs: list[str] = []
        for p in payments:
            for player in p.covered_players:
                covered.setdefault(player.id, player)
            refs.extend(p.proof_refs or [])

        merged = OrderPayment(
            payer_name=_check_payer_name(target.payer_name) if target.payer_name else first.payer_name,
            payer_phone=target.payer_phone if target.payer_phone is not None else first.payer_phone,
            payment_amount=sum_money(p.payment_amount for p in payments),
            payment_method=_check_method(target.payment_method) if target.payment_method else first.payment_method,
            payment_status=status,
            proof_refs=_dedupe_refs(refs),
            notes=target.notes or f"Merged payments: {', '.join('#' + str(p.id) for p in payments)}",
            created_by_user_id=user_id,
        )
        if status == PAYMENT_CONFIRMED:
            stamps = [p.confirmed_at for p in payments if p.confirmed_at]
            merged.confirmed_at = max(stamps) if stamps else utcnow()
        order.payments.append(merged)
        merged.covered_players = sorted(covered.values(), key=lambda pl: pl.player_order)

        append_payment_event(
            payment=merged,
            event_type="payment.merged",
            actor_user_id=user_id,
            extra={"merged_from": [p.id for p in payments]},
        )
        for p in payments:
            append_payment_event(
                payment=p,
                event_type="payment.merged_away",
                actor_user_id=user_id,
                extra={"merged_into": merged.id},
            )
            order.payments.remove(p)
        db.session.flush()

        _reconcile(order)
        db.session.commit()
        current_app.logger.info(
            "Merged payments %s into payment %s on order %s",
            [p_id for p_id in ids], merged.id, order.id,
        )
        return merged

    return run_with_retry(_op)


def split_payment(payment_id: int, specs, user_id: int | None = None) -> SplitResult:
    """
    Split one payment into N new payments (inverse of merge).

    Each spec gives an amount and a subset of the original's covered players.
    New payments inherit the original's status (and confirmed_at). Parts that
    do not sum to the original are allowed, since a split may write off a
    discrepancy; the result carries a ReconciliationWarning and it is logged.

    Raises:
        ValidationError: empty specs, bad amounts, coverage outside the original
        ConflictError: original is failed/cancelled
    """
    def _op():
        if not specs:
            raise ValidationError("splits must not be empty")

        original = _lock_payment(payment_id)
        order = _lock_order(original.order_id)
        if original.payment_status not in (PAYMENT_PENDING, PAYMENT_CONFIRMED):
            raise ConflictError(f"Payment {original.id} is {original.payment_status} and cannot be split")

        original_players = {p.id: p for p in original.covered_players}
        parts = []
        for spec in specs:
            if not isinstance(spec, SplitSpec):
                raise ValidationError("each split must be a SplitSpec")
            amount = _positive_amount(spec.payment_amount)
            if not spec.covered_player_ids:
                raise ValidationError("each split must cover at least one player")
            outside = [pid for pid in spec.covered_player_ids if pid not in original_players]
            if outside:
                raise ValidationError(f"Players {outside} are not covered by payment {original.id}")
            players = sorted(
                {pid: original_players[pid] for pid in spec.covered_player_ids}.values(),
                key=lambda pl: pl.player_order,
            )
            parts.append(OrderPayment(
                payer_name=_check_payer_name(spec.payer_name) if spec.payer_name else original.payer_name,
                payer_phone=spec.payer_phone if spec.payer_phone is not None else original.payer_phone,
                payment_amount=amount,
                payment_method=_check_method(spec.payment_method) if spec.payment_method else original.payment_method,
                payment_status=original.payment_status,
                confirmed_at=original.confirmed_at,
                proof_refs=list(original.proof_refs or []),
                notes=spec.notes or f"Split from payment #{original.id}",
                created_by_user_id=user_id,
            ))
            order.payments.append(parts[-1])
            parts[-1].covered_players = players

        for part in parts:
            append_payment_event(
                payment=part,
                event_type="payment.split",
                actor_user_id=user_id,
                extra={"split_from": original.id},
            )
        append_payment_event(
            payment=original,
            event_type="payment.split_away",
            actor_user_id=user_id,
            extra={"split_into": [p.id for p in parts]},
        )
        order.payments.remove(original)
        db.session.flush()

        warnings = []
        split_total = sum_money(p.payment_amount for p in parts)
        original_amount = to_money(original.payment_amount)
        if split_total != original_amount:
            warning = ReconciliationWarning(
                code="split_sum_mismatch",
                message=(
                    f"Split parts total {money_str(split_total)} but payment "
                    f"#{original.id} was {money_str(original_amount)}"
                ),
                details={
                    "payment_id": original.id,
                    "original_amount": money_str(original_amount),
                    "split_total": money_str(split_total),
                    "difference": money_str(original_amount - split_total),
                },
            )
            warnings.append(warning)
            current_app.logger.warning("Order %s: %s", order.id, warning.message)

        _reconcile(order)
        db.session.commit()
        current_app.logger.info(
            "Split payment %s into %s on order %s",
            payment_id, [p.id for p in parts], order.id,
        )
        return SplitResult(payments=parts, warnings=warnings)

    return run_with_retry(_op)


# =============================================================================
# PLAYERS
# =============================================================================

def mark_players_refunded(order_id: int, player_ids, user_id: int | None = None) -> list[OrderPlayer]:
    """Flag players as refunded; the status sticks through later recomputes."""
    def _op():
        order = _lock_order(order_id)
        players = _players_of_order(order, player_ids)
        for player in players:
            player.payment_status = PLAYER_REFUNDED
        _reconcile(order)
        db.session.commit()
        current_app.logger.info(
            "Marked players %s refunded on order %s (user %s)",
            [p.id for p in players], order.id, user_id,
        )
        return players

    return run_with_retry(_op)


# =============================================================================
# READS
# =============================================================================

def get_payment(payment_id: int) -> OrderPayment:
    payment = db.session.get(OrderPayment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def get_order_payments(order_id: int, status: str | None = None) -> list[OrderPayment]:
    if status is not None and status not in PAYMENT_STATUSES:
        raise ValidationError(f"status must be one of {list(PAYMENT_STATUSES)}")
    q = db.session.query(OrderPayment).filter_by(order_id=order_id)
    if status:
        q = q.filter_by(payment_status=status)
    return q.order_by(OrderPayment.id.asc()).all()


def get_payment_events(order_id: int, payment_id: int | None = None):
    return list_payment_events(order_id, payment_id)
