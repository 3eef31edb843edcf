# Overview: Append-only payment event log; one row per ledger mutation.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import OrderPayment, OrderPaymentEvent
from venuebook.time_utils import utcnow
"""
Payment Event Log Invariants

- Append-only: rows are never updated; they are removed only with their order.
- No business logic here; callers decide what happened.
- Events are written inside the same DB transaction as the mutation they record.
- payment_id is a plain integer so deleted, merged and split payments keep history.
"""

PAYMENT_EVENT_TYPES = {
    "payment.created",
    "payment.updated",
    "payment.confirmed",
    "payment.failed",
    "payment.cancelled",
    "payment.deleted",
    "payment.merged",
    "payment.merged_away",
    "payment.split",
    "payment.split_away",
}


def payment_snapshot(payment: OrderPayment) -> dict:
    """JSON-safe copy of a payment as it stands right now."""
    return payment.to_dict()


def append_payment_event(
    *,
    payment: OrderPayment,
    event_type: str,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    extra: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> OrderPaymentEvent:
    """
    Append one payment event.

    Flushes so the payment id is assigned, then records a snapshot. Does not
    commit: the caller's transaction owns the write.
    """
    if event_type not in PAYMENT_EVENT_TYPES:
        raise ValueError(f"Unknown payment event type: {event_type}")

    db.session.flush()
    payload = payment_snapshot(payment)
    if extra:
        payload.update(extra)

    ev = OrderPaymentEvent(
        order_id=payment.order_id,
        payment_id=payment.id,
        event_type=event_type,
        amount=payment.payment_amount,
        actor_user_id=actor_user_id,
        note=note,
        payload=payload,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_payment_events(order_id: int, payment_id: int | None = None) -> list[OrderPaymentEvent]:
    q = db.session.query(OrderPaymentEvent).filter_by(order_id=order_id)
    if payment_id is not None:
        q = q.filter_by(payment_id=payment_id)
    return q.order_by(OrderPaymentEvent.id.asc()).all()
