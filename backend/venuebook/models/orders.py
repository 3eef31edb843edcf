from __future__ import annotations

from ..extensions import db
from venuebook.money_utils import money_str
from venuebook.time_utils import to_utc_z, to_iso_date


# Coverage link between payments and the players (seats) they pay for
order_payment_players = db.Table(
    "order_payment_players",
    db.Column("payment_id", db.Integer, db.ForeignKey("order_payments.id", ondelete="CASCADE"), primary_key=True),
    db.Column("player_id", db.Integer, db.ForeignKey("order_players.id", ondelete="CASCADE"), primary_key=True),
)


class Order(db.Model):
    """
    Booking header.

    Single-payment orders (enable_multi_payment=False) are settled through the
    header fields payment_status / prepaid_amount. Multi-payment orders are
    settled through OrderPlayer + OrderPayment rows; the total_* cache block
    is rewritten after every ledger mutation and is never authoritative.

    payment_status (single path): FULL, DP, Not Yet, Free
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_company_store", "company_id", "store_id"),
        db.Index("ix_orders_company_date", "company_id", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    order_date = db.Column(db.Date, nullable=True)

    unit_price = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    player_count = db.Column(db.Integer, nullable=False, default=0)
    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    payment_status = db.Column(db.String(16), nullable=False, default="Not Yet")
    prepaid_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    enable_multi_payment = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    # Summary cache (multi-payment orders)
    total_original_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_discount_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_final_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_players_with_discount = db.Column(db.Integer, nullable=False, default=0)
    total_players_without_discount = db.Column(db.Integer, nullable=False, default=0)
    total_discount_percentage = db.Column(db.Numeric(7, 2), nullable=False, default=0)
    total_paid_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    total_pending_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    payment_completion_percentage = db.Column(db.Numeric(7, 2), nullable=False, default=0)
    payment_split_count = db.Column(db.Integer, nullable=False, default=0)
    first_payment_received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_payment_received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    all_payments_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    multi_payment_summary = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    store = db.relationship("Store")
    players = db.relationship(
        "OrderPlayer",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderPlayer.player_order",
        lazy=True,
    )
    payments = db.relationship(
        "OrderPayment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderPayment.id",
        lazy=True,
    )
    payment_events = db.relationship(
        "OrderPaymentEvent",
        cascade="all, delete-orphan",
        order_by="OrderPaymentEvent.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} store_id={self.store_id} multi={self.enable_multi_payment}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "store_id": self.store_id,
            "customer_name": self.customer_name,
            "order_date": to_iso_date(self.order_date),
            "unit_price": money_str(self.unit_price),
            "player_count": self.player_count,
            "total_amount": money_str(self.total_amount),
            "payment_status": self.payment_status,
            "prepaid_amount": money_str(self.prepaid_amount),
            "enable_multi_payment": self.enable_multi_payment,
            "notes": self.notes,
            "payment_split_count": self.payment_split_count,
            "multi_payment_summary": self.multi_payment_summary,
            "first_payment_received_at": to_utc_z(self.first_payment_received_at),
            "last_payment_received_at": to_utc_z(self.last_payment_received_at),
            "all_payments_completed_at": to_utc_z(self.all_payments_completed_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderPlayer(db.Model):
    """
    One seat of a multi-payment order (a "payment item" once persisted).

    final_amount = max(0, original_amount - discount_amount) always holds.
    payment_status is derived from confirmed coverage (pending / partial /
    paid); "refunded" is sticky and only set explicitly.
    """
    __tablename__ = "order_players"
    __table_args__ = (
        db.UniqueConstraint("order_id", "player_order", name="uq_order_players_order_seq"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    player_order = db.Column(db.Integer, nullable=False)

    player_name = db.Column(db.String(255), nullable=True)
    player_phone = db.Column(db.String(32), nullable=True)

    role_template_id = db.Column(db.Integer, db.ForeignKey("role_pricing_templates.id"), nullable=True)
    template_snapshot = db.Column(db.JSON, nullable=True)
    selected_role_name = db.Column(db.String(100), nullable=True)
    discount_type = db.Column(db.String(16), nullable=False, default="none")  # none, percentage, fixed, free

    original_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    credited_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    payment_status = db.Column(db.String(16), nullable=False, default="pending")  # pending, partial, paid, refunded
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    order = db.relationship("Order", back_populates="players")
    covering_payments = db.relationship(
        "OrderPayment",
        secondary=order_payment_players,
        back_populates="covered_players",
        lazy=True,
    )

    @property
    def has_discount(self) -> bool:
        return self.discount_amount is not None and self.discount_amount > 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "player_order": self.player_order,
            "player_name": self.player_name,
            "player_phone": self.player_phone,
            "role_template_id": self.role_template_id,
            "template_snapshot": self.template_snapshot,
            "selected_role_name": self.selected_role_name,
            "discount_type": self.discount_type,
            "original_amount": money_str(self.original_amount),
            "discount_amount": money_str(self.discount_amount),
            "final_amount": money_str(self.final_amount),
            "credited_amount": money_str(self.credited_amount),
            "payment_status": self.payment_status,
            "has_discount": self.has_discount,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class OrderPayment(db.Model):
    """
    One payer's payment toward one or more players of an order.

    State machine: pending -> confirmed | failed | cancelled (all terminal).
    Only pending payments are editable.
    """
    __tablename__ = "order_payments"
    __table_args__ = (
        db.Index("ix_order_payments_order_status", "order_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    payer_name = db.Column(db.String(255), nullable=False)
    payer_phone = db.Column(db.String(32), nullable=True)

    payment_amount = db.Column(db.Numeric(15, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)  # cash, bank_transfer, qris, credit_card, e_wallet, other
    payment_status = db.Column(db.String(16), nullable=False, default="pending")

    proof_refs = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    order = db.relationship("Order", back_populates="payments")
    covered_players = db.relationship(
        "OrderPlayer",
        secondary=order_payment_players,
        back_populates="covering_payments",
        order_by="OrderPlayer.player_order",
        lazy=True,
    )

    @property
    def covered_player_ids(self) -> list[int]:
        return [p.id for p in self.covered_players]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "payer_name": self.payer_name,
            "payer_phone": self.payer_phone,
            "payment_amount": money_str(self.payment_amount),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "covered_player_ids": self.covered_player_ids,
            "proof_refs": list(self.proof_refs or []),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "confirmed_at": to_utc_z(self.confirmed_at),
            "version_id": self.version_id,
        }


class OrderPaymentEvent(db.Model):
    """
    Append-only payment activity log.

    IMMUTABLE: never update; rows go away only with their order.
    payment_id is a plain integer so history survives payment deletion,
    merges and splits. payload holds a snapshot of the payment.
    """
    __tablename__ = "order_payment_events"
    __table_args__ = (
        db.Index("ix_order_payment_events_order_occurred", "order_id", "occurred_at"),
        db.Index("ix_order_payment_events_payment", "payment_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = db.Column(db.Integer, nullable=True)

    event_type = db.Column(db.String(32), nullable=False, index=True)
    amount = db.Column(db.Numeric(15, 2), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    note = db.Column(db.Text, nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "payment_id": self.payment_id,
            "event_type": self.event_type,
            "amount": money_str(self.amount),
            "actor_user_id": self.actor_user_id,
            "note": self.note,
            "payload": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
        }
