from __future__ import annotations

from ..extensions import db
from venuebook.money_utils import money_str
from venuebook.time_utils import to_utc_z, to_iso_date


COMPANY_WIDE_SCOPE = "*"


def scope_key_for(store_ids) -> str:
    """'*' for company-wide, otherwise sorted comma-joined store ids."""
    if not store_ids:
        return COMPANY_WIDE_SCOPE
    return ",".join(str(sid) for sid in sorted(set(store_ids)))


class _StoreScopedMixin:
    """Shared scope helpers for catalog rows that carry a store_ids list."""

    @property
    def is_company_wide(self) -> bool:
        return not self.store_ids

    def applies_to_store(self, store_id: int | None) -> bool:
        if not self.store_ids:
            return True
        return store_id is not None and store_id in self.store_ids


class RolePricingTemplate(_StoreScopedMixin, db.Model):
    """
    Named discount rule attached to a player role (e.g., "Student").

    Company-wide when store_ids is empty/NULL, otherwise limited to the listed
    stores. A store-specific template shadows a company-wide template with the
    same role_name for that store.

    WHY never hard-deleted: players keep a template_snapshot but may also hold
    role_template_id; "delete" flips is_active instead.
    """
    __tablename__ = "role_pricing_templates"
    __table_args__ = (
        db.Index("ix_role_pricing_templates_company_active", "company_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    store_ids = db.Column(db.JSON, nullable=True)  # [] / NULL = company-wide

    role_name = db.Column(db.String(100), nullable=False)
    role_description = db.Column(db.Text, nullable=True)

    discount_type = db.Column(db.String(16), nullable=False)  # percentage, fixed, free
    discount_value = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    valid_from = db.Column(db.Date, nullable=True)
    valid_to = db.Column(db.Date, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def is_valid_on(self, as_of) -> bool:
        if self.valid_from and as_of < self.valid_from:
            return False
        if self.valid_to and as_of > self.valid_to:
            return False
        return True

    def snapshot(self) -> dict:
        """Frozen copy of the discount terms, stored on players."""
        return {
            "template_id": self.id,
            "role_name": self.role_name,
            "discount_type": self.discount_type,
            "discount_value": money_str(self.discount_value),
            "store_ids": list(self.store_ids or []),
            "valid_from": to_iso_date(self.valid_from),
            "valid_to": to_iso_date(self.valid_to),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "store_ids": list(self.store_ids or []),
            "role_name": self.role_name,
            "role_description": self.role_description,
            "discount_type": self.discount_type,
            "discount_value": money_str(self.discount_value),
            "valid_from": to_iso_date(self.valid_from),
            "valid_to": to_iso_date(self.valid_to),
            "is_active": self.is_active,
            "sort_order": self.sort_order,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PricingCalendarEntry(_StoreScopedMixin, db.Model):
    """
    Date-keyed discount (holiday, weekend, special, promotion).

    Uniqueness: one entry per (company, date, scope_key). At most one
    company-wide entry per date; store-scoped entries may layer on top.
    """
    __tablename__ = "pricing_calendar_entries"
    __table_args__ = (
        db.UniqueConstraint("company_id", "calendar_date", "scope_key", name="uq_pricing_calendar_company_date_scope"),
        db.Index("ix_pricing_calendar_company_date", "company_id", "calendar_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    store_ids = db.Column(db.JSON, nullable=True)
    scope_key = db.Column(db.String(255), nullable=False, default=COMPANY_WIDE_SCOPE)

    calendar_date = db.Column(db.Date, nullable=False)
    calendar_type = db.Column(db.String(16), nullable=False)  # holiday, weekend, special, promotion

    discount_type = db.Column(db.String(16), nullable=False)  # percentage, fixed
    discount_value = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "store_ids": list(self.store_ids or []),
            "calendar_date": to_iso_date(self.calendar_date),
            "calendar_type": self.calendar_type,
            "discount_type": self.discount_type,
            "discount_value": money_str(self.discount_value),
            "description": self.description,
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
