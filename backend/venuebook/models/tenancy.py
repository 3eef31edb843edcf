from __future__ import annotations

from ..extensions import db
from venuebook.time_utils import to_utc_z


class Company(db.Model):
    """
    Multi-tenant root: every venue operator is a Company.

    WHY: Pricing templates, calendar entries, orders and users all belong to
    exactly one company. No data may cross company boundaries.

    DESIGN:
    - Stores belong to companies (company_id FK)
    - Discount catalogs are company-owned and optionally narrowed to stores
    - All queries must be scoped by company_id (directly or via store)
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Store(db.Model):
    """
    Venue location within a company.

    MULTI-TENANT: Store names and codes are unique within a company, not globally.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("company_id", "name", name="uq_stores_company_name"),
        db.UniqueConstraint("company_id", "code", name="uq_stores_company_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("stores", lazy=True))

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
