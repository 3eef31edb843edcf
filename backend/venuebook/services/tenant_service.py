"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation for reuse across services and routes.
Every request is scoped to a company, and store-level staff only see their
own venues.

SECURITY INVARIANTS:
1. Every authenticated request has g.company_id set
2. Store IDs from client input are validated against the caller's scope
3. Records outside the scope are reported as "not found" (existence is not revealed)
4. Cross-tenant access attempts are logged as security events

USAGE:
    scope = get_user_scope(g.current_user)
    order = require_order_in_scope(order_id, scope)
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import has_request_context, request
from ..extensions import db
from ..models import Store, Order, OrderPayment, UserStoreAccess
from ..validation import NotFoundError
from .permission_service import log_security_event


class TenantAccessError(Exception):
    """Raised when cross-tenant store access is attempted."""
    pass


@dataclass(frozen=True)
class TenantScope:
    """What the caller may see: one company, a set of its stores."""
    company_id: int
    accessible_store_ids: frozenset[int]
    user_id: int | None = None

    def can_access_store(self, store_id: int | None) -> bool:
        return store_id is not None and store_id in self.accessible_store_ids


def get_company_store_ids(company_id: int) -> set[int]:
    rows = db.session.query(Store.id).filter_by(company_id=company_id).all()
    return {s.id for s in rows}


def get_user_scope(user) -> TenantScope:
    """
    Resolve a user's tenant scope.

    company-level users see every store of their company; store-level users
    see their primary store plus any UserStoreAccess grants.
    """
    company_store_ids = get_company_store_ids(user.company_id)

    if user.account_level == "company":
        store_ids = company_store_ids
    else:
        store_ids = set()
        if user.store_id:
            store_ids.add(user.store_id)
        grants = db.session.query(UserStoreAccess.store_id).filter_by(user_id=user.id).all()
        store_ids.update(g.store_id for g in grants)
        # Grants never cross the company boundary
        store_ids &= company_store_ids

    return TenantScope(
        company_id=user.company_id,
        accessible_store_ids=frozenset(store_ids),
        user_id=user.id,
    )


def _log_cross_tenant_attempt(reason: str, *, scope: TenantScope | None = None, company_id: int | None = None,
                              attempted_store_id: int | None = None) -> None:
    log_security_event(
        user_id=scope.user_id if scope else None,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=request.path if has_request_context() else None,
        action=request.method if has_request_context() else None,
        reason=reason,
        ip_address=request.remote_addr if has_request_context() else None,
        company_id=scope.company_id if scope else company_id,
        store_id=attempted_store_id,
    )


def require_store_in_company(store_id: int, company_id: int) -> Store:
    """
    Validate that a store belongs to the company.

    Raises TenantAccessError("Store not found") whether the store is missing
    or owned by another company.
    """
    store = db.session.get(Store, store_id)

    if not store:
        raise TenantAccessError("Store not found")

    if store.company_id != company_id:
        _log_cross_tenant_attempt(
            f"Store {store_id} belongs to company {store.company_id}, not {company_id}",
            company_id=company_id,
            attempted_store_id=store_id,
        )
        raise TenantAccessError("Store not found")

    return store


def require_store_in_scope(store_id: int, scope: TenantScope) -> Store:
    store = require_store_in_company(store_id, scope.company_id)
    if not scope.can_access_store(store.id):
        _log_cross_tenant_attempt(
            f"Store {store_id} outside user store scope",
            scope=scope,
            attempted_store_id=store_id,
        )
        raise TenantAccessError("Store not found")
    return store


def require_stores_in_company(store_ids, company_id: int) -> list[Store]:
    """Batch variant used for catalog store_ids lists."""
    if not store_ids:
        return []

    stores = db.session.query(Store).filter(Store.id.in_(list(store_ids))).all()
    found = {s.id: s for s in stores}

    for sid in store_ids:
        store = found.get(sid)
        if store is None or store.company_id != company_id:
            if store is not None:
                _log_cross_tenant_attempt(
                    f"Store {sid} belongs to company {store.company_id}, not {company_id}",
                    company_id=company_id,
                    attempted_store_id=sid,
                )
            raise TenantAccessError("One or more stores not found")

    return stores


def require_order_in_scope(order_id: int, scope: TenantScope) -> Order:
    """
    Load an order the caller may see, or raise NotFoundError.

    Orders of other companies or of stores outside the caller's scope are
    indistinguishable from missing orders.
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    if order.company_id != scope.company_id or not scope.can_access_store(order.store_id):
        _log_cross_tenant_attempt(
            f"Order {order_id} outside caller scope",
            scope=scope,
            attempted_store_id=order.store_id,
        )
        raise NotFoundError("Order not found")

    return order


def require_payment_in_scope(payment_id: int, scope: TenantScope) -> OrderPayment:
    payment = db.session.get(OrderPayment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    try:
        require_order_in_scope(payment.order_id, scope)
    except NotFoundError:
        raise NotFoundError("Payment not found")
    return payment
