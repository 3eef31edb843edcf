# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging with Multi-Tenant Support

WHY: Enforce role-based access control and create an audit trail.

MULTI-TENANT: Security events include company_id and store_id. Roles are
company-scoped; permission definitions are global.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require explicit permission grant
- Log denials only: permission grants are not logged
"""

from ..extensions import db
from ..models import Role, RolePermission, Permission, SecurityEvent, UserRole
from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS
from venuebook.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    company_id: int | None = None,
    store_id: int | None = None
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - PERMISSION_DENIED
    - CROSS_TENANT_ACCESS_DENIED
    - TENANT_CONTEXT_MISSING
    """
    event = SecurityEvent(
        user_id=user_id,
        company_id=company_id,
        store_id=store_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user_id: int) -> set[str]:
    """
    Get all permission codes for a user.

    Returns set of permission codes (e.g., {"VIEW_ORDERS", "MANAGE_PRICING"}).
    """
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .all()
    )
    return {code for (code,) in rows}


def user_has_permission(user_id: int, permission_code: str) -> bool:
    """
    Check if user has a specific permission.

    SYSTEM_ADMIN implies every permission.
    """
    user_permissions = get_user_permissions(user_id)
    return permission_code in user_permissions or "SYSTEM_ADMIN" in user_permissions


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    company_id: int | None = None,
    store_id: int | None = None
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are written to security_events with tenant context.

    Usage:
        require_permission(user.id, "MANAGE_ORDER_PAYMENTS", resource=request.path, company_id=g.company_id)
    """
    if not user_has_permission(user_id, permission_code):
        log_security_event(
            user_id=user_id,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=permission_code,
            reason=f"Missing permission: {permission_code}",
            ip_address=ip_address,
            user_agent=user_agent,
            company_id=company_id,
            store_id=store_id
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def initialize_permissions() -> int:
    """
    Initialize all permission definitions in database.

    Idempotent: safe to run multiple times.
    """
    created_count = 0

    for code, name, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(code=code).first()

        if not existing:
            permission = Permission(
                code=code,
                name=name,
                description=description,
                category=category
            )
            db.session.add(permission)
            created_count += 1

    db.session.commit()
    return created_count


def ensure_default_roles(company_id: int) -> dict[str, Role]:
    """Create the default roles for a company if missing; returns name -> Role."""
    roles = {}
    for role_name in DEFAULT_ROLE_PERMISSIONS:
        role = db.session.query(Role).filter_by(company_id=company_id, name=role_name).first()
        if not role:
            role = Role(company_id=company_id, name=role_name)
            db.session.add(role)
        roles[role_name] = role
    db.session.commit()
    return roles


def assign_default_role_permissions(company_id: int) -> int:
    """
    Assign default permissions to a company's roles based on DEFAULT_ROLE_PERMISSIONS.

    Idempotent: skips existing grants.
    """
    created_count = 0

    for role_name, permission_codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(company_id=company_id, name=role_name).first()

        if not role:
            continue

        for permission_code in permission_codes:
            permission = db.session.query(Permission).filter_by(code=permission_code).first()

            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count


def assign_role(user_id: int, company_id: int, role_name: str) -> UserRole:
    """Attach a company role to a user (idempotent)."""
    role = db.session.query(Role).filter_by(company_id=company_id, name=role_name).first()
    if not role:
        raise ValueError(f"Role '{role_name}' not found")

    existing = db.session.query(UserRole).filter_by(user_id=user_id, role_id=role.id).first()
    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)
    db.session.add(user_role)
    db.session.commit()
    return user_role
