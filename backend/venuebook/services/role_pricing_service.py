# Overview: Service-layer operations for role pricing templates (discount catalog).

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import RolePricingTemplate
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_role_template,
    validate_payload,
)
from .tenant_service import require_stores_in_company
from venuebook.time_utils import today


ROLE_TEMPLATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "store_ids",
        "role_name",
        "role_description",
        "discount_type",
        "discount_value",
        "valid_from",
        "valid_to",
        "is_active",
        "sort_order",
    },
    required_on_create={"role_name", "discount_type"},
)


def _get_template(template_id: int, company_id: int) -> RolePricingTemplate:
    template = db.session.get(RolePricingTemplate, template_id)
    if not template or template.company_id != company_id:
        raise NotFoundError("Role pricing template not found")
    return template


def get_template(template_id: int, company_id: int) -> RolePricingTemplate:
    return _get_template(template_id, company_id)


def list_templates(
    company_id: int,
    *,
    store_id: int | None = None,
    include_inactive: bool = False,
) -> list[RolePricingTemplate]:
    """Company templates; with store_id, only those applying to that store."""
    q = db.session.query(RolePricingTemplate).filter_by(company_id=company_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    rows = q.order_by(RolePricingTemplate.sort_order.asc(), RolePricingTemplate.id.asc()).all()
    if store_id is not None:
        rows = [t for t in rows if t.applies_to_store(store_id)]
    return rows


def create_template(company_id: int, payload: dict, user_id: int | None = None) -> RolePricingTemplate:
    patch = validate_payload(model=RolePricingTemplate, payload=payload, policy=ROLE_TEMPLATE_POLICY, partial=False)
    if patch.get("discount_type") == "free":
        patch.setdefault("discount_value", 0)
    enforce_rules_role_template(patch)
    require_stores_in_company(patch.get("store_ids") or [], company_id)

    template = RolePricingTemplate(company_id=company_id, created_by_user_id=user_id, **patch)
    db.session.add(template)
    db.session.commit()
    return template


def update_template(template_id: int, company_id: int, payload: dict) -> RolePricingTemplate:
    template = _get_template(template_id, company_id)
    patch = validate_payload(model=RolePricingTemplate, payload=payload, policy=ROLE_TEMPLATE_POLICY, partial=True)
    enforce_rules_role_template(patch, existing=template)
    if "store_ids" in patch:
        require_stores_in_company(patch["store_ids"] or [], company_id)

    for key, value in patch.items():
        setattr(template, key, value)
    db.session.commit()
    return template


def deactivate_template(template_id: int, company_id: int) -> RolePricingTemplate:
    """Soft delete: players may still reference the template id."""
    template = _get_template(template_id, company_id)
    template.is_active = False
    db.session.commit()
    return template


def copy_template_to_stores(
    template_id: int,
    company_id: int,
    store_ids: list[int],
    user_id: int | None = None,
) -> RolePricingTemplate:
    """Create a copy of a template scoped to the given stores."""
    source = _get_template(template_id, company_id)
    if not isinstance(store_ids, list) or not store_ids:
        raise ValidationError("store_ids must be a non-empty list")
    patch = {"store_ids": store_ids}
    enforce_rules_role_template(patch, existing=source)
    require_stores_in_company(patch["store_ids"], company_id)

    copy = RolePricingTemplate(
        company_id=company_id,
        store_ids=patch["store_ids"],
        role_name=source.role_name,
        role_description=source.role_description,
        discount_type=source.discount_type,
        discount_value=source.discount_value,
        valid_from=source.valid_from,
        valid_to=source.valid_to,
        is_active=source.is_active,
        sort_order=source.sort_order,
        created_by_user_id=user_id,
    )
    db.session.add(copy)
    db.session.commit()
    return copy


def list_expiring_templates(company_id: int, days: int = 7) -> list[RolePricingTemplate]:
    """Active templates whose valid_to falls within the next `days` days (today excluded)."""
    if days < 0:
        raise ValidationError("days must be >= 0")
    start = today()
    end = start + timedelta(days=days)
    return (
        db.session.query(RolePricingTemplate)
        .filter(
            RolePricingTemplate.company_id == company_id,
            RolePricingTemplate.is_active.is_(True),
            RolePricingTemplate.valid_to.isnot(None),
            RolePricingTemplate.valid_to > start,
            RolePricingTemplate.valid_to <= end,
        )
        .order_by(RolePricingTemplate.valid_to.asc(), RolePricingTemplate.id.asc())
        .all()
    )
