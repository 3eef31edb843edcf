# Overview: Flask API routes for price previews and discount lookups.

from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission
from ..services import discount_service, pricing_service, tenant_service
from ..services.discount_service import CalendarDiscountQuery, RoleDiscountQuery
from ..services.pricing_service import PriceQuery
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, parse_command
from venuebook.time_utils import parse_iso_date

pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")


def _scoped_store_id(store_id: int | None) -> int:
    store_id = store_id or g.store_id
    if store_id is None:
        raise ValidationError("store_id is required")
    tenant_service.require_store_in_scope(store_id, g.scope)
    return store_id


@pricing_bp.post("/preview")
@require_auth
@require_permission("VIEW_PRICING")
def preview_price():
    """
    Per-seat price decomposition for a prospective booking.

    Nothing is persisted; the same inputs give the same items.
    """
    try:
        query = parse_command(PriceQuery, request.get_json(silent=True))
        store_id = _scoped_store_id(query.store_id)
        preview = pricing_service.preview_order_price(
            query.unit_price,
            query.player_count,
            query.role_selections,
            company_id=g.company_id,
            store_id=store_id,
            as_of=query.as_of,
            booking_date=query.booking_date,
        )
        return jsonify(preview.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to preview price")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/role-discount")
@require_auth
@require_permission("VIEW_PRICING")
def role_discount():
    try:
        query = parse_command(RoleDiscountQuery, request.get_json(silent=True))
        store_id = _scoped_store_id(query.store_id)
        result = discount_service.resolve_role_discount(
            g.company_id, store_id, query.template_id, query.amount, as_of=query.as_of
        )
        return jsonify(result.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to resolve role discount")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.post("/calendar-discount")
@require_auth
@require_permission("VIEW_PRICING")
def calendar_discount():
    try:
        query = parse_command(CalendarDiscountQuery, request.get_json(silent=True))
        store_id = _scoped_store_id(query.store_id)
        result = discount_service.resolve_calendar_discount(g.company_id, store_id, query.date, query.amount)
        return jsonify(result.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to resolve calendar discount")
        return jsonify({"error": "Internal server error"}), 500


@pricing_bp.get("/templates/available")
@require_auth
@require_permission("VIEW_PRICING")
def available_templates():
    """Role templates a cashier may pick for this store today (or ?as_of=)."""
    try:
        store_id = _scoped_store_id(request.args.get("store_id", type=int))
        try:
            as_of = parse_iso_date(request.args.get("as_of"))
        except ValueError:
            raise ValidationError("as_of must be an ISO-8601 date")
        templates = discount_service.list_available_templates(g.company_id, store_id, as_of=as_of)
        return jsonify({"templates": [t.to_dict() for t in templates]}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
