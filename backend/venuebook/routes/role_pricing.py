# Overview: Flask API routes for role pricing templates.

from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission
from ..services import role_pricing_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, NotFoundError

role_pricing_bp = Blueprint("role_pricing", __name__, url_prefix="/api/role-pricing-templates")


@role_pricing_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_PRICING")
def list_templates():
    store_id = request.args.get("store_id", type=int)
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    templates = role_pricing_service.list_templates(
        g.company_id, store_id=store_id, include_inactive=include_inactive
    )
    return jsonify({"templates": [t.to_dict() for t in templates]}), 200


@role_pricing_bp.route("/expiring", methods=["GET"])
@require_auth
@require_permission("VIEW_PRICING")
def list_expiring():
    days = request.args.get("days", default=current_app.config["TEMPLATE_EXPIRY_WARNING_DAYS"], type=int)
    try:
        templates = role_pricing_service.list_expiring_templates(g.company_id, days=days)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"days": days, "templates": [t.to_dict() for t in templates]}), 200


@role_pricing_bp.route("/<int:template_id>", methods=["GET"])
@require_auth
@require_permission("VIEW_PRICING")
def get_template(template_id: int):
    try:
        template = role_pricing_service.get_template(template_id, g.company_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(template.to_dict()), 200


@role_pricing_bp.route("", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRICING")
def create_template():
    data = request.get_json(silent=True) or {}
    try:
        template = role_pricing_service.create_template(g.company_id, data, g.current_user.id)
        return jsonify(template.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create role pricing template")
        return jsonify({"error": "Internal server error"}), 500


@role_pricing_bp.route("/<int:template_id>", methods=["PATCH"])
@require_auth
@require_permission("MANAGE_PRICING")
def update_template(template_id: int):
    data = request.get_json(silent=True) or {}
    try:
        template = role_pricing_service.update_template(template_id, g.company_id, data)
        return jsonify(template.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (NotFoundError, TenantAccessError) as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update role pricing template")
        return jsonify({"error": "Internal server error"}), 500


@role_pricing_bp.route("/<int:template_id>", methods=["DELETE"])
@require_auth
@require_permission("MANAGE_PRICING")
def deactivate_template(template_id: int):
    """Soft delete; existing players keep their snapshot."""
    try:
        template = role_pricing_service.deactivate_template(template_id, g.company_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(template.to_dict()), 200


@role_pricing_bp.route("/<int:template_id>/copy", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRICING")
def copy_template(template_id: int):
    data = request.get_json(silent=True) or {}
    try:
        copy = role_pricing_service.copy_template_to_stores(
            template_id, g.company_id, data.get("store_ids"), g.current_user.id
        )
        return jsonify(copy.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (NotFoundError, TenantAccessError) as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to copy role pricing template")
        return jsonify({"error": "Internal server error"}), 500
