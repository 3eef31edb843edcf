# Overview: Flask API routes for the pricing calendar (holiday/weekend/special/promotion days).

from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission
from ..services import pricing_calendar_service
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError, NotFoundError
from venuebook.time_utils import parse_iso_date

pricing_calendar_bp = Blueprint("pricing_calendar", __name__, url_prefix="/api/pricing-calendar")


def _date_arg(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


@pricing_calendar_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_PRICING")
def list_entries():
    try:
        entries = pricing_calendar_service.list_entries(
            g.company_id,
            store_id=request.args.get("store_id", type=int),
            date_from=_date_arg("date_from"),
            date_to=_date_arg("date_to"),
            calendar_type=request.args.get("calendar_type"),
            include_inactive=request.args.get("include_inactive", "false").lower() == "true",
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200


@pricing_calendar_bp.route("/<int:entry_id>", methods=["GET"])
@require_auth
@require_permission("VIEW_PRICING")
def get_entry(entry_id: int):
    try:
        entry = pricing_calendar_service.get_entry(entry_id, g.company_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(entry.to_dict()), 200


@pricing_calendar_bp.route("", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRICING")
def create_entry():
    data = request.get_json(silent=True) or {}
    try:
        entry = pricing_calendar_service.create_entry(g.company_id, data, g.current_user.id)
        return jsonify(entry.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create calendar entry")
        return jsonify({"error": "Internal server error"}), 500


@pricing_calendar_bp.route("/<int:entry_id>", methods=["PATCH"])
@require_auth
@require_permission("MANAGE_PRICING")
def update_entry(entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry = pricing_calendar_service.update_entry(entry_id, g.company_id, data)
        return jsonify(entry.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (NotFoundError, TenantAccessError) as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update calendar entry")
        return jsonify({"error": "Internal server error"}), 500


@pricing_calendar_bp.route("/<int:entry_id>", methods=["DELETE"])
@require_auth
@require_permission("MANAGE_PRICING")
def deactivate_entry(entry_id: int):
    try:
        entry = pricing_calendar_service.deactivate_entry(entry_id, g.company_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(entry.to_dict()), 200


@pricing_calendar_bp.route("/batch-status", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRICING")
def batch_status():
    data = request.get_json(silent=True) or {}
    try:
        updated = pricing_calendar_service.batch_update_status(g.company_id, data.get("ids"), data.get("is_active"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"updated": updated}), 200


@pricing_calendar_bp.route("/holidays", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRICING")
def create_holidays():
    """Bulk holiday import; one bad row rejects the batch."""
    data = request.get_json(silent=True) or {}
    try:
        entries = pricing_calendar_service.create_holidays(g.company_id, data.get("holidays"), g.current_user.id)
        return jsonify({"created": len(entries), "entries": [e.to_dict() for e in entries]}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to import holidays")
        return jsonify({"error": "Internal server error"}), 500


@pricing_calendar_bp.route("/<int:entry_id>/copy", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRICING")
def copy_entry(entry_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry = pricing_calendar_service.copy_entry_to_stores(
            entry_id, g.company_id, data.get("store_ids"), g.current_user.id
        )
        return jsonify(entry.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except (NotFoundError, TenantAccessError) as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to copy calendar entry")
        return jsonify({"error": "Internal server error"}), 500
