# Overview: Flask API routes for orders, their players and their payment ledger.

from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission
from ..services import order_service, payment_service, summary_service, tenant_service
from ..services.order_service import OrderCreate, PlayerCreate, PlayerUpdate
from ..services.payment_service import PaymentCreate
from ..services.tenant_service import TenantAccessError
from ..validation import ValidationError, ConflictError, NotFoundError, parse_command
from venuebook.time_utils import parse_iso_date

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_detail(order) -> dict:
    data = order.to_dict()
    data["players"] = [p.to_dict() for p in order_service.list_players(order.id)]
    data["summary"] = summary_service.build_order_summary(order).to_dict()
    return data


# =============================================================================
# ORDERS
# =============================================================================

@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders():
    store_id = request.args.get("store_id", type=int)
    try:
        order_date = parse_iso_date(request.args.get("order_date"))
    except ValueError:
        return jsonify({"error": "order_date must be an ISO-8601 date"}), 400

    if store_id is not None:
        try:
            tenant_service.require_store_in_scope(store_id, g.scope)
        except TenantAccessError as e:
            return jsonify({"error": str(e)}), 404
        store_ids = [store_id]
    else:
        store_ids = sorted(g.scope.accessible_store_ids)

    orders = order_service.list_orders(g.company_id, store_ids, order_date=order_date)
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.post("")
@require_auth
@require_permission("EDIT_ORDERS")
def create_order():
    """
    Create an order.

    Body: OrderCreate fields plus store_id (defaults to the caller's store).
    With enable_multi_payment the seats are priced immediately.
    """
    data = dict(request.get_json(silent=True) or {})
    try:
        store_id = data.pop("store_id", None) or g.store_id
        if not isinstance(store_id, int) or isinstance(store_id, bool):
            raise ValidationError("store_id is required")
        tenant_service.require_store_in_scope(store_id, g.scope)

        command = parse_command(OrderCreate, data)
        order = order_service.create_order(g.company_id, store_id, command, g.current_user.id)
        return jsonify(_order_detail(order)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TenantAccessError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order(order_id: int):
    try:
        order = tenant_service.require_order_in_scope(order_id, g.scope)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(_order_detail(order)), 200


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("EDIT_ORDERS")
def delete_order(order_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        order_service.delete_order(order_id)
        return jsonify({"deleted": True, "order_id": order_id}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/summary")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order_summary(order_id: int):
    """Same shape for multi- and single-payment orders."""
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        summary = summary_service.get_order_summary(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(summary.to_dict()), 200


@orders_bp.post("/<int:order_id>/enable-multi-payment")
@require_auth
@require_permission("EDIT_ORDERS")
def enable_multi_payment(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        order = order_service.enable_multi_payment(
            order_id, data.get("role_selections"), user_id=g.current_user.id
        )
        return jsonify(_order_detail(order)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to enable multi-payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PLAYERS
# =============================================================================

@orders_bp.get("/<int:order_id>/players")
@require_auth
@require_permission("VIEW_ORDERS")
def list_players(order_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    players = order_service.list_players(order_id)
    return jsonify({"players": [p.to_dict() for p in players]}), 200


@orders_bp.post("/<int:order_id>/players")
@require_auth
@require_permission("EDIT_ORDERS")
def create_player(order_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        command = parse_command(PlayerCreate, request.get_json(silent=True))
        player = order_service.create_player(order_id, command, g.current_user.id)
        return jsonify(player.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to add player")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/players/<int:player_id>")
@require_auth
@require_permission("EDIT_ORDERS")
def update_player(order_id: int, player_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        command = parse_command(PlayerUpdate, request.get_json(silent=True))
        player = order_service.update_player(order_id, player_id, command, g.current_user.id)
        return jsonify(player.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update player")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>/players/<int:player_id>")
@require_auth
@require_permission("EDIT_ORDERS")
def delete_player(order_id: int, player_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        order = order_service.delete_player(order_id, player_id, g.current_user.id)
        return jsonify(_order_detail(order)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to delete player")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS OF AN ORDER
# =============================================================================

@orders_bp.get("/<int:order_id>/payments")
@require_auth
@require_permission("VIEW_ORDERS")
def list_payments(order_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        payments = payment_service.get_order_payments(order_id, status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"payments": [p.to_dict() for p in payments]}), 200


@orders_bp.post("/<int:order_id>/payments")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def create_payment(order_id: int):
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
        command = parse_command(PaymentCreate, request.get_json(silent=True))
        payment = payment_service.create_payment_from_command(order_id, command, g.current_user.id)
        summary = summary_service.get_order_summary(order_id)
        return jsonify({"payment": payment.to_dict(), "summary": summary.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/payment-events")
@require_auth
@require_permission("VIEW_ORDERS")
def list_payment_events(order_id: int):
    payment_id = request.args.get("payment_id", type=int)
    try:
        tenant_service.require_order_in_scope(order_id, g.scope)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    events = payment_service.get_payment_events(order_id, payment_id)
    return jsonify({"events": [e.to_dict() for e in events]}), 200
