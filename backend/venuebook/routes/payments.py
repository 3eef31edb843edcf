# Overview: Flask API routes for individual payments: edits, state transitions, merge and split.

from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission
from ..services import payment_service, summary_service, tenant_service
from ..services.payment_service import MergeCommand, PaymentUpdate, SplitSpec
from ..validation import ValidationError, ConflictError, NotFoundError, parse_command

payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _with_summary(payment) -> dict:
    return {
        "payment": payment.to_dict(),
        "summary": summary_service.get_order_summary(payment.order_id).to_dict(),
    }


@payments_bp.get("/<int:payment_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_payment(payment_id: int):
    try:
        payment = tenant_service.require_payment_in_scope(payment_id, g.scope)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(payment.to_dict()), 200


@payments_bp.patch("/<int:payment_id>")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def update_payment(payment_id: int):
    """Edit a pending payment; omitted fields stay unchanged."""
    try:
        tenant_service.require_payment_in_scope(payment_id, g.scope)
        command = parse_command(PaymentUpdate, request.get_json(silent=True))
        payment = payment_service.update_payment(payment_id, command, g.current_user.id)
        return jsonify(_with_summary(payment)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.delete("/<int:payment_id>")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def delete_payment(payment_id: int):
    try:
        tenant_service.require_payment_in_scope(payment_id, g.scope)
        order = payment_service.delete_payment(payment_id, g.current_user.id)
        summary = summary_service.get_order_summary(order.id)
        return jsonify({"deleted": True, "payment_id": payment_id, "summary": summary.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/confirm")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def confirm_payment(payment_id: int):
    try:
        tenant_service.require_payment_in_scope(payment_id, g.scope)
        payment = payment_service.confirm_payment(payment_id, g.current_user.id)
        return jsonify(_with_summary(payment)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to confirm payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/fail")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def fail_payment(payment_id: int):
    data = request.get_json(silent=True) or {}
    try:
        tenant_service.require_payment_in_scope(payment_id, g.scope)
        payment = payment_service.fail_payment(payment_id, g.current_user.id, data.get("reason"))
        return jsonify(_with_summary(payment)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to mark payment failed")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/cancel")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def cancel_payment(payment_id: int):
    data = request.get_json(silent=True) or {}
    try:
        tenant_service.require_payment_in_scope(payment_id, g.scope)
        payment = payment_service.cancel_payment(payment_id, g.current_user.id, data.get("reason"))
        return jsonify(_with_summary(payment)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to cancel payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/proofs")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def attach_proofs(payment_id: int):
    data = request.get_json(silent=True) or {}
    try:
        tenant_service.require_payment_in_scope(payment_id, g.scope)
        payment = payment_service.attach_payment_proofs(
            payment_id,
            data.get("proof_refs"),
            mode=data.get("mode", "append"),
            user_id=g.current_user.id,
        )
        return jsonify(payment.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to attach payment proofs")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/merge")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def merge_payments():
    """Body: {payment_ids: [...], payer_name?, payer_phone?, payment_method?, payment_status?, notes?}"""
    try:
        command = parse_command(MergeCommand, request.get_json(silent=True))
        for pid in command.payment_ids:
            tenant_service.require_payment_in_scope(pid, g.scope)
        merged = payment_service.merge_payments(command.payment_ids, command.target(), g.current_user.id)
        return jsonify(_with_summary(merged)), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to merge payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/split")
@require_auth
@require_permission("MANAGE_ORDER_PAYMENTS")
def split_payment(payment_id: int):
    """
    Body: {splits: [{payment_amount, covered_player_ids, payer_name?, ...}]}

    Parts that do not add up to the original still succeed; the response
    then carries a split_sum_mismatch warning.
    """
    data = request.get_json(silent=True) or {}
    try:
        original = tenant_service.require_payment_in_scope(payment_id, g.scope)
        order_id = original.order_id
        raw_splits = data.get("splits")
        if not isinstance(raw_splits, list) or not raw_splits:
            raise ValidationError("splits must be a non-empty list")
        specs = [parse_command(SplitSpec, item) for item in raw_splits]

        result = payment_service.split_payment(payment_id, specs, g.current_user.id)
        summary = summary_service.get_order_summary(order_id)
        return jsonify({
            "payments": [p.to_dict() for p in result.payments],
            "warnings": [w.to_dict() for w in result.warnings],
            "summary": summary.to_dict(),
        }), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to split payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/refund-players")
@require_auth
@require_permission("REFUND_PLAYERS")
def refund_players():
    data = request.get_json(silent=True) or {}
    try:
        order_id = data.get("order_id")
        if not isinstance(order_id, int) or isinstance(order_id, bool):
            raise ValidationError("order_id is required")
        tenant_service.require_order_in_scope(order_id, g.scope)
        players = payment_service.mark_players_refunded(order_id, data.get("player_ids"), g.current_user.id)
        summary = summary_service.get_order_summary(order_id)
        return jsonify({"players": [p.to_dict() for p in players], "summary": summary.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to refund players")
        return jsonify({"error": "Internal server error"}), 500
