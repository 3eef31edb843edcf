# Overview: Flask API routes for read-only reports over payments, roles and the pricing calendar.

from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_permission
from ..services import reporting_service, tenant_service
from ..services.tenant_service import TenantAccessError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _report_store_ids() -> list[int]:
    """?store_id narrows to one store in scope; otherwise every accessible store."""
    store_id = request.args.get("store_id", type=int)
    if store_id:
        tenant_service.require_store_in_scope(store_id, g.scope)
        return [store_id]
    return sorted(g.scope.accessible_store_ids)


def _ranged_report(report_fn):
    try:
        report = report_fn(
            company_id=g.company_id,
            store_ids=_report_store_ids(),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404


@reports_bp.get("/payments")
@require_auth
@require_permission("VIEW_REPORTS")
def payment_report():
    return _ranged_report(reporting_service.payment_stats)


@reports_bp.get("/payment-methods")
@require_auth
@require_permission("VIEW_REPORTS")
def payment_method_report():
    return _ranged_report(reporting_service.payment_method_stats)


@reports_bp.get("/payers")
@require_auth
@require_permission("VIEW_REPORTS")
def payer_report():
    return _ranged_report(reporting_service.payer_stats)


@reports_bp.get("/players-by-role")
@require_auth
@require_permission("VIEW_REPORTS")
def players_by_role_report():
    return _ranged_report(reporting_service.players_by_role)


@reports_bp.get("/role-usage")
@require_auth
@require_permission("VIEW_REPORTS")
def role_usage_report():
    return _ranged_report(reporting_service.role_usage_stats)


@reports_bp.get("/role-templates")
@require_auth
@require_permission("VIEW_REPORTS")
def role_template_report():
    return jsonify(reporting_service.role_template_stats(company_id=g.company_id)), 200


@reports_bp.get("/calendar")
@require_auth
@require_permission("VIEW_REPORTS")
def calendar_report():
    return jsonify(reporting_service.calendar_stats(company_id=g.company_id)), 200


@reports_bp.get("/upcoming-special-dates")
@require_auth
@require_permission("VIEW_REPORTS")
def upcoming_special_dates_report():
    store_id = request.args.get("store_id", type=int)
    days = request.args.get("days", default=30, type=int)
    try:
        if store_id:
            tenant_service.require_store_in_scope(store_id, g.scope)
        report = reporting_service.upcoming_special_dates(
            company_id=g.company_id,
            store_id=store_id,
            days=days,
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except TenantAccessError as exc:
        return jsonify({"error": str(exc)}), 404
