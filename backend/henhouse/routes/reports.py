from flask import Blueprint, jsonify, request

from henhouse.decorators import require_auth, require_role
from henhouse.models.auth import ROLE_ADMIN
from henhouse.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

MAX_DAYS = 366
MAX_TOP = 50


@reports_bp.get("/dashboard")
@require_auth
@require_role(ROLE_ADMIN)
def dashboard_report():
    days = request.args.get("days", default=7, type=int)
    limit = request.args.get("limit", default=5, type=int)

    try:
        report = reporting_service.dashboard(
            days=min(days, MAX_DAYS),
            limit=max(1, min(limit, MAX_TOP)),
        )
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/daily-revenue")
@require_auth
@require_role(ROLE_ADMIN)
def daily_revenue_report():
    days = request.args.get("days", default=7, type=int)

    try:
        report = reporting_service.daily_revenue(days=min(days, MAX_DAYS))
        return jsonify({"days": report}), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/top-products")
@require_auth
@require_role(ROLE_ADMIN)
def top_products_report():
    limit = request.args.get("limit", default=5, type=int)
    return jsonify({"items": reporting_service.top_products(limit=max(1, min(limit, MAX_TOP)))}), 200


@reports_bp.get("/summary")
@require_auth
@require_role(ROLE_ADMIN)
def summary_report():
    return jsonify(reporting_service.summary_stats()), 200
