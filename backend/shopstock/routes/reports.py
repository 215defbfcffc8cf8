# Overview: Flask API routes for dashboard and reports; returns JSON read models.

"""
Reporting routes.

SECURITY: All routes require VIEW_REPORTS permission.
"""
from flask import Blueprint, jsonify

from ..decorators import require_auth, require_permission
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")
dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def dashboard_stats_route():
    return jsonify(reporting_service.dashboard_stats())


@reports_bp.get("/inventory")
@require_auth
@require_permission("VIEW_REPORTS")
def inventory_report_route():
    """Every balance row with Low Stock / OK status."""
    return jsonify({"report": reporting_service.inventory_report()})


@reports_bp.get("/usage-by-job")
@require_auth
@require_permission("VIEW_REPORTS")
def usage_by_job_route():
    return jsonify({"report": reporting_service.usage_by_job()})


@reports_bp.get("/purchase-history")
@require_auth
@require_permission("VIEW_REPORTS")
def purchase_history_route():
    return jsonify({"report": reporting_service.purchase_history()})
