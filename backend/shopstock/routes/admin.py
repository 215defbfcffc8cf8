# Overview: Flask API routes for administrative maintenance; parses input and returns JSON responses.

"""
Admin routes.

SECURITY: Both routes require REBUILD_TOTALS (Admin only).
"""
from flask import Blueprint, jsonify, g, current_app

from ..errors import InventoryError
from ..decorators import require_auth, require_permission
from ..services import reconciliation_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/rebuild-totals")
@require_auth
@require_permission("REBUILD_TOTALS")
def rebuild_totals_route():
    """
    Recompute every running total from the balances and append an audit record.
    """
    try:
        summary = reconciliation_service.rebuild_totals(g.current_user.id)
        return jsonify(summary)
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to rebuild totals")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/total-discrepancies")
@require_auth
@require_permission("REBUILD_TOTALS")
def total_discrepancies_route():
    """Read-only comparison of cached totals with the balances."""
    discrepancies = reconciliation_service.find_total_discrepancies()
    return jsonify({"discrepancies": discrepancies, "count": len(discrepancies)})
