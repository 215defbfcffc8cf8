# Overview: Flask API routes for health and the current identity.

"""
System health and identity endpoints.
"""
import time

from flask import Blueprint, current_app, jsonify, g

from ..extensions import db
from ..decorators import require_auth
from ..models import Location, Material
from ..models.reference import LOCATION_TYPE_SHOP
from ..permissions import get_permission_definition
from ..services.permission_service import get_user_permissions
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and that a SHOP location is configured.
    """
    start_time = time.time()
    try:
        material_count = db.session.query(Material).count()
        shop_count = db.session.query(Location).filter_by(type=LOCATION_TYPE_SHOP).count()
        elapsed_ms = (time.time() - start_time) * 1000
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }

    result = {
        "status": "healthy",
        "latency_ms": round(elapsed_ms, 2),
        "details": {
            "materials": material_count,
            "shop_configured": shop_count > 0,
        }
    }
    if shop_count == 0:
        # Movements fail until a SHOP exists
        result["status"] = "degraded"
        result["warning"] = "No SHOP location configured"
    return result


@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return jsonify({
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }), http_status


@system_bp.get("/api/me")
@require_auth
def me():
    """
    Current user and what their role may do.

    permissions: sorted codes, for client-side checks
    permission_details: code, name, description and category of each, for display
    """
    user = g.current_user
    codes = sorted(get_user_permissions(user))
    return jsonify({
        "user": user.to_dict(),
        "permissions": codes,
        "permission_details": [get_permission_definition(code) for code in codes],
    })
