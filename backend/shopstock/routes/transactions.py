# Overview: Flask API routes for stock movements and the transaction history; parses input and returns JSON responses.

"""
Stock movement routes.

SECURITY: All routes require authentication.
- Receive requires RECEIVE_INVENTORY
- Transfer requires TRANSFER_INVENTORY
- Issue requires ISSUE_INVENTORY
- Adjustment requires ADJUST_INVENTORY
- History requires VIEW_INVENTORY

Every movement returns 201 {"transaction": {...}}. Rejections carry
{"error", "code", "details"}; details include the on-hand balance when stock
was insufficient.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import InventoryError
from ..validation import optional_int, optional_str, required_int
from ..decorators import require_auth, require_permission
from ..services import history_service, movement_service


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


@transactions_bp.post("/receive")
@require_auth
@require_permission("RECEIVE_INVENTORY")
def receive_route():
    """Receive stock into the SHOP."""
    payload = _payload()

    try:
        tx = movement_service.receive_material(
            material_id=required_int(payload, "material_id"),
            quantity=required_int(payload, "quantity", code="INVALID_QUANTITY"),
            actor_user_id=g.current_user.id,
            vendor=optional_str(payload, "vendor"),
            po_number=optional_str(payload, "po_number"),
            invoice_number=optional_str(payload, "invoice_number"),
            notes=optional_str(payload, "notes"),
            invoice_photos=payload.get("invoice_photos"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive material")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/transfer")
@require_auth
@require_permission("TRANSFER_INVENTORY")
def transfer_route():
    """Move stock from the SHOP to a JOB."""
    payload = _payload()

    try:
        tx = movement_service.transfer_material(
            material_id=required_int(payload, "material_id"),
            quantity=required_int(payload, "quantity", code="INVALID_QUANTITY"),
            to_location_id=required_int(payload, "to_location_id", code="INVALID_DESTINATION"),
            actor_user_id=g.current_user.id,
            notes=optional_str(payload, "notes"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to transfer material")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/issue")
@require_auth
@require_permission("ISSUE_INVENTORY")
def issue_route():
    """Consume stock at a JOB."""
    payload = _payload()

    try:
        tx = movement_service.issue_material(
            material_id=required_int(payload, "material_id"),
            quantity=required_int(payload, "quantity", code="INVALID_QUANTITY"),
            from_location_id=required_int(payload, "from_location_id", code="INVALID_SOURCE"),
            actor_user_id=g.current_user.id,
            notes=optional_str(payload, "notes"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to issue material")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/adjustment")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjustment_route():
    """
    Correct one balance by a signed quantity_delta.

    Body: material_id, location_id, quantity_delta, reason,
    original_transaction_id (optional).
    """
    payload = _payload()

    try:
        tx = movement_service.adjust_inventory(
            material_id=required_int(payload, "material_id"),
            location_id=required_int(payload, "location_id"),
            quantity_delta=required_int(payload, "quantity_delta", code="INVALID_DELTA"),
            reason=payload.get("reason"),
            actor_user_id=g.current_user.id,
            original_transaction_id=optional_int(payload, "original_transaction_id"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/history")
@require_auth
@require_permission("VIEW_INVENTORY")
def history_route():
    """
    Transaction log, newest first.

    Query params: material_id, location_id (either side), type, limit.
    """
    try:
        transactions = history_service.list_transactions(
            material_id=optional_int(request.args, "material_id"),
            location_id=optional_int(request.args, "location_id"),
            type=request.args.get("type") or None,
            limit=optional_int(request.args, "limit"),
        )
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"transactions": [history_service.format_transaction(tx) for tx in transactions]})
