# Overview: Flask API routes for inventory balances; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..errors import InventoryError
from ..validation import optional_int
from ..decorators import require_auth, require_permission
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_inventory_route():
    """
    Balance rows with material and location names.

    Query params:
    - location_id: int (optional)
    - material_id: int (optional)
    - category: str (optional)
    - low_stock: "true" to keep only rows below the material's minimum
    """
    try:
        rows = inventory_service.list_inventory(
            location_id=optional_int(request.args, "location_id"),
            material_id=optional_int(request.args, "material_id"),
            category=request.args.get("category") or None,
            low_stock=request.args.get("low_stock", "").lower() == "true",
        )
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"inventory": rows})
