# Overview: Flask API routes for materials operations; parses input and returns JSON responses.

"""
Material management routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_INVENTORY permission
- Create/edit require MANAGE_MATERIALS permission
- Delete requires DELETE_MATERIALS permission
"""
from flask import Blueprint, request, jsonify

from ..errors import InventoryError
from ..models import Material
from ..validation import ModelValidationPolicy, validate_payload
from ..decorators import require_auth, require_permission
from ..services import reference_service


MATERIAL_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category", "unit", "min_stock_level"},
    required_on_create={"name", "category"},
)

materials_bp = Blueprint("materials", __name__, url_prefix="/api/materials")


@materials_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_materials_route():
    """
    List materials ordered by name.

    Query params:
    - category: str (optional)
    """
    try:
        materials = reference_service.list_materials(category=request.args.get("category") or None)
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"materials": [m.to_dict(include_balances=True) for m in materials]})


@materials_bp.get("/<int:material_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_material_route(material_id: int):
    try:
        material = reference_service.get_material(material_id)
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"material": material.to_dict(include_balances=True)})


@materials_bp.post("")
@require_auth
@require_permission("MANAGE_MATERIALS")
def create_material_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_POLICY, partial=False)
        material = reference_service.create_material(
            name=patch["name"],
            category=patch["category"],
            unit=patch.get("unit"),
            min_stock_level=patch.get("min_stock_level"),
        )
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"material": material.to_dict()}), 201


@materials_bp.put("/<int:material_id>")
@require_auth
@require_permission("MANAGE_MATERIALS")
def update_material_route(material_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Material, payload=payload, policy=MATERIAL_POLICY, partial=True)
        material = reference_service.update_material(material_id, patch)
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"material": material.to_dict(include_balances=True)})


@materials_bp.delete("/<int:material_id>")
@require_auth
@require_permission("DELETE_MATERIALS")
def delete_material_route(material_id: int):
    """Delete a material that has no transaction history."""
    try:
        reference_service.delete_material(material_id)
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"success": True})
