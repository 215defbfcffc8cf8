# Overview: Flask API routes for locations operations; parses input and returns JSON responses.

"""
Location routes.

SECURITY: All routes require authentication.
- Listing requires VIEW_INVENTORY permission
- Creating and opening/closing JOB locations requires MANAGE_LOCATIONS
"""
from flask import Blueprint, request, jsonify

from ..errors import InventoryError
from ..models import Location
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from ..decorators import require_auth, require_permission
from ..services import reference_service


LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type"},
    required_on_create={"name", "type"},
)

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_locations_route():
    """
    Query params:
    - type: SHOP | JOB (optional)
    - active: "true" to hide closed jobs
    """
    try:
        locations = reference_service.list_locations(
            type=request.args.get("type") or None,
            active_only=request.args.get("active", "").lower() == "true",
        )
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"locations": [loc.to_dict() for loc in locations]})


@locations_bp.post("")
@require_auth
@require_permission("MANAGE_LOCATIONS")
def create_location_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
        location = reference_service.create_location(name=patch["name"], type=patch["type"])
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"location": location.to_dict()}), 201


@locations_bp.put("/<int:location_id>")
@require_auth
@require_permission("MANAGE_LOCATIONS")
def update_location_route(location_id: int):
    """Open or close a JOB location. Body: {"is_active": bool}."""
    payload = request.get_json(silent=True) or {}

    try:
        is_active = payload.get("is_active")
        if not isinstance(is_active, bool):
            raise ValidationError("is_active must be true or false")
        location = reference_service.set_location_active(location_id, is_active)
    except InventoryError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"location": location.to_dict()})
