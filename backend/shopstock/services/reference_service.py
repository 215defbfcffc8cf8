# Overview: Service-layer operations for materials and locations (reference data).

"""
Reference store: Material and Location lookups plus the small amount of CRUD
the inventory core depends on.

SHOP LOCATION:
The movement engine resolves "the" SHOP by type. Uniqueness is enforced here
at creation time, so get_shop_location() never has to choose between two
candidates. Rows created outside this service are still resolved by lowest id.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..errors import InvalidInputError, NotFoundError, NoShopLocationError, ReferentialConflictError
from ..extensions import db
from ..models import InventoryTransaction, Location, Material, MaterialTotal
from ..models.reference import (
    DEFAULT_MATERIAL_UNIT,
    LOCATION_TYPE_JOB,
    LOCATION_TYPE_SHOP,
    LOCATION_TYPES,
    MATERIAL_CATEGORIES,
    MATERIAL_UNITS,
)
from .concurrency import lock_for_update


logger = logging.getLogger(__name__)


# =============================================================================
# LOOKUPS
# =============================================================================

def get_material(material_id: int, *, lock: bool = False) -> Material:
    query = db.session.query(Material).filter_by(id=material_id)
    if lock:
        query = lock_for_update(query)
    material = query.first()
    if material is None:
        raise NotFoundError(
            f"Material {material_id} not found",
            code="MATERIAL_NOT_FOUND",
            details={"material_id": material_id},
        )
    return material


def get_location(location_id: int) -> Location:
    location = db.session.query(Location).filter_by(id=location_id).first()
    if location is None:
        raise NotFoundError(
            f"Location {location_id} not found",
            code="LOCATION_NOT_FOUND",
            details={"location_id": location_id},
        )
    return location


def get_shop_location() -> Location:
    shop = (
        db.session.query(Location)
        .filter_by(type=LOCATION_TYPE_SHOP)
        .order_by(Location.id.asc())
        .first()
    )
    if shop is None:
        raise NoShopLocationError("SHOP location not found")
    return shop


def list_materials(*, category: str | None = None) -> list[Material]:
    query = db.session.query(Material)
    if category:
        _check_category(category)
        query = query.filter(Material.category == category)
    return query.order_by(Material.name.asc()).all()


def list_locations(*, type: str | None = None, active_only: bool = False) -> list[Location]:
    query = db.session.query(Location)
    if type:
        _check_location_type(type)
        query = query.filter(Location.type == type)
    if active_only:
        query = query.filter(Location.is_active.is_(True))
    return query.order_by(Location.name.asc()).all()


# =============================================================================
# MATERIALS
# =============================================================================

def _check_category(category: str) -> None:
    if category not in MATERIAL_CATEGORIES:
        raise InvalidInputError(
            f"category must be one of: {', '.join(MATERIAL_CATEGORIES)}",
            code="INVALID_FIELD",
            details={"category": category},
        )


def _normalize_unit(unit: str | None) -> str:
    # Unknown units fall back to the default rather than failing
    return unit if unit in MATERIAL_UNITS else DEFAULT_MATERIAL_UNIT


def _check_min_stock(value: int) -> None:
    if value < 0:
        raise InvalidInputError("min_stock_level must be >= 0", code="INVALID_FIELD")


def _ensure_unique_material_name(name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Material).filter(Material.name == name)
    if exclude_id is not None:
        query = query.filter(Material.id != exclude_id)
    if query.first() is not None:
        raise ReferentialConflictError(
            f"Material named {name!r} already exists",
            code="DUPLICATE_NAME",
            details={"name": name},
        )


def _commit_reference_change() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ReferentialConflictError("Reference data conflicts with an existing row") from exc


def create_material(
    *,
    name: str,
    category: str,
    unit: str | None = None,
    min_stock_level: int | None = None,
) -> Material:
    """
    Create a material together with its running total at 0.
    """
    _check_category(category)
    min_stock = 0 if min_stock_level is None else min_stock_level
    _check_min_stock(min_stock)
    _ensure_unique_material_name(name)

    material = Material(
        name=name,
        category=category,
        unit=_normalize_unit(unit),
        min_stock_level=min_stock,
    )
    material.total = MaterialTotal(total_qty=0)
    db.session.add(material)
    _commit_reference_change()

    logger.info("Created material %s (%s)", material.id, material.name)
    return material


def _check_unit(unit: str) -> None:
    if unit not in MATERIAL_UNITS:
        raise InvalidInputError(
            f"unit must be one of: {', '.join(MATERIAL_UNITS)}",
            code="INVALID_FIELD",
            details={"unit": unit},
        )


def update_material(material_id: int, patch: dict) -> Material:
    """
    Partial update. Every field is checked before any is applied.

    Unlike create, which falls back to the default unit, an explicit unit
    edit must name a known unit.
    """
    material = get_material(material_id)

    if patch.get("name"):
        _ensure_unique_material_name(patch["name"], exclude_id=material.id)
    if patch.get("category"):
        _check_category(patch["category"])
    if patch.get("unit"):
        _check_unit(patch["unit"])
    if patch.get("min_stock_level") is not None:
        _check_min_stock(patch["min_stock_level"])

    for field in ("name", "category", "unit"):
        if patch.get(field):
            setattr(material, field, patch[field])
    if patch.get("min_stock_level") is not None:
        material.min_stock_level = patch["min_stock_level"]

    _commit_reference_change()
    return material


def delete_material(material_id: int) -> None:
    """
    Delete a material, cascading to its balances and running total.

    Materials referenced by the transaction log cannot be removed: the log is
    append-only and every record must keep pointing at its material.
    """
    material = get_material(material_id)

    history_count = (
        db.session.query(InventoryTransaction)
        .filter(InventoryTransaction.material_id == material.id)
        .count()
    )
    if history_count:
        raise ReferentialConflictError(
            f"Material {material.id} has {history_count} transaction(s) and cannot be deleted",
            details={"material_id": material.id, "transaction_count": history_count},
        )

    db.session.delete(material)
    _commit_reference_change()
    logger.info("Deleted material %s", material_id)


# =============================================================================
# LOCATIONS
# =============================================================================

def _check_location_type(location_type: str) -> None:
    if location_type not in LOCATION_TYPES:
        raise InvalidInputError(
            f"type must be one of: {', '.join(LOCATION_TYPES)}",
            code="INVALID_FIELD",
            details={"type": location_type},
        )


def create_location(*, name: str, type: str) -> Location:
    _check_location_type(type)

    if db.session.query(Location).filter(Location.name == name).first() is not None:
        raise ReferentialConflictError(
            f"Location named {name!r} already exists",
            code="DUPLICATE_NAME",
            details={"name": name},
        )

    if type == LOCATION_TYPE_SHOP:
        existing_shop = db.session.query(Location).filter_by(type=LOCATION_TYPE_SHOP).first()
        if existing_shop is not None:
            raise ReferentialConflictError(
                "A SHOP location already exists",
                code="SHOP_ALREADY_EXISTS",
                details={"shop_location_id": existing_shop.id},
            )

    location = Location(name=name, type=type, is_active=True)
    db.session.add(location)
    _commit_reference_change()

    logger.info("Created %s location %s (%s)", location.type, location.id, location.name)
    return location


def set_location_active(location_id: int, is_active: bool) -> Location:
    """Open or close a JOB location."""
    location = get_location(location_id)
    if location.type != LOCATION_TYPE_JOB:
        raise InvalidInputError(
            "Only JOB locations can be opened or closed",
            code="INVALID_FIELD",
            details={"location_id": location.id, "type": location.type},
        )

    location.is_active = is_active
    _commit_reference_change()
    return location
