# Overview: Service-layer read operations for inventory balances; encapsulates query logic.

"""
Shopstock inventory read model

Ledger model:
- InventoryBalance holds the on-hand quantity per (material, location); it is
  authoritative and only written by movement_service.
- MaterialTotal.total_qty caches SUM(balance.quantity) per material.
- A (material, location) pair with no balance row has quantity 0.

Low stock:
- A balance row is low when quantity < material.min_stock_level.
- Missing rows are never reported as low stock.
"""
from __future__ import annotations

from sqlalchemy import func

from ..errors import InvalidInputError
from ..extensions import db
from ..models import InventoryBalance, Location, Material, MaterialTotal
from ..models.reference import MATERIAL_CATEGORIES


def get_quantity_on_hand(material_id: int, location_id: int) -> int:
    balance = db.session.query(InventoryBalance).filter_by(
        material_id=material_id,
        location_id=location_id,
    ).first()
    return balance.quantity if balance is not None else 0


def get_ledger_total(material_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(InventoryBalance.quantity), 0)
    ).filter(InventoryBalance.material_id == material_id).scalar()
    return int(total or 0)


def get_cached_total(material_id: int) -> int | None:
    """Running-total cache value, or None when no cache row exists."""
    row = db.session.get(MaterialTotal, material_id)
    return row.total_qty if row is not None else None


def _balances_query():
    return (
        db.session.query(InventoryBalance)
        .join(Material, InventoryBalance.material_id == Material.id)
        .join(Location, InventoryBalance.location_id == Location.id)
    )


def list_inventory(
    *,
    location_id: int | None = None,
    material_id: int | None = None,
    category: str | None = None,
    low_stock: bool = False,
) -> list[dict]:
    """Balance rows with material and location names, ordered by location then material."""
    if category is not None and category not in MATERIAL_CATEGORIES:
        raise InvalidInputError(
            f"category must be one of: {', '.join(MATERIAL_CATEGORIES)}",
            code="INVALID_FIELD",
            details={"category": category},
        )

    query = _balances_query()
    if location_id is not None:
        query = query.filter(InventoryBalance.location_id == location_id)
    if material_id is not None:
        query = query.filter(InventoryBalance.material_id == material_id)
    if category is not None:
        query = query.filter(Material.category == category)
    if low_stock:
        query = query.filter(InventoryBalance.quantity < Material.min_stock_level)

    rows = query.order_by(Location.name.asc(), Material.name.asc()).all()
    return [format_balance(balance) for balance in rows]


def format_balance(balance: InventoryBalance) -> dict:
    material = balance.material
    location = balance.location
    return {
        "id": balance.id,
        "material_id": balance.material_id,
        "material_name": material.name,
        "category": material.category,
        "unit": material.unit,
        "location_id": balance.location_id,
        "location_name": location.name,
        "location_type": location.type,
        "quantity": balance.quantity,
        "min_stock_level": material.min_stock_level,
        "is_low_stock": balance.is_low_stock,
    }
