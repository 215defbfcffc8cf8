# Overview: Service-layer operations for reporting; read-only projections over balances and the transaction log.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import InventoryBalance, InventoryTransaction, Location, Material
from ..models.inventory import TX_TYPE_ISSUE, TX_TYPE_RECEIVE
from ..models.reference import LOCATION_TYPE_JOB
from ..time_utils import to_utc_z
from .history_service import list_transactions


RECENT_TRANSACTION_COUNT = 5
UNKNOWN_LABEL = "Unknown"


def dashboard_stats() -> dict:
    total_materials = db.session.query(func.count(Material.id)).scalar() or 0

    low_stock_items = (
        db.session.query(func.count(InventoryBalance.id))
        .join(Material, InventoryBalance.material_id == Material.id)
        .filter(InventoryBalance.quantity < Material.min_stock_level)
        .scalar()
    ) or 0

    active_jobs = (
        db.session.query(func.count(Location.id))
        .filter(Location.type == LOCATION_TYPE_JOB, Location.is_active.is_(True))
        .scalar()
    ) or 0

    total_locations = db.session.query(func.count(Location.id)).scalar() or 0

    category_rows = (
        db.session.query(
            Material.category,
            func.coalesce(func.sum(InventoryBalance.quantity), 0).label("quantity"),
        )
        .outerjoin(InventoryBalance, InventoryBalance.material_id == Material.id)
        .group_by(Material.category)
        .all()
    )

    location_rows = (
        db.session.query(
            Location.name,
            Location.type,
            func.coalesce(func.sum(InventoryBalance.quantity), 0).label("quantity"),
        )
        .outerjoin(InventoryBalance, InventoryBalance.location_id == Location.id)
        .group_by(Location.id, Location.name, Location.type)
        .order_by(Location.name.asc())
        .all()
    )

    recent = list_transactions(limit=RECENT_TRANSACTION_COUNT)

    return {
        "stats": {
            "total_materials": int(total_materials),
            "low_stock_items": int(low_stock_items),
            "active_jobs": int(active_jobs),
            "total_locations": int(total_locations),
        },
        "inventory_by_category": {row.category: int(row.quantity or 0) for row in category_rows},
        "inventory_by_location": [
            {"name": row.name, "type": row.type, "total_items": int(row.quantity or 0)}
            for row in location_rows
        ],
        "recent_transactions": [
            {
                "id": tx.id,
                "type": tx.type,
                "material_name": tx.material.name if tx.material is not None else None,
                "quantity": tx.quantity,
                "from_location_name": tx.from_location.name if tx.from_location is not None else None,
                "to_location_name": tx.to_location.name if tx.to_location is not None else None,
                "user_name": tx.user.display_name if tx.user is not None else None,
                "date": to_utc_z(tx.occurred_at),
            }
            for tx in recent
        ],
    }


def inventory_report() -> list[dict]:
    balances = (
        db.session.query(InventoryBalance)
        .join(Material, InventoryBalance.material_id == Material.id)
        .join(Location, InventoryBalance.location_id == Location.id)
        .order_by(Location.name.asc(), Material.name.asc())
        .all()
    )
    return [
        {
            "location": balance.location.name,
            "location_type": balance.location.type,
            "material": balance.material.name,
            "category": balance.material.category,
            "quantity": balance.quantity,
            "min_stock_level": balance.material.min_stock_level,
            "status": "Low Stock" if balance.is_low_stock else "OK",
        }
        for balance in balances
    ]


def usage_by_job() -> list[dict]:
    """ISSUE quantities summed per job, then per material."""
    issues = (
        db.session.query(InventoryTransaction)
        .options(
            joinedload(InventoryTransaction.material),
            joinedload(InventoryTransaction.from_location),
        )
        .filter(InventoryTransaction.type == TX_TYPE_ISSUE)
        .order_by(InventoryTransaction.id.asc())
        .all()
    )

    jobs: dict[str, dict[str, dict]] = {}
    for tx in issues:
        job_name = tx.from_location.name if tx.from_location is not None else UNKNOWN_LABEL
        materials = jobs.setdefault(job_name, {})
        entry = materials.setdefault(tx.material.name, {
            "material_name": tx.material.name,
            "category": tx.material.category,
            "total_quantity": 0,
        })
        entry["total_quantity"] += tx.quantity

    return [
        {"job_name": job_name, "materials": list(materials.values())}
        for job_name, materials in jobs.items()
    ]


def purchase_history() -> list[dict]:
    """RECEIVE records that name a vendor, grouped by vendor, newest first."""
    receipts = (
        db.session.query(InventoryTransaction)
        .options(joinedload(InventoryTransaction.material))
        .filter(
            InventoryTransaction.type == TX_TYPE_RECEIVE,
            InventoryTransaction.vendor.isnot(None),
        )
        .order_by(InventoryTransaction.occurred_at.desc(), InventoryTransaction.id.desc())
        .all()
    )

    vendors: dict[str, list[dict]] = {}
    for tx in receipts:
        vendors.setdefault(tx.vendor, []).append({
            "transaction_id": tx.id,
            "date": to_utc_z(tx.occurred_at),
            "material_name": tx.material.name,
            "quantity": tx.quantity,
            "po_number": tx.po_number,
            "invoice_number": tx.invoice_number,
        })

    return [{"vendor": vendor, "purchases": purchases} for vendor, purchases in vendors.items()]
