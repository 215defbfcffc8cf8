# Overview: Service-layer operations for the transaction log; read-only queries and formatting.

from __future__ import annotations

import json

from sqlalchemy import or_
from sqlalchemy.orm import joinedload, selectinload

from ..errors import InvalidInputError
from ..extensions import db
from ..models import InventoryTransaction
from ..models.inventory import TRANSACTION_TYPES
from ..time_utils import to_utc_z


FALLBACK_UNIT = "units"


def list_transactions(
    *,
    material_id: int | None = None,
    location_id: int | None = None,
    type: str | None = None,
    limit: int | None = None,
) -> list[InventoryTransaction]:
    """
    Transaction log, newest first.

    location_id matches records where the location is either the source or the
    destination.
    """
    if type is not None and type not in TRANSACTION_TYPES:
        raise InvalidInputError(
            f"type must be one of: {', '.join(TRANSACTION_TYPES)}",
            code="INVALID_FIELD",
            details={"type": type},
        )
    if limit is not None and limit <= 0:
        raise InvalidInputError("limit must be a positive integer", code="INVALID_FIELD")

    query = db.session.query(InventoryTransaction).options(
        joinedload(InventoryTransaction.material),
        joinedload(InventoryTransaction.from_location),
        joinedload(InventoryTransaction.to_location),
        joinedload(InventoryTransaction.user),
        joinedload(InventoryTransaction.original_transaction),
        selectinload(InventoryTransaction.invoice_photos),
    )

    if material_id is not None:
        query = query.filter(InventoryTransaction.material_id == material_id)
    if location_id is not None:
        query = query.filter(or_(
            InventoryTransaction.from_location_id == location_id,
            InventoryTransaction.to_location_id == location_id,
        ))
    if type is not None:
        query = query.filter(InventoryTransaction.type == type)

    query = query.order_by(InventoryTransaction.occurred_at.desc(), InventoryTransaction.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def _summarize_original(original: InventoryTransaction | None) -> dict | None:
    # One hop only
    if original is None:
        return None
    return {
        "id": original.id,
        "type": original.type,
        "quantity": original.quantity,
        "date": to_utc_z(original.occurred_at),
    }


def format_transaction(tx: InventoryTransaction) -> dict:
    """History row with names resolved for display."""
    material = tx.material
    unit = tx.unit or (material.unit if material is not None else None) or FALLBACK_UNIT

    return {
        "id": tx.id,
        "type": tx.type,
        "material_id": tx.material_id,
        "material_name": material.name if material is not None else None,
        "material_category": material.category if material is not None else None,
        "quantity": tx.quantity,
        "unit": unit,
        "from_location_id": tx.from_location_id,
        "from_location": tx.from_location.name if tx.from_location is not None else None,
        "to_location_id": tx.to_location_id,
        "to_location": tx.to_location.name if tx.to_location is not None else None,
        "user_id": tx.user_id,
        "user_name": tx.user.display_name if tx.user is not None else None,
        "date": to_utc_z(tx.occurred_at),
        "vendor": tx.vendor,
        "po_number": tx.po_number,
        "invoice_number": tx.invoice_number,
        "notes": tx.notes,
        "adjustment_reason": tx.adjustment_reason,
        "original_transaction_id": tx.original_transaction_id,
        "original_transaction": _summarize_original(tx.original_transaction),
        "summary": json.loads(tx.payload) if tx.payload else None,
        "invoice_photos": [photo.to_dict() for photo in tx.invoice_photos],
    }
