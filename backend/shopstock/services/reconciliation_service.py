# Overview: Service-layer operations for running-total reconciliation; encapsulates business logic and database work.

"""
Rebuild every MaterialTotal from the InventoryBalance ledger.

The ledger is authoritative; MaterialTotal is a cache that only drifts when
rows are edited outside the movement service. A rebuild:
- locks each material and recomputes SUM(balance.quantity),
- writes the fresh value into the cache (creating the row if missing),
- appends one ADJUSTMENT audit record (quantity 0, no material, no locations)
  whose payload holds the JSON summary of the changed materials,
all in one unit of work.

A second rebuild with no intervening edits reports changed_count == 0 but
still appends its own audit record.
"""
from __future__ import annotations

import json
import logging

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import InventoryBalance, InventoryTransaction, Material, MaterialTotal, User
from ..models.inventory import TX_TYPE_ADJUSTMENT
from ..time_utils import to_utc_z, utcnow
from .concurrency import lock_for_update, run_with_retry


logger = logging.getLogger(__name__)

REBUILD_ACTION = "REBUILD_TOTALS"
AUDIT_UNIT = "system"


def _ledger_sums() -> dict[int, int]:
    rows = (
        db.session.query(
            InventoryBalance.material_id,
            func.coalesce(func.sum(InventoryBalance.quantity), 0).label("total"),
        )
        .group_by(InventoryBalance.material_id)
        .all()
    )
    return {row.material_id: int(row.total or 0) for row in rows}


def _cached_totals() -> dict[int, int]:
    return {
        row.material_id: row.total_qty
        for row in db.session.query(MaterialTotal).all()
    }


def find_total_discrepancies() -> list[dict]:
    """
    Read-only comparison of cache vs ledger.

    A missing cache row counts as 0, as in rebuild_totals; when reported it
    shows cached_total None.
    """
    ledger = _ledger_sums()
    cached = _cached_totals()

    discrepancies = []
    for material in db.session.query(Material).order_by(Material.id.asc()).all():
        ledger_total = ledger.get(material.id, 0)
        cached_total = cached.get(material.id)
        if (cached_total or 0) != ledger_total:
            discrepancies.append({
                "material_id": material.id,
                "name": material.name,
                "cached_total": cached_total,
                "ledger_total": ledger_total,
            })
    return discrepancies


def rebuild_totals(actor_user_id: int) -> dict:
    """
    Recompute every running total from the ledger and append the audit record.

    Returns:
        {
          "materials_processed": int,
          "changed_count": int,
          "results": [{material_id, name, previous_total, new_total, changed}, ...],
          "message": str,
          "audit_transaction_id": int,
        }

    Raises:
        NotFoundError (USER_NOT_FOUND) if the actor does not exist.
    """
    actor = db.session.get(User, actor_user_id)
    if actor is None:
        raise NotFoundError(
            f"User {actor_user_id} not found",
            code="USER_NOT_FOUND",
            details={"user_id": actor_user_id},
        )
    actor_name = actor.display_name

    def _op():
        # Material rows first, in id order, matching the movement lock order
        materials = lock_for_update(
            db.session.query(Material).order_by(Material.id.asc())
        ).all()
        ledger = _ledger_sums()
        totals = {
            row.material_id: row
            for row in lock_for_update(db.session.query(MaterialTotal)).all()
        }

        results = []
        for material in materials:
            new_total = ledger.get(material.id, 0)
            cache_row = totals.get(material.id)
            previous_total = cache_row.total_qty if cache_row is not None else 0

            if cache_row is None:
                db.session.add(MaterialTotal(material_id=material.id, total_qty=new_total))
            elif cache_row.total_qty != new_total:
                cache_row.total_qty = new_total

            results.append({
                "material_id": material.id,
                "name": material.name,
                "previous_total": previous_total,
                "new_total": new_total,
                "changed": previous_total != new_total,
            })

        changed = [r for r in results if r["changed"]]
        message = (
            f"Rebuilt totals for {len(results)} materials. "
            f"{len(changed)} had discrepancies."
        )

        audit = InventoryTransaction(
            type=TX_TYPE_ADJUSTMENT,
            material_id=None,
            quantity=0,
            unit=AUDIT_UNIT,
            from_location_id=None,
            to_location_id=None,
            user_id=actor_user_id,
            adjustment_reason=f"Admin rebuild totals by {actor_name}",
            payload=json.dumps({
                "action": REBUILD_ACTION,
                "timestamp": to_utc_z(utcnow()),
                "actor_user_id": actor_user_id,
                "results": changed,
            }),
        )
        db.session.add(audit)
        db.session.flush()

        db.session.commit()

        if changed:
            logger.warning(
                "Rebuild by user=%s corrected %d of %d totals: %s",
                actor_user_id,
                len(changed),
                len(results),
                ", ".join(str(r["material_id"]) for r in changed),
            )
        else:
            logger.info("Rebuild by user=%s found all %d totals in step", actor_user_id, len(results))

        return {
            "materials_processed": len(results),
            "changed_count": len(changed),
            "results": results,
            "message": message,
            "audit_transaction_id": audit.id,
        }

    return run_with_retry(_op)
