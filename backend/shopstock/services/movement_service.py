# Overview: Service-layer operations for stock movements; encapsulates business logic and database work.

"""
Movement engine invariants (authoritative)

Ledger model:
- InventoryBalance holds the quantity of one material at one location; rows are
  created lazily on the first positive movement into a pair.
- quantity >= 0 for every balance row at all times.
- MaterialTotal.total_qty == SUM(InventoryBalance.quantity) for the material
  after every committed movement.

Operations:
- RECEIVE    outside -> SHOP   total +qty
- TRANSFER   SHOP -> JOB       total unchanged
- ISSUE      JOB -> consumed   total -qty
- ADJUSTMENT any location      total +delta (signed, reason required)

Atomicity:
- Each operation is one unit of work: validate, mutate balances, mutate the
  running total, append the InventoryTransaction, commit. Any failure rolls the
  whole unit back.
- The material row is locked first (SELECT ... FOR UPDATE where the backend
  supports it). Balances and totals are never written from values read
  earlier: a debit is one conditional UPDATE (quantity >= requested) and every
  other change is relative (quantity + n, total_qty + delta). Of two racing
  debits on one balance, the second one re-evaluates its condition after the
  first commits and is rejected, so the outcome matches a serial order.
- Storage conflicts (lock timeouts, duplicate lazy rows) replay the unit via
  run_with_retry.

Caller contract:
- Role checks happen before these functions are called (see permissions).
- actor_user_id is recorded on the transaction as-is.
"""
from __future__ import annotations

import logging

from sqlalchemy import update

from ..errors import (
    InsufficientInventoryError,
    InvalidInputError,
    NegativeInventoryRejectedError,
    NotFoundError,
)
from ..extensions import db
from ..models import InventoryBalance, InventoryTransaction, InvoicePhoto, Location, MaterialTotal
from ..models.inventory import TX_TYPE_ADJUSTMENT, TX_TYPE_ISSUE, TX_TYPE_RECEIVE, TX_TYPE_TRANSFER
from ..models.reference import LOCATION_TYPE_JOB
from .concurrency import run_with_retry
from .reference_service import get_location, get_material, get_shop_location


logger = logging.getLogger(__name__)


# =============================================================================
# INPUT CHECKS
# =============================================================================

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_positive_quantity(quantity) -> None:
    if not _is_int(quantity) or quantity <= 0:
        raise InvalidInputError(
            "quantity must be a positive integer",
            code="INVALID_QUANTITY",
            details={"quantity": quantity},
        )


def _normalize_invoice_photos(invoice_photos) -> list[dict]:
    """
    Accepts [{"storage_path": str, "is_public": bool}, ...].
    cloud_storage_path is accepted as an alias for storage_path.
    """
    if invoice_photos is None:
        return []
    if not isinstance(invoice_photos, list):
        raise InvalidInputError("invoice_photos must be a list", code="INVALID_FIELD")

    photos = []
    for index, photo in enumerate(invoice_photos):
        if not isinstance(photo, dict):
            raise InvalidInputError(
                "invoice_photos entries must be objects",
                code="INVALID_FIELD",
                details={"index": index},
            )
        path = photo.get("storage_path") or photo.get("cloud_storage_path")
        if not isinstance(path, str) or not path.strip():
            raise InvalidInputError(
                "invoice_photos entries require a storage_path",
                code="INVALID_FIELD",
                details={"index": index},
            )
        photos.append({"storage_path": path.strip(), "is_public": bool(photo.get("is_public", False))})
    return photos


def _require_job_location(location_id, *, code: str, label: str) -> Location:
    location = db.session.get(Location, location_id) if _is_int(location_id) else None
    if location is None or location.type != LOCATION_TYPE_JOB:
        raise InvalidInputError(
            f"Invalid {label} location",
            code=code,
            details={
                "location_id": location_id,
                "type": location.type if location is not None else None,
            },
        )
    return location


# =============================================================================
# LEDGER / CACHE PRIMITIVES (call only inside a unit of work)
# =============================================================================

def _balance_filter(material_id: int, location_id: int):
    return (
        InventoryBalance.material_id == material_id,
        InventoryBalance.location_id == location_id,
    )


def _on_hand(material_id: int, location_id: int) -> int:
    quantity = (
        db.session.query(InventoryBalance.quantity)
        .filter(*_balance_filter(material_id, location_id))
        .scalar()
    )
    return quantity or 0


def _debit_balance(material_id: int, location_id: int, quantity: int) -> bool:
    """
    Subtract quantity in one conditional UPDATE.

    The sufficiency check lives in the WHERE clause, so it is evaluated against
    the row as the database holds it at write time. Returns False when the row
    is missing or holds less than quantity; nothing is written then.
    """
    result = db.session.execute(
        update(InventoryBalance)
        .where(*_balance_filter(material_id, location_id), InventoryBalance.quantity >= quantity)
        .values(quantity=InventoryBalance.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _credit_balance(material_id: int, location_id: int, quantity: int) -> None:
    result = db.session.execute(
        update(InventoryBalance)
        .where(*_balance_filter(material_id, location_id))
        .values(quantity=InventoryBalance.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # A concurrent first credit to the same pair fails the unique key here
        # and the unit is replayed against the row the winner created.
        db.session.add(InventoryBalance(material_id=material_id, location_id=location_id, quantity=quantity))
        db.session.flush()


def _bump_material_total(material_id: int, delta: int) -> None:
    """
    Apply a signed delta to the running total, relative to the stored value.

    A missing cache row is created at max(delta, 0); the next reconciliation
    run repairs any drift this leaves behind.
    """
    result = db.session.execute(
        update(MaterialTotal)
        .where(MaterialTotal.material_id == material_id)
        .values(total_qty=MaterialTotal.total_qty + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.add(MaterialTotal(material_id=material_id, total_qty=max(delta, 0)))
        db.session.flush()


def _append_transaction(**fields) -> InventoryTransaction:
    tx = InventoryTransaction(**fields)
    db.session.add(tx)
    db.session.flush()  # ensures tx.id is assigned without committing
    return tx


# =============================================================================
# OPERATIONS
# =============================================================================

def receive_material(
    *,
    material_id: int,
    quantity: int,
    actor_user_id: int,
    vendor: str | None = None,
    po_number: str | None = None,
    invoice_number: str | None = None,
    notes: str | None = None,
    invoice_photos: list[dict] | None = None,
) -> InventoryTransaction:
    """
    Receive stock into the SHOP.

    Raises:
        InvalidInputError (INVALID_QUANTITY), NotFoundError (MATERIAL_NOT_FOUND),
        NoShopLocationError
    """
    _require_positive_quantity(quantity)
    photos = _normalize_invoice_photos(invoice_photos)

    def _op():
        material = get_material(material_id, lock=True)
        shop = get_shop_location()

        _credit_balance(material.id, shop.id, quantity)
        _bump_material_total(material.id, quantity)

        tx = _append_transaction(
            type=TX_TYPE_RECEIVE,
            material_id=material.id,
            quantity=quantity,
            unit=material.unit,
            from_location_id=None,
            to_location_id=shop.id,
            user_id=actor_user_id,
            vendor=vendor,
            po_number=po_number,
            invoice_number=invoice_number,
            notes=notes,
        )
        for photo in photos:
            db.session.add(InvoicePhoto(transaction_id=tx.id, **photo))

        db.session.commit()
        logger.info(
            "RECEIVE tx=%s material=%s qty=%s into SHOP by user=%s",
            tx.id, material_id, quantity, actor_user_id,
        )
        return tx

    return run_with_retry(_op)


def transfer_material(
    *,
    material_id: int,
    quantity: int,
    to_location_id: int,
    actor_user_id: int,
    notes: str | None = None,
) -> InventoryTransaction:
    """
    Move stock from the SHOP to a JOB location. The running total is unchanged.

    Raises:
        InvalidInputError (INVALID_QUANTITY, INVALID_DESTINATION),
        NotFoundError (MATERIAL_NOT_FOUND), NoShopLocationError,
        InsufficientInventoryError
    """
    _require_positive_quantity(quantity)

    def _op():
        material = get_material(material_id, lock=True)
        destination = _require_job_location(to_location_id, code="INVALID_DESTINATION", label="destination")
        shop = get_shop_location()

        if not _debit_balance(material.id, shop.id, quantity):
            available = _on_hand(material.id, shop.id)
            logger.warning(
                "TRANSFER rejected material=%s requested=%s shop_on_hand=%s",
                material_id, quantity, available,
            )
            raise InsufficientInventoryError(
                f"Insufficient inventory in SHOP. On-hand: {available}, requested: {quantity}",
                details={
                    "material_id": material.id,
                    "location_id": shop.id,
                    "available": available,
                    "requested": quantity,
                },
            )

        _credit_balance(material.id, destination.id, quantity)

        tx = _append_transaction(
            type=TX_TYPE_TRANSFER,
            material_id=material.id,
            quantity=quantity,
            unit=material.unit,
            from_location_id=shop.id,
            to_location_id=destination.id,
            user_id=actor_user_id,
            notes=notes,
        )

        db.session.commit()
        logger.info(
            "TRANSFER tx=%s material=%s qty=%s SHOP->%s by user=%s",
            tx.id, material_id, quantity, to_location_id, actor_user_id,
        )
        return tx

    return run_with_retry(_op)


def issue_material(
    *,
    material_id: int,
    quantity: int,
    from_location_id: int,
    actor_user_id: int,
    notes: str | None = None,
) -> InventoryTransaction:
    """
    Consume stock at a JOB location. The running total drops by quantity.

    Raises:
        InvalidInputError (INVALID_QUANTITY, INVALID_SOURCE),
        NotFoundError (MATERIAL_NOT_FOUND), InsufficientInventoryError
    """
    _require_positive_quantity(quantity)

    def _op():
        source = _require_job_location(from_location_id, code="INVALID_SOURCE", label="source")
        material = get_material(material_id, lock=True)

        if not _debit_balance(material.id, source.id, quantity):
            available = _on_hand(material.id, source.id)
            logger.warning(
                "ISSUE rejected material=%s location=%s requested=%s on_hand=%s",
                material_id, from_location_id, quantity, available,
            )
            raise InsufficientInventoryError(
                f"Insufficient inventory at JOB location. On-hand: {available}, requested: {quantity}",
                details={
                    "material_id": material.id,
                    "location_id": source.id,
                    "available": available,
                    "requested": quantity,
                },
            )

        _bump_material_total(material.id, -quantity)

        tx = _append_transaction(
            type=TX_TYPE_ISSUE,
            material_id=material.id,
            quantity=quantity,
            unit=material.unit,
            from_location_id=source.id,
            to_location_id=None,
            user_id=actor_user_id,
            notes=notes,
        )

        db.session.commit()
        logger.info(
            "ISSUE tx=%s material=%s qty=%s from=%s by user=%s",
            tx.id, material_id, quantity, from_location_id, actor_user_id,
        )
        return tx

    return run_with_retry(_op)


def adjust_inventory(
    *,
    material_id: int,
    location_id: int,
    quantity_delta: int,
    reason: str,
    actor_user_id: int,
    original_transaction_id: int | None = None,
) -> InventoryTransaction:
    """
    Manual correction of one balance by a signed delta.

    The record keeps the trimmed reason and, when given, a link to the
    transaction being corrected; history itself is never edited.

    Raises:
        InvalidInputError (INVALID_DELTA, MISSING_REASON),
        NotFoundError (MATERIAL_NOT_FOUND, LOCATION_NOT_FOUND, ORIGINAL_TRANSACTION_NOT_FOUND),
        NegativeInventoryRejectedError
    """
    if not _is_int(quantity_delta) or quantity_delta == 0:
        raise InvalidInputError(
            "quantity_delta must be a non-zero integer",
            code="INVALID_DELTA",
            details={"quantity_delta": quantity_delta},
        )
    clean_reason = reason.strip() if isinstance(reason, str) else ""
    if not clean_reason:
        raise InvalidInputError("Adjustment reason is required", code="MISSING_REASON")

    def _op():
        material = get_material(material_id, lock=True)
        location = get_location(location_id)

        if original_transaction_id is not None:
            original = db.session.get(InventoryTransaction, original_transaction_id)
            if original is None:
                raise NotFoundError(
                    f"Original transaction {original_transaction_id} not found",
                    code="ORIGINAL_TRANSACTION_NOT_FOUND",
                    details={"original_transaction_id": original_transaction_id},
                )

        if quantity_delta > 0:
            _credit_balance(material.id, location.id, quantity_delta)
        elif not _debit_balance(material.id, location.id, -quantity_delta):
            current = _on_hand(material.id, location.id)
            logger.warning(
                "ADJUSTMENT rejected material=%s location=%s current=%s delta=%s",
                material_id, location_id, current, quantity_delta,
            )
            raise NegativeInventoryRejectedError(
                f"Cannot adjust below zero. Current stock: {current}, adjustment: {quantity_delta}",
                details={
                    "material_id": material.id,
                    "location_id": location.id,
                    "current": current,
                    "quantity_delta": quantity_delta,
                },
            )

        _bump_material_total(material.id, quantity_delta)

        tx = _append_transaction(
            type=TX_TYPE_ADJUSTMENT,
            material_id=material.id,
            quantity=quantity_delta,
            unit=material.unit,
            from_location_id=location.id if quantity_delta < 0 else None,
            to_location_id=location.id if quantity_delta > 0 else None,
            user_id=actor_user_id,
            adjustment_reason=clean_reason,
            original_transaction_id=original_transaction_id,
            notes=(
                f"Adjustment for transaction {original_transaction_id}"
                if original_transaction_id is not None
                else None
            ),
        )

        db.session.commit()
        logger.info(
            "ADJUSTMENT tx=%s material=%s location=%s delta=%s by user=%s",
            tx.id, material_id, location_id, quantity_delta, actor_user_id,
        )
        return tx

    return run_with_retry(_op)
