from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..extensions import db
from shopstock.time_utils import to_utc_z, utcnow


TX_TYPE_RECEIVE = "RECEIVE"
TX_TYPE_TRANSFER = "TRANSFER"
TX_TYPE_ISSUE = "ISSUE"
TX_TYPE_ADJUSTMENT = "ADJUSTMENT"
TRANSACTION_TYPES = (TX_TYPE_RECEIVE, TX_TYPE_TRANSFER, TX_TYPE_ISSUE, TX_TYPE_ADJUSTMENT)


class InventoryBalance(db.Model):
    """
    Ledger row: quantity of one material at one location.

    Created lazily on the first positive movement into a (material, location)
    pair and mutated only by the movement service. quantity >= 0 is enforced
    both by the service and by a CHECK constraint.
    """
    __tablename__ = "inventory_balances"
    __table_args__ = (
        db.UniqueConstraint("material_id", "location_id", name="uq_inventory_balances_material_location"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_balances_quantity_nonneg"),
        db.Index("ix_inventory_balances_location", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    material = db.relationship("Material", back_populates="balances")
    location = db.relationship("Location", back_populates="balances")

    def __repr__(self) -> str:
        return f"<InventoryBalance material_id={self.material_id} location_id={self.location_id} qty={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity < self.material.min_stock_level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_id": self.material_id,
            "location_id": self.location_id,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class MaterialTotal(db.Model):
    """
    Running-total cache: sum of every InventoryBalance.quantity for a material.

    The ledger (InventoryBalance) is authoritative. The movement service keeps
    this row in step inside the same DB transaction; the reconciliation service
    rebuilds it when rows were edited outside the engine.
    """
    __tablename__ = "material_totals"

    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), primary_key=True)
    total_qty = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    material = db.relationship("Material", back_populates="total")

    def to_dict(self) -> dict:
        return {
            "material_id": self.material_id,
            "total_qty": self.total_qty,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only record of a stock-moving event.

    QUANTITY SIGN:
    - ADJUSTMENT: signed delta (+ adds stock at to_location, - removes at from_location)
    - RECEIVE / TRANSFER / ISSUE: unsigned magnitude; direction is implied by
      which of from_location_id / to_location_id is populated.

    A reconciliation run appends one ADJUSTMENT with quantity 0, no material and
    no locations; its payload holds the JSON summary of the rebuild.

    original_transaction_id links a corrective adjustment to the record it
    corrects (one hop, no chains are walked).
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_material_occurred", "material_id", "occurred_at"),
        db.Index("ix_invtx_type_occurred", "type", "occurred_at"),
        db.Index("ix_invtx_from_location", "from_location_id"),
        db.Index("ix_invtx_to_location", "to_location_id"),
        db.CheckConstraint(
            "type IN ('RECEIVE', 'TRANSFER', 'ISSUE', 'ADJUSTMENT')",
            name="ck_invtx_type",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(16), nullable=False)

    # Nullable only for reconciliation audit records
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(16), nullable=True)

    from_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    to_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    # RECEIVE metadata
    vendor = db.Column(db.String(255), nullable=True, index=True)
    po_number = db.Column(db.String(128), nullable=True)
    invoice_number = db.Column(db.String(128), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    # ADJUSTMENT metadata
    adjustment_reason = db.Column(db.Text, nullable=True)
    original_transaction_id = db.Column(
        db.Integer, db.ForeignKey("inventory_transactions.id"), nullable=True, index=True
    )

    # Structured JSON (reconciliation summaries)
    payload = db.Column(db.Text, nullable=True)

    material = db.relationship("Material")
    from_location = db.relationship("Location", foreign_keys=[from_location_id])
    to_location = db.relationship("Location", foreign_keys=[to_location_id])
    user = db.relationship("User")
    original_transaction = db.relationship("InventoryTransaction", remote_side=[id])
    invoice_photos = db.relationship(
        "InvoicePhoto",
        back_populates="transaction",
        order_by="InvoicePhoto.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<InventoryTransaction id={self.id} type={self.type} material_id={self.material_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "material_id": self.material_id,
            "quantity": self.quantity,
            "unit": self.unit,
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "user_id": self.user_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "vendor": self.vendor,
            "po_number": self.po_number,
            "invoice_number": self.invoice_number,
            "notes": self.notes,
            "adjustment_reason": self.adjustment_reason,
            "original_transaction_id": self.original_transaction_id,
            "payload": self.payload,
            "invoice_photos": [photo.to_dict() for photo in self.invoice_photos],
        }


class InvoicePhoto(db.Model):
    """Reference to an invoice image already uploaded to object storage (RECEIVE only)."""
    __tablename__ = "invoice_photos"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer, db.ForeignKey("inventory_transactions.id"), nullable=False, index=True
    )
    storage_path = db.Column(db.String(1024), nullable=False)
    is_public = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship("InventoryTransaction", back_populates="invoice_photos")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "storage_path": self.storage_path,
            "is_public": self.is_public,
        }


class ImmutableTransactionError(Exception):
    """Raised when code tries to rewrite or remove an inventory transaction."""


@event.listens_for(InventoryTransaction, "before_update")
def _reject_transaction_update(mapper, connection, target: InventoryTransaction):
    session = object_session(target)
    if session is not None and not session.is_modified(target, include_collections=False):
        return
    raise ImmutableTransactionError(f"inventory transaction {target.id} is append-only")


@event.listens_for(InventoryTransaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target: InventoryTransaction):
    raise ImmutableTransactionError(f"inventory transaction {target.id} is append-only")
