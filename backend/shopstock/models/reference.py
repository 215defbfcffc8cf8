from __future__ import annotations

from ..extensions import db
from shopstock.time_utils import to_utc_z


MATERIAL_CATEGORIES = ("WoodSheets", "Hardware", "Hinges", "Slides", "Other")
MATERIAL_UNITS = ("sheets", "pcs", "unit", "tube", "box")
DEFAULT_MATERIAL_UNIT = "sheets"

LOCATION_TYPE_SHOP = "SHOP"
LOCATION_TYPE_JOB = "JOB"
LOCATION_TYPES = (LOCATION_TYPE_SHOP, LOCATION_TYPE_JOB)


class Material(db.Model):
    """
    Material master data (plywood sheets, hinges, slides, ...).

    Each material owns zero or one MaterialTotal (the running-total cache) and
    any number of InventoryBalance rows, one per location it has been stocked at.
    Deleting a material removes its balances and cached total; materials with
    transaction history cannot be deleted because the log is append-only.
    """
    __tablename__ = "materials"
    __table_args__ = (
        db.Index("ix_materials_category_name", "category", "name"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_materials_min_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    category = db.Column(db.String(32), nullable=False, index=True)
    unit = db.Column(db.String(16), nullable=False, default=DEFAULT_MATERIAL_UNIT)
    min_stock_level = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    total = db.relationship(
        "MaterialTotal",
        uselist=False,
        back_populates="material",
        cascade="all, delete-orphan",
    )
    balances = db.relationship(
        "InventoryBalance",
        back_populates="material",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Material id={self.id} name={self.name!r} category={self.category}>"

    @property
    def total_stock(self) -> int:
        return self.total.total_qty if self.total is not None else 0

    def to_dict(self, include_balances: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "min_stock_level": self.min_stock_level,
            "total_stock": self.total_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_balances:
            data["balances"] = [
                {
                    "location_id": balance.location_id,
                    "location_name": balance.location.name,
                    "quantity": balance.quantity,
                }
                for balance in sorted(self.balances, key=lambda b: b.location.name)
            ]
        return data


class Location(db.Model):
    """
    A place stock can sit: the single SHOP, or a JOB site.

    JOB locations are closed by flipping is_active rather than deleting them,
    so their history stays attached.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.Index("ix_locations_type_active", "type", "is_active"),
        db.CheckConstraint("type IN ('SHOP', 'JOB')", name="ck_locations_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    type = db.Column(db.String(8), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    balances = db.relationship("InventoryBalance", back_populates="location", lazy=True)

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
