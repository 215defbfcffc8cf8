"""
Reference data tests: materials and locations.
"""

import pytest

from shopstock.errors import (
    InvalidInputError,
    NoShopLocationError,
    NotFoundError,
    ReferentialConflictError,
)
from shopstock.extensions import db
from shopstock.models import InventoryBalance, Material, MaterialTotal
from shopstock.services import movement_service, reference_service


class TestMaterials:

    def test_create_starts_total_at_zero(self, db_session):
        material = reference_service.create_material(name="Wood Glue", category="Other")

        assert material.unit == "sheets"
        assert material.min_stock_level == 0
        assert material.total_stock == 0
        assert db.session.get(MaterialTotal, material.id).total_qty == 0

    def test_unknown_unit_falls_back(self, db_session):
        material = reference_service.create_material(name="Edge Banding", category="Other", unit="rolls")
        assert material.unit == "sheets"

    def test_known_unit_kept(self, db_session):
        material = reference_service.create_material(name="Drawer Pulls - Black", category="Hardware", unit="pcs")
        assert material.unit == "pcs"

    def test_duplicate_name(self, db_session, material):
        with pytest.raises(ReferentialConflictError) as exc:
            reference_service.create_material(name=material.name, category="WoodSheets")
        assert exc.value.code == "DUPLICATE_NAME"

    def test_bad_category(self, db_session):
        with pytest.raises(InvalidInputError):
            reference_service.create_material(name="Paint", category="Finishes")

    def test_negative_min_stock(self, db_session):
        with pytest.raises(InvalidInputError):
            reference_service.create_material(name="Paint", category="Other", min_stock_level=-1)

    def test_partial_update(self, db_session, material):
        updated = reference_service.update_material(material.id, {"min_stock_level": 5})

        assert updated.min_stock_level == 5
        assert updated.name == 'Oak Plywood 3/4"'
        assert updated.category == "WoodSheets"

    def test_update_unknown_unit_rejected(self, db_session, hinges):
        with pytest.raises(InvalidInputError) as exc:
            reference_service.update_material(hinges.id, {"unit": "rolls", "min_stock_level": 5})

        assert exc.value.code == "INVALID_FIELD"
        db.session.expire_all()
        refreshed = db.session.get(Material, hinges.id)
        assert refreshed.unit == "pcs"
        assert refreshed.min_stock_level == 100

    def test_update_known_unit(self, db_session, material):
        assert reference_service.update_material(material.id, {"unit": "box"}).unit == "box"

    def test_rename_to_taken_name(self, db_session, material, hinges):
        with pytest.raises(ReferentialConflictError):
            reference_service.update_material(hinges.id, {"name": material.name})

    def test_list_by_category(self, db_session, material, hinges):
        names = [m.name for m in reference_service.list_materials(category="Hinges")]
        assert names == ["Soft-Close Hinges"]

        all_names = [m.name for m in reference_service.list_materials()]
        assert all_names == sorted(all_names)

    def test_delete_unused_material(self, db_session, material):
        material_id = material.id
        reference_service.delete_material(material_id)

        assert db.session.get(Material, material_id) is None
        assert db.session.get(MaterialTotal, material_id) is None

    def test_delete_with_history_rejected(self, db_session, admin_user, shop, material):
        movement_service.receive_material(material_id=material.id, quantity=3, actor_user_id=admin_user.id)

        with pytest.raises(ReferentialConflictError) as exc:
            reference_service.delete_material(material.id)

        assert exc.value.details["transaction_count"] == 1
        assert db.session.get(Material, material.id) is not None
        assert db.session.query(InventoryBalance).filter_by(material_id=material.id).count() == 1

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            reference_service.get_material(31337)
        assert exc.value.code == "MATERIAL_NOT_FOUND"


class TestLocations:

    def test_single_shop(self, db_session, shop):
        with pytest.raises(ReferentialConflictError) as exc:
            reference_service.create_location(name="Back Shop", type="SHOP")
        assert exc.value.code == "SHOP_ALREADY_EXISTS"

    def test_shop_lookup(self, db_session, shop, job):
        assert reference_service.get_shop_location().id == shop.id

    def test_no_shop(self, db_session, job):
        with pytest.raises(NoShopLocationError) as exc:
            reference_service.get_shop_location()
        assert exc.value.code == "NO_SHOP_LOCATION"

    def test_duplicate_name(self, db_session, job):
        with pytest.raises(ReferentialConflictError):
            reference_service.create_location(name=job.name, type="JOB")

    def test_bad_type(self, db_session):
        with pytest.raises(InvalidInputError):
            reference_service.create_location(name="Truck", type="VEHICLE")

    def test_close_and_reopen_job(self, db_session, job):
        assert reference_service.set_location_active(job.id, False).is_active is False
        assert reference_service.set_location_active(job.id, True).is_active is True

    def test_shop_cannot_be_closed(self, db_session, shop):
        with pytest.raises(InvalidInputError):
            reference_service.set_location_active(shop.id, False)

    def test_list_filters(self, db_session, shop, job, other_job, closed_job):
        jobs = [loc.name for loc in reference_service.list_locations(type="JOB")]
        assert jobs == ["5-1000", "6-2523", "6-2524"]

        open_jobs = [loc.name for loc in reference_service.list_locations(type="JOB", active_only=True)]
        assert open_jobs == ["6-2523", "6-2524"]
