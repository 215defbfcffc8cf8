"""
CLI command tests (flask system / users / inventory).
"""

from sqlalchemy import update

from shopstock.cli import SEED_MATERIALS, SEED_OPENING_MARGIN
from shopstock.extensions import db
from shopstock.models import InventoryBalance, InventoryTransaction, Location, Material, User
from shopstock.services import movement_service, session_service
from shopstock.services.inventory_service import get_cached_total


def _run(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


class TestSystemCommands:

    def test_init_creates_single_shop(self, app, db_session):
        first = _run(app, "system", "init")
        second = _run(app, "system", "init")

        assert first.exit_code == 0, first.output
        assert "Created SHOP location" in first.output
        assert "Using existing SHOP location" in second.output
        assert db.session.query(Location).filter_by(type="SHOP").count() == 1

    def test_seed(self, app, db_session):
        result = _run(app, "system", "seed")

        assert result.exit_code == 0, result.output
        assert db.session.query(Material).count() == len(SEED_MATERIALS)
        assert db.session.query(Location).filter_by(type="JOB").count() == 2
        admin = db.session.query(User).filter_by(email="admin@cabinetshop.com").one()
        assert admin.role == "Admin"

        glue = db.session.query(Material).filter_by(name="Wood Glue").one()
        assert get_cached_total(glue.id) == 10 + SEED_OPENING_MARGIN
        receipts = db.session.query(InventoryTransaction).filter_by(type="RECEIVE").count()
        assert receipts == len(SEED_MATERIALS)

    def test_seed_is_repeatable(self, app, db_session):
        _run(app, "system", "seed")
        result = _run(app, "system", "seed")

        assert result.exit_code == 0, result.output
        assert "already exists, skipping" in result.output
        assert db.session.query(InventoryTransaction).count() == len(SEED_MATERIALS)


class TestUserCommands:

    def test_create_and_list(self, app, db_session):
        result = _run(app, "users", "create", "--email", " Bench@CabinetShop.com ", "--name", "Bench", "--role", "Editor")
        assert result.exit_code == 0, result.output

        user = db.session.query(User).filter_by(email="bench@cabinetshop.com").one()
        assert user.role == "Editor"

        listing = _run(app, "users", "list")
        assert "bench@cabinetshop.com" in listing.output

    def test_duplicate_user(self, app, admin_user):
        result = _run(app, "users", "create", "--email", admin_user.email, "--role", "Viewer")
        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_unknown_role(self, app, db_session):
        result = _run(app, "users", "create", "--email", "x@cabinetshop.com", "--role", "Owner")
        assert result.exit_code != 0

    def test_token_authenticates(self, app, client, admin_user):
        result = _run(app, "users", "token", "--email", admin_user.email)
        assert result.exit_code == 0, result.output

        token = result.output.strip().splitlines()[-1]
        assert session_service.validate_session(token).user.id == admin_user.id

        resp = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200

    def test_token_unknown_user(self, app, db_session):
        result = _run(app, "users", "token", "--email", "nobody@cabinetshop.com")
        assert result.exit_code != 0


class TestInventoryCommands:

    def _drift(self, material_id, location_id, quantity):
        db.session.execute(
            update(InventoryBalance)
            .where(
                InventoryBalance.material_id == material_id,
                InventoryBalance.location_id == location_id,
            )
            .values(quantity=quantity)
        )
        db.session.commit()
        db.session.expire_all()

    def test_check_and_rebuild(self, app, admin_user, shop, material):
        movement_service.receive_material(material_id=material.id, quantity=30, actor_user_id=admin_user.id)

        clean = _run(app, "inventory", "check-totals")
        assert "All running totals match" in clean.output

        self._drift(material.id, shop.id, 25)

        drift = _run(app, "inventory", "check-totals")
        assert "cached=30 ledger=25" in drift.output

        rebuild = _run(app, "inventory", "rebuild-totals", "--actor-email", admin_user.email)
        assert rebuild.exit_code == 0, rebuild.output
        assert f"FIXED {material.name}: 30 -> 25" in rebuild.output
        assert get_cached_total(material.id) == 25

    def test_rebuild_requires_admin(self, app, editor_user, material):
        result = _run(app, "inventory", "rebuild-totals", "--actor-email", editor_user.email)

        assert result.exit_code != 0
        assert "Only Admin users may rebuild totals" in result.output
        assert db.session.query(InventoryTransaction).count() == 0
