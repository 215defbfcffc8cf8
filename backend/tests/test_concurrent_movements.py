"""
Concurrent movement tests against a file-backed SQLite database.

Verifies:
- Two Issues racing for the same JOB balance: exactly one commits
- Two Receives racing into the same SHOP balance: both land, none is lost
- The running total equals the sum of balances once the race settles

Each worker holds a separate session on its own connection. A barrier parks
both workers after their reads so the writes are forced to interleave.
"""

import threading

import pytest

from shopstock import create_app
from shopstock.errors import InventoryError
from shopstock.extensions import db
from shopstock.models import InventoryTransaction, User
from shopstock.models.auth import ROLE_EDITOR
from shopstock.models.reference import LOCATION_TYPE_JOB, LOCATION_TYPE_SHOP
from shopstock.services import movement_service, reference_service
from shopstock.services.inventory_service import (
    get_cached_total,
    get_ledger_total,
    get_quantity_on_hand,
)


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'shopstock-race.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 15}},
        'MOVEMENT_RETRY_ATTEMPTS': 8,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def floor(file_app):
    """SHOP holding 10 sheets, plus a job and an editor. Returns plain ids."""
    with file_app.app_context():
        editor = User(email="bench@cabinetshop.com", name="Bench Editor", role=ROLE_EDITOR, is_active=True)
        db.session.add(editor)
        db.session.commit()

        shop = reference_service.create_location(name="SHOP", type=LOCATION_TYPE_SHOP)
        job = reference_service.create_location(name="6-2523", type=LOCATION_TYPE_JOB)
        material = reference_service.create_material(name='Oak Plywood 3/4"', category="WoodSheets")
        movement_service.receive_material(material_id=material.id, quantity=10, actor_user_id=editor.id)

        return {"user": editor.id, "shop": shop.id, "job": job.id, "material": material.id}


def _race(app, monkeypatch, operation):
    """Run operation in two threads; both finish their reads before either writes."""
    barrier = threading.Barrier(2, timeout=10)
    local = threading.local()
    load_material = movement_service.get_material

    def _load_then_wait(*args, **kwargs):
        material = load_material(*args, **kwargs)
        # Only the first attempt waits; replays run straight through
        if not getattr(local, "waited", False):
            local.waited = True
            barrier.wait()
        return material

    monkeypatch.setattr(movement_service, "get_material", _load_then_wait)

    outcomes = []

    def _worker():
        with app.app_context():
            try:
                operation()
                outcomes.append("ok")
            except InventoryError as e:
                outcomes.append(e.code)

    threads = [threading.Thread(target=_worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    return sorted(outcomes)


def test_competing_issues_only_one_commits(file_app, floor, monkeypatch):
    with file_app.app_context():
        movement_service.transfer_material(
            material_id=floor["material"],
            quantity=10,
            to_location_id=floor["job"],
            actor_user_id=floor["user"],
        )

    def _issue_everything():
        movement_service.issue_material(
            material_id=floor["material"],
            quantity=10,
            from_location_id=floor["job"],
            actor_user_id=floor["user"],
        )

    outcomes = _race(file_app, monkeypatch, _issue_everything)

    assert outcomes == ["INSUFFICIENT_INVENTORY", "ok"]
    with file_app.app_context():
        assert get_quantity_on_hand(floor["material"], floor["job"]) == 0
        assert db.session.query(InventoryTransaction).filter_by(type="ISSUE").count() == 1
        assert get_ledger_total(floor["material"]) == 0
        assert get_cached_total(floor["material"]) == 0


def test_competing_transfers_never_overdraw_shop(file_app, floor, monkeypatch):
    def _transfer_most():
        movement_service.transfer_material(
            material_id=floor["material"],
            quantity=7,
            to_location_id=floor["job"],
            actor_user_id=floor["user"],
        )

    outcomes = _race(file_app, monkeypatch, _transfer_most)

    assert outcomes == ["INSUFFICIENT_INVENTORY", "ok"]
    with file_app.app_context():
        assert get_quantity_on_hand(floor["material"], floor["shop"]) == 3
        assert get_quantity_on_hand(floor["material"], floor["job"]) == 7
        assert get_cached_total(floor["material"]) == get_ledger_total(floor["material"]) == 10


def test_competing_receives_both_land(file_app, floor, monkeypatch):
    def _receive_five():
        movement_service.receive_material(
            material_id=floor["material"],
            quantity=5,
            actor_user_id=floor["user"],
        )

    outcomes = _race(file_app, monkeypatch, _receive_five)

    assert outcomes == ["ok", "ok"]
    with file_app.app_context():
        assert get_quantity_on_hand(floor["material"], floor["shop"]) == 20
        assert get_cached_total(floor["material"]) == get_ledger_total(floor["material"]) == 20
        assert db.session.query(InventoryTransaction).filter_by(type="RECEIVE").count() == 3
