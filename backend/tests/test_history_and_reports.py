"""
Transaction history, inventory listing, dashboard and report tests.
"""

import pytest

from shopstock.errors import InvalidInputError
from shopstock.services import (
    history_service,
    inventory_service,
    movement_service,
    reconciliation_service,
    reporting_service,
)


@pytest.fixture
def activity(db_session, admin_user, editor_user, shop, job, other_job, material, hinges):
    """A small week on the shop floor across two materials and two jobs."""
    receive = movement_service.receive_material(
        material_id=material.id,
        quantity=30,
        actor_user_id=admin_user.id,
        vendor="Northwest Hardwoods",
        po_number="PO-1",
    )
    movement_service.receive_material(
        material_id=hinges.id,
        quantity=200,
        actor_user_id=editor_user.id,
        vendor="Blum",
        invoice_number="B-778",
    )
    movement_service.receive_material(material_id=hinges.id, quantity=10, actor_user_id=editor_user.id)
    movement_service.transfer_material(
        material_id=material.id, quantity=12, to_location_id=job.id, actor_user_id=editor_user.id
    )
    movement_service.transfer_material(
        material_id=hinges.id, quantity=120, to_location_id=other_job.id, actor_user_id=editor_user.id
    )
    movement_service.issue_material(
        material_id=material.id, quantity=4, from_location_id=job.id, actor_user_id=editor_user.id
    )
    movement_service.issue_material(
        material_id=material.id, quantity=3, from_location_id=job.id, actor_user_id=editor_user.id
    )
    movement_service.issue_material(
        material_id=hinges.id, quantity=40, from_location_id=other_job.id, actor_user_id=editor_user.id
    )
    correction = movement_service.adjust_inventory(
        material_id=material.id,
        location_id=shop.id,
        quantity_delta=-2,
        reason="split sheets",
        actor_user_id=admin_user.id,
        original_transaction_id=receive.id,
    )
    return {"receive_id": receive.id, "correction_id": correction.id}


class TestHistory:

    def test_newest_first(self, activity):
        transactions = history_service.list_transactions()

        assert len(transactions) == 9
        ids = [tx.id for tx in transactions]
        assert ids == sorted(ids, reverse=True)
        assert transactions[0].id == activity["correction_id"]

    def test_filter_by_material_and_type(self, activity, material):
        issues = history_service.list_transactions(material_id=material.id, type="ISSUE")
        assert [tx.quantity for tx in issues] == [3, 4]

    def test_location_matches_either_side(self, activity, job):
        transactions = history_service.list_transactions(location_id=job.id)
        assert sorted(tx.type for tx in transactions) == ["ISSUE", "ISSUE", "TRANSFER"]

    def test_limit(self, activity):
        assert len(history_service.list_transactions(limit=2)) == 2

    def test_unknown_type(self, activity):
        with pytest.raises(InvalidInputError):
            history_service.list_transactions(type="SALE")

    def test_format_adjustment(self, activity, admin_user, shop, material):
        tx = history_service.list_transactions(type="ADJUSTMENT")[0]
        row = history_service.format_transaction(tx)

        assert row["material_name"] == material.name
        assert row["material_category"] == "WoodSheets"
        assert row["quantity"] == -2
        assert row["from_location"] == shop.name
        assert row["to_location"] is None
        assert row["user_name"] == "Shop Administrator"
        assert row["adjustment_reason"] == "split sheets"
        assert row["original_transaction"]["id"] == activity["receive_id"]
        assert row["original_transaction"]["type"] == "RECEIVE"
        assert row["original_transaction"]["quantity"] == 30
        assert row["date"].endswith("Z")

    def test_format_falls_back_to_email(self, db_session, viewer_user, shop, material):
        tx = movement_service.receive_material(material_id=material.id, quantity=1, actor_user_id=viewer_user.id)
        row = history_service.format_transaction(tx)
        assert row["user_name"] == "viewer@cabinetshop.com"

    def test_format_rebuild_audit(self, activity, admin_user):
        reconciliation_service.rebuild_totals(admin_user.id)
        row = history_service.format_transaction(history_service.list_transactions(limit=1)[0])

        assert row["material_name"] is None
        assert row["quantity"] == 0
        assert row["unit"] == "system"
        assert row["summary"]["action"] == "REBUILD_TOTALS"


class TestInventoryListing:

    def test_ordered_by_location_then_material(self, activity):
        rows = inventory_service.list_inventory()
        keys = [(row["location_name"], row["material_name"]) for row in rows]
        assert keys == sorted(keys)

    def test_low_stock_filter(self, activity, shop, material):
        # Oak at SHOP: 30 - 12 - 2 = 16 < 20; hinges at SHOP: 210 - 120 = 90 < 100
        rows = inventory_service.list_inventory(location_id=shop.id, low_stock=True)
        assert {(row["material_name"], row["quantity"]) for row in rows} == {
            (material.name, 16),
            ("Soft-Close Hinges", 90),
        }
        assert all(row["is_low_stock"] for row in rows)

    def test_category_filter(self, activity):
        rows = inventory_service.list_inventory(category="Hinges")
        assert {row["material_name"] for row in rows} == {"Soft-Close Hinges"}

    def test_unknown_category(self, activity):
        with pytest.raises(InvalidInputError):
            inventory_service.list_inventory(category="Paint")


class TestReports:

    def test_dashboard_stats(self, activity, closed_job):
        data = reporting_service.dashboard_stats()

        assert data["stats"] == {
            "total_materials": 2,
            "low_stock_items": 4,
            "active_jobs": 2,
            "total_locations": 4,
        }
        # Oak: 30 - 7 - 2 = 21; hinges: 210 - 40 = 170
        assert data["inventory_by_category"] == {"WoodSheets": 21, "Hinges": 170}
        by_location = {row["name"]: row["total_items"] for row in data["inventory_by_location"]}
        assert by_location == {"5-1000": 0, "6-2523": 5, "6-2524": 80, "SHOP": 106}
        assert len(data["recent_transactions"]) == 5
        assert data["recent_transactions"][0]["id"] == activity["correction_id"]

    def test_inventory_report_status(self, activity, job, material):
        report = reporting_service.inventory_report()
        row = next(r for r in report if r["location"] == job.name)

        assert row["material"] == material.name
        assert row["quantity"] == 5
        assert row["status"] == "Low Stock"

    def test_usage_by_job(self, activity, job, other_job, material):
        report = {entry["job_name"]: entry["materials"] for entry in reporting_service.usage_by_job()}

        assert report[job.name] == [
            {"material_name": material.name, "category": "WoodSheets", "total_quantity": 7},
        ]
        assert report[other_job.name] == [
            {"material_name": "Soft-Close Hinges", "category": "Hinges", "total_quantity": 40},
        ]

    def test_purchase_history_skips_receipts_without_vendor(self, activity):
        report = reporting_service.purchase_history()

        vendors = [entry["vendor"] for entry in report]
        assert vendors == ["Blum", "Northwest Hardwoods"]
        blum = report[0]["purchases"]
        assert len(blum) == 1
        assert blum[0]["invoice_number"] == "B-778"
        assert blum[0]["quantity"] == 200
