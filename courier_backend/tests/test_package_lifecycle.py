"""
Integration tests for the package lifecycle.

Tests creation defaults, role-gated updates, courier self-assignment,
history derivation and deletion.
"""

import re
import pytest
from datetime import datetime, timedelta

from courier_backend.app.services.audit import get_audit_trail, AuditAction
from conftest import package_payload


def parse_time(value):
    return datetime.fromisoformat(value).replace(tzinfo=None)


async def update(client, package_id, user, **fields):
    return await client.put(f"/v1/packages/{package_id}", json=fields, headers=user["headers"])


async def fetch(client, package_id, user):
    response = await client.get(f"/v1/packages/{package_id}", headers=user["headers"])
    assert response.status_code == 200, response.text
    return response.json()


# TEST 1: Creation defaults
@pytest.mark.asyncio
async def test_create_applies_defaults(create_package):
    package = await create_package()
    
    assert re.fullmatch(r"PKG-[0-9A-Z]+", package["tracking_id"])
    assert package["status"] == "Pending"
    assert package["current_location"] == "1 Origin Road, Springfield"
    assert package["pickup_address"] == "1 Origin Road, Springfield"
    assert package["delivery_address"] == "9 Destination Ave, Shelbyville"
    assert package["assigned_courier"] is None
    
    eta_offset = parse_time(package["eta"]) - parse_time(package["created_at"])
    assert abs(eta_offset - timedelta(days=3)) < timedelta(minutes=1)
    
    assert len(package["history"]) == 1
    first = package["history"][0]
    assert first["status"] == "Pending"
    assert first["location"] == "1 Origin Road, Springfield"
    assert first["description"] == "Package created with status: Pending"


@pytest.mark.asyncio
async def test_create_honours_supplied_values(create_package, courier):
    package = await create_package(
        tracking_id="PKG-CUSTOM1",
        status="Picked Up",
        current_location="Warehouse 7",
        eta="2030-01-01T00:00:00Z",
        assigned_courier=courier["id"],
    )
    
    assert package["tracking_id"] == "PKG-CUSTOM1"
    assert package["status"] == "Picked Up"
    assert package["current_location"] == "Warehouse 7"
    assert package["eta"].startswith("2030-01-01T00:00:00")
    assert package["assigned_courier"] == {"id": courier["id"], "username": "courier1", "email": "courier1@test.com"}
    assert package["history"][0]["status"] == "Picked Up"
    assert package["history"][0]["location"] == "Warehouse 7"


@pytest.mark.asyncio
async def test_generated_tracking_ids_are_unique(create_package):
    packages = [await create_package() for _ in range(5)]
    assert len({p["tracking_id"] for p in packages}) == 5


@pytest.mark.asyncio
async def test_customer_can_create_package(create_package, alice):
    package = await create_package(sender_email="alice@x.com", headers=alice["headers"])
    assert package["sender_info"]["email"] == "alice@x.com"


# TEST 2: Creation validation and permissions
@pytest.mark.asyncio
async def test_create_requires_recipient(client, admin):
    payload = package_payload()
    del payload["recipient_info"]
    
    response = await client.post("/v1/packages", json=payload, headers=admin["headers"])
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_create_rejects_blank_contact_fields(client, admin):
    payload = package_payload()
    payload["sender_info"]["name"] = "   "
    
    response = await client.post("/v1/packages", json=payload, headers=admin["headers"])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_rejects_numeric_tracking_id(client, admin):
    response = await client.post("/v1/packages", json=package_payload(tracking_id="12345"), headers=admin["headers"])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_tracking_id_conflicts(client, admin, create_package):
    await create_package(tracking_id="PKG-DUP1")
    
    response = await client.post("/v1/packages", json=package_payload(tracking_id="PKG-DUP1"), headers=admin["headers"])
    assert response.status_code == 409
    assert response.json()["message"] == "Tracking ID 'PKG-DUP1' already exists"


@pytest.mark.asyncio
async def test_courier_cannot_create_package(client, courier):
    response = await client.post("/v1/packages", json=package_payload(), headers=courier["headers"])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_customer_cannot_assign_courier_at_creation(client, alice, courier):
    response = await client.post(
        "/v1/packages",
        json=package_payload(assigned_courier=courier["id"]),
        headers=alice["headers"]
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_creation_is_audited(db_session, create_package, admin):
    package = await create_package()
    
    trail = await get_audit_trail(db_session, target_type="package", target_id=package["tracking_id"])
    assert [entry.action for entry in trail] == [AuditAction.PACKAGE_CREATED]
    assert trail[0].actor_id == admin["id"]


# TEST 3: Courier field whitelist
@pytest.mark.asyncio
async def test_courier_cannot_edit_contact_details(client, admin, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    new_sender = dict(package["sender_info"], name="Mallory")
    
    response = await update(client, package["id"], courier, sender_info=new_sender, status="Picked Up")
    assert response.status_code == 403
    assert response.json()["details"]["forbidden_fields"] == ["sender_info"]
    
    unchanged = await fetch(client, package["id"], admin)
    assert unchanged["sender_info"]["name"] == "Alice Sender"
    assert unchanged["status"] == "Pending"
    assert len(unchanged["history"]) == 1


@pytest.mark.asyncio
async def test_courier_cannot_change_tracking_id(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], courier, tracking_id="PKG-NEW")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_customer_cannot_update_packages(client, alice, create_package):
    package = await create_package(sender_email="alice@x.com")
    
    response = await update(client, package["id"], alice, status="Cancelled")
    assert response.status_code == 403


# TEST 4: Courier assignment rules
@pytest.mark.asyncio
async def test_courier_self_assigns_unassigned_package(client, courier, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], courier, assigned_courier=courier["id"])
    assert response.status_code == 200
    data = response.json()
    assert data["assigned_courier"]["id"] == courier["id"]
    assert len(data["history"]) == 1
    
    response = await client.get("/v1/packages", headers=courier["headers"])
    assert [p["id"] for p in response.json()["packages"]] == [package["id"]]
    
    response = await client.get("/v1/packages?assigned=false", headers=courier["headers"])
    assert response.json()["packages"] == []


@pytest.mark.asyncio
async def test_courier_self_assigns_and_updates_in_one_request(client, courier, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], courier, assigned_courier=courier["id"], status="Out for Pickup")
    assert response.status_code == 200
    assert response.json()["status"] == "Out for Pickup"
    assert len(response.json()["history"]) == 2


@pytest.mark.asyncio
async def test_courier_cannot_assign_someone_else(client, admin, courier, other_courier, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], courier, assigned_courier=other_courier["id"])
    assert response.status_code == 403
    assert (await fetch(client, package["id"], admin))["assigned_courier"] is None


@pytest.mark.asyncio
async def test_courier_cannot_take_another_couriers_package(client, admin, courier, other_courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], other_courier, assigned_courier=other_courier["id"])
    assert response.status_code == 403
    assert response.json()["message"] == "Package is already assigned to another courier"
    assert (await fetch(client, package["id"], admin))["assigned_courier"]["id"] == courier["id"]


@pytest.mark.asyncio
async def test_courier_cannot_update_unassigned_package(client, courier, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], courier, status="Picked Up")
    assert response.status_code == 403
    assert response.json()["message"] == "Couriers can only update packages assigned to them"


@pytest.mark.asyncio
async def test_courier_cannot_update_another_couriers_package(client, courier, other_courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], other_courier, status="Delivered")
    assert response.status_code == 403


# TEST 5: History derivation
@pytest.mark.asyncio
async def test_unchanged_status_adds_no_history(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], courier, status="Pending")
    assert response.status_code == 200
    assert len(response.json()["history"]) == 1


@pytest.mark.asyncio
async def test_status_change_adds_one_entry(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], courier, status="Picked Up")
    assert response.status_code == 200
    history = response.json()["history"]
    assert len(history) == 2
    assert history[1]["status"] == "Picked Up"
    assert history[1]["location"] == "1 Origin Road, Springfield"
    assert history[1]["description"] == "Status updated to Picked Up by courier."
    assert parse_time(history[1]["timestamp"]) >= parse_time(history[0]["timestamp"])


@pytest.mark.asyncio
async def test_location_change_adds_one_entry(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], courier, current_location="Hub 4")
    history = response.json()["history"]
    assert len(history) == 2
    assert history[1]["status"] == "Pending"
    assert history[1]["location"] == "Hub 4"
    assert history[1]["description"] == "Location updated to Hub 4 by courier."


@pytest.mark.asyncio
async def test_status_and_location_change_adds_single_entry(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], courier, status="In Transit", current_location="Hub 4")
    data = response.json()
    assert data["status"] == "In Transit"
    assert data["current_location"] == "Hub 4"
    assert len(data["history"]) == 2
    assert data["history"][1]["status"] == "In Transit"
    assert data["history"][1]["location"] == "Hub 4"


@pytest.mark.asyncio
async def test_history_is_append_only_across_updates(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    for status in ("Picked Up", "In Transit", "Out for Delivery", "Delivered"):
        response = await update(client, package["id"], courier, status=status)
        assert response.status_code == 200
    
    history = response.json()["history"]
    assert [h["status"] for h in history] == ["Pending", "Picked Up", "In Transit", "Out for Delivery", "Delivered"]


@pytest.mark.asyncio
async def test_eta_change_adds_no_history(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], courier, eta="2031-05-05T10:00:00Z")
    assert response.status_code == 200
    assert response.json()["eta"].startswith("2031-05-05T10:00:00")
    assert len(response.json()["history"]) == 1


# TEST 6: Admin updates
@pytest.mark.asyncio
async def test_admin_edits_contact_details(client, admin, create_package):
    package = await create_package()
    new_recipient = dict(package["recipient_info"], name="Rita Newname", email="rita@x.com")
    
    response = await update(client, package["id"], admin, recipient_info=new_recipient, delivery_address="10 Other St")
    assert response.status_code == 200
    data = response.json()
    assert data["recipient_info"]["name"] == "Rita Newname"
    assert data["recipient_info"]["email"] == "rita@x.com"
    assert data["delivery_address"] == "10 Other St"
    assert len(data["history"]) == 1


@pytest.mark.asyncio
async def test_admin_status_change_is_attributed_to_admin(client, admin, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], admin, status="Cancelled")
    assert response.json()["history"][-1]["description"] == "Status updated to Cancelled by admin."


@pytest.mark.asyncio
async def test_admin_cannot_assign_non_courier(client, admin, alice, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], admin, assigned_courier=alice["id"])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_reassigns_and_unassigns(client, admin, courier, other_courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await update(client, package["id"], admin, assigned_courier=other_courier["id"])
    assert response.json()["assigned_courier"]["id"] == other_courier["id"]
    
    response = await update(client, package["id"], admin, assigned_courier=None)
    assert response.status_code == 200
    assert response.json()["assigned_courier"] is None


@pytest.mark.asyncio
async def test_null_status_is_rejected(client, admin, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], admin, status=None)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_is_audited(client, db_session, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    await update(client, package["id"], courier, status="Picked Up")
    
    trail = await get_audit_trail(
        db_session, target_type="package", target_id=package["tracking_id"], action=AuditAction.PACKAGE_UPDATED
    )
    assert len(trail) == 1
    assert trail[0].actor_username == "courier1"
    assert trail[0].meta_data["updated_fields"] == ["status"]


# TEST 7: Missing packages and deletion
@pytest.mark.asyncio
async def test_update_missing_package_returns_404(client, admin):
    response = await update(client, 9999, admin, status="Delivered")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_deletes_package(client, admin, create_package):
    package = await create_package()
    
    response = await client.delete(f"/v1/packages/{package['id']}", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json()["message"] == "Package removed"
    
    response = await client.get(f"/v1/packages/{package['id']}", headers=admin["headers"])
    assert response.status_code == 404
    
    response = await client.get(f"/v1/packages/track/{package['tracking_id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_missing_package_returns_404(client, admin):
    response = await client.delete("/v1/packages/9999", headers=admin["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_courier_cannot_delete_package(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"])
    
    response = await client.delete(f"/v1/packages/{package['id']}", headers=courier["headers"])
    assert response.status_code == 403


# TEST 8: Whitespace in free-text fields
@pytest.mark.asyncio
async def test_blank_location_is_rejected(client, admin, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], admin, current_location="   ")
    assert response.status_code == 400
    assert len((await fetch(client, package["id"], admin))["history"]) == 1


@pytest.mark.asyncio
async def test_padded_location_is_trimmed_and_not_a_change(client, courier, create_package):
    package = await create_package(assigned_courier=courier["id"], current_location="  Hub 4 ")
    assert package["current_location"] == "Hub 4"
    
    response = await update(client, package["id"], courier, current_location="Hub 4  ")
    assert response.status_code == 200
    assert response.json()["current_location"] == "Hub 4"
    assert len(response.json()["history"]) == 1


@pytest.mark.asyncio
async def test_blank_addresses_are_rejected(client, admin, create_package):
    package = await create_package()
    
    for field in ("pickup_address", "delivery_address"):
        response = await update(client, package["id"], admin, **{field: " "})
        assert response.status_code == 400, field


# TEST 9: IDs beyond the integer column range
OUT_OF_RANGE_ID = 99999999999999999999


@pytest.mark.asyncio
async def test_out_of_range_package_id_is_not_found(client, admin):
    response = await client.get(f"/v1/packages/{OUT_OF_RANGE_ID}", headers=admin["headers"])
    assert response.status_code == 404
    
    response = await update(client, OUT_OF_RANGE_ID, admin, status="Delivered")
    assert response.status_code == 404
    
    response = await client.delete(f"/v1/packages/{OUT_OF_RANGE_ID}", headers=admin["headers"])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_out_of_range_courier_id_is_rejected(client, admin, create_package):
    package = await create_package()
    
    response = await update(client, package["id"], admin, assigned_courier=OUT_OF_RANGE_ID)
    assert response.status_code == 400
    
    response = await client.post(
        "/v1/packages", json=package_payload(assigned_courier=OUT_OF_RANGE_ID), headers=admin["headers"]
    )
    assert response.status_code == 400
