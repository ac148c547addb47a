import pytest

from app.remote.base import CONFLICT, RemoteError

PAYLOAD = {
    "adminname": "Isata Jalloh",
    "emailaddress": "isata@example.com",
    "password": "Secret123",
    "gender": "Female",
    "role": "Principal",
    "schoolName": "Freetown Academy",
    "schoolStage": "Junior Secondary",
}


@pytest.mark.asyncio
async def test_provisioning_creates_account_school_and_admin(client, services) -> None:
    response = await client.post("/api/v1/admins", json=PAYLOAD)

    assert response.status_code == 201
    body = response.json()
    admin_id = body["admin_id"]
    assert admin_id in services.auth.users
    assert services.remote.rows("schools")[0]["stage"] == "Junior Secondary"
    admin = services.remote.rows("schooladmin")[0]
    assert admin["school_id"] == body["school_id"]
    assert admin["hasloggedinbefore"] is False
    assert services.documents.remote.rows("schooladmin")[0]["id"] == admin_id
    assert body["welcome_notification_id"].startswith("NOTIF_")


@pytest.mark.asyncio
async def test_admin_insert_failure_compensates_in_reverse_order(client, services) -> None:
    services.remote.fail_table("schooladmin", "insert violates row-level security", kind="permission")

    response = await client.post("/api/v1/admins", json=PAYLOAD)

    assert response.status_code == 403
    saga = response.json()["saga"]
    assert saga["success"] is False
    assert saga["failed_step"] == "create_admin_profile"
    assert [c["name"] for c in saga["compensations"]] == ["create_school", "create_auth_user"]
    assert all(c["status"] == "compensated" for c in saga["compensations"])
    assert services.remote.rows("schools") == []
    assert services.auth.users == {}


@pytest.mark.asyncio
async def test_failed_compensation_is_reported_not_raised(client, services) -> None:
    def reject_school(operation, table, payload):
        if operation == "insert" and table == "schools":
            return RemoteError(message="duplicate key", kind=CONFLICT)
        return None

    services.remote.fail_when(reject_school)
    services.auth.fail_deletes = True

    response = await client.post("/api/v1/admins", json=PAYLOAD)

    assert response.status_code == 409
    saga = response.json()["saga"]
    assert saga["failed_step"] == "create_school"
    assert saga["compensations"][0]["status"] == "compensation_failed"
    # the orphaned auth account is left behind
    assert len(services.auth.users) == 1


@pytest.mark.asyncio
async def test_already_registered_email(client, services) -> None:
    await client.post("/api/v1/admins", json=PAYLOAD)

    response = await client.post("/api/v1/admins", json={**PAYLOAD, "schoolName": "Second School"})

    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered. Use a different email."
    assert len(services.remote.rows("schools")) == 1
