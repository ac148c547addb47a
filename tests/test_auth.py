from datetime import datetime

import pytest
from jose import jwt

from app.core.config import settings
from app.core.local_state import ADMIN_ID as ADMIN_ID_KEY
from app.core.local_state import REMEMBERED_EMAIL

from helpers import ADMIN_ID, SCHOOL_ID, seed_admin


@pytest.mark.asyncio
async def test_login_success(client, services) -> None:
    seed_admin(services)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "principal@example.com", "password": "secret123", "remember_me": True},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["first_login"] is True
    assert data["admin"]["name"] == "Ada Principal"
    assert data["admin"]["school_name"] == "Hill Station Secondary"

    claims = jwt.decode(data["access_token"], settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    assert claims["admin_id"] == ADMIN_ID
    assert claims["school_id"] == SCHOOL_ID

    assert await services.state.get(ADMIN_ID_KEY) == ADMIN_ID
    assert await services.state.get(REMEMBERED_EMAIL) == "principal@example.com"


@pytest.mark.asyncio
async def test_login_invalid_password(client, services) -> None:
    seed_admin(services)

    response = await client.post("/api/v1/auth/login", json={"email": "principal@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_without_admin_profile_is_forbidden(client, services) -> None:
    services.auth.users["u-1"] = {"id": "u-1", "email": "teacher@example.com", "password": "pw123456"}

    response = await client.post("/api/v1/auth/login", json={"email": "teacher@example.com", "password": "pw123456"})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_logout_clears_session_but_keeps_remembered_email(client, services, auth_headers) -> None:
    seed_admin(services)
    await client.post(
        "/api/v1/auth/login",
        json={"email": "principal@example.com", "password": "secret123", "remember_me": True},
    )

    response = await client.post("/api/v1/auth/logout", headers=auth_headers)

    assert response.status_code == 200
    assert await services.state.get(ADMIN_ID_KEY) is None
    assert await services.state.get(REMEMBERED_EMAIL) == "principal@example.com"


@pytest.mark.asyncio
async def test_me_returns_school_stage(client, services, auth_headers) -> None:
    seed_admin(services)

    response = await client.get("/api/v1/auth/me", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["school"] == {
        "school_id": SCHOOL_ID,
        "school_name": "Hill Station Secondary",
        "stage": "Senior Secondary",
    }


@pytest.mark.asyncio
async def test_oauth_url(client) -> None:
    ok = await client.get("/api/v1/auth/oauth/google", params={"redirect_to": "http://localhost:3000/dashboard"})
    bad = await client.get("/api/v1/auth/oauth/myspace")

    assert ok.status_code == 200
    assert "provider=google" in ok.json()["url"]
    assert bad.status_code == 400


# ----- forgot / reset password -----


def _latest_code(services) -> dict:
    return services.remote.rows("verification_codes")[-1]


@pytest.mark.asyncio
async def test_forgot_password_stores_and_emails_a_code(client, services) -> None:
    seed_admin(services)

    response = await client.post("/api/auth/forgot-password", json={"email": "principal@example.com"})

    assert response.status_code == 200
    stored = _latest_code(services)
    assert len(stored["code"]) == 6
    assert stored["code"] in services.email.outbox[-1]["text"]
    assert datetime.fromisoformat(stored["expires_at"]) == services.clock() + services.reset_code_ttl


@pytest.mark.asyncio
async def test_forgot_password_second_request_replaces_the_code(client, services) -> None:
    seed_admin(services)
    await client.post("/api/auth/forgot-password", json={"email": "principal@example.com"})
    await client.post("/api/auth/forgot-password", json={"email": "principal@example.com"})

    assert len(services.remote.rows("verification_codes")) == 1


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_looks_the_same(client, services) -> None:
    response = await client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert services.remote.rows("verification_codes") == []


@pytest.mark.asyncio
async def test_forgot_password_requires_email(client) -> None:
    response = await client.post("/api/auth/forgot-password", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Email is required"}


@pytest.mark.asyncio
async def test_reset_password_flow(client, services) -> None:
    seed_admin(services)
    await client.post("/api/auth/forgot-password", json={"email": "principal@example.com"})
    code = _latest_code(services)["code"]

    response = await client.post(
        "/api/auth/reset-password",
        json={"email": "principal@example.com", "otp": code, "newPassword": "BrandNew456"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert services.auth.users[ADMIN_ID]["password"] == "BrandNew456"
    assert services.remote.rows("schooladmin")[0]["hasloggedinbefore"] is True
    assert services.remote.rows("verification_codes") == []
    titles = [n["title"] for n in services.documents.remote.rows("notifications")]
    assert titles == ["Password Changed"]


@pytest.mark.asyncio
async def test_reset_password_rejects_wrong_code(client, services) -> None:
    seed_admin(services)
    await client.post("/api/auth/forgot-password", json={"email": "principal@example.com"})

    response = await client.post(
        "/api/auth/reset-password",
        json={"email": "principal@example.com", "otp": "000000", "newPassword": "BrandNew456"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or expired verification code"}


@pytest.mark.asyncio
async def test_reset_password_rejects_expired_code(client, services, clock) -> None:
    seed_admin(services)
    await client.post("/api/auth/forgot-password", json={"email": "principal@example.com"})
    code = _latest_code(services)["code"]
    clock.advance(minutes=16)

    response = await client.post(
        "/api/auth/reset-password",
        json={"email": "principal@example.com", "otp": code, "newPassword": "BrandNew456"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Verification code has expired"}
    assert services.auth.users[ADMIN_ID]["password"] == "secret123"


@pytest.mark.asyncio
async def test_reset_password_requires_all_fields(client) -> None:
    response = await client.post("/api/auth/reset-password", json={"email": "principal@example.com"})

    assert response.status_code == 400
    assert response.json() == {"error": "Email, OTP, and new password are required"}


@pytest.mark.asyncio
async def test_first_login_sets_password_and_clears_flag(client, services, auth_headers) -> None:
    seed_admin(services)
    await client.post("/api/v1/auth/login", json={"email": "principal@example.com", "password": "secret123"})

    response = await client.post("/api/v1/auth/first-login", json={"new_password": "Chosen789"}, headers=auth_headers)

    assert response.status_code == 200
    assert services.auth.users[ADMIN_ID]["password"] == "Chosen789"
    assert services.remote.rows("schooladmin")[0]["hasloggedinbefore"] is True
    flags = (await client.get("/api/v1/auth/session", headers=auth_headers)).json()
    assert flags["hasLoggedInBefore"] is True
    assert flags["adminId"] == ADMIN_ID


@pytest.mark.asyncio
async def test_first_login_rejects_short_password(client, services, auth_headers) -> None:
    seed_admin(services)

    response = await client.post("/api/v1/auth/first-login", json={"new_password": "abc"}, headers=auth_headers)

    assert response.status_code == 422
    assert services.remote.rows("schooladmin")[0]["hasloggedinbefore"] is False
