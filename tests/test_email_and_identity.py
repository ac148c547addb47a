import smtplib

import pytest

from app.core.email_service import EmailService


@pytest.mark.asyncio
async def test_send_email_is_simulated_without_credentials(client, services) -> None:
    response = await client.post(
        "/api/send-email",
        json={"type": "welcome", "email": "new.admin@example.com", "name": "Isata"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "simulated": True,
        "message": "Email simulated (no SMTP credentials)",
    }
    assert services.email.outbox[-1]["subject"] == "Welcome to Skultek School Management System!"
    assert "Dear Isata" in services.email.outbox[-1]["text"]


@pytest.mark.asyncio
async def test_send_email_type_specific_fields(client, services) -> None:
    await client.post(
        "/api/send-email",
        json={
            "type": "teacher_class_assignment",
            "email": "teacher@example.com",
            "name": "Kadi",
            "className": "JSS 2B",
            "classLevel": "JSS 2",
        },
    )

    message = services.email.outbox[-1]
    assert message["subject"] == "Class Teacher Assignment: JSS 2B"
    assert "class teacher for JSS 2B (JSS 2)" in message["text"]


@pytest.mark.asyncio
async def test_send_email_validation(client) -> None:
    missing = await client.post("/api/send-email", json={"type": "welcome"})
    unknown = await client.post("/api/send-email", json={"type": "birthday", "email": "a@example.com"})

    assert missing.status_code == 400
    assert missing.json() == {"error": "Email and type are required"}
    assert unknown.status_code == 400
    assert unknown.json() == {"error": "Invalid notification type"}


@pytest.mark.asyncio
async def test_smtp_failure_is_reported_not_raised(monkeypatch) -> None:
    mailer = EmailService("sender@example.com", "app-password")

    def broken_send(*args, **kwargs):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    monkeypatch.setattr(mailer, "_do_send", broken_send)
    result = await mailer.send("someone@example.com", "Hi", "Body")

    assert result.success is False
    assert result.simulated is False
    assert "bad credentials" in result.error


@pytest.mark.asyncio
async def test_nin_verification(client) -> None:
    found = await client.post("/api/nin-verification", json={"nin": " sl55667788 "})
    missing = await client.post("/api/nin-verification", json={"nin": "SL00000000"})
    empty = await client.post("/api/nin-verification", json={})

    assert found.status_code == 200
    assert found.json()["firstName"] == "Ibrahim"
    assert found.json()["nationality"] == "Sierra Leonean"
    assert missing.status_code == 404
    assert missing.json() == {"error": "NIN not found"}
    assert empty.status_code == 400
    assert empty.json() == {"error": "NIN is required"}


@pytest.mark.asyncio
async def test_test_nin_only_knows_the_fixed_subset(client) -> None:
    known = await client.post("/api/test-nin", json={"nin": "SL87654321"})
    full_table_only = await client.post("/api/test-nin", json={"nin": "SL55667788"})

    assert known.status_code == 200
    assert known.json()["lastName"] == "Sesay"
    assert full_table_only.status_code == 404
