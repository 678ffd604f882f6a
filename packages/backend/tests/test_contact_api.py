"""Contact form tests — POST /users/{username}/contact."""

import pytest


@pytest.mark.asyncio
async def test_contact_sends_mail_to_owner(client, create_user, mailer):
    await create_user("alice")
    r = await client.post(
        "/api/v1/users/alice/contact",
        json={
            "firstName": "Bob",
            "lastName": "Visitor",
            "email": "bob@example.com",
            "message": "Loved your <project>!",
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Email sent successfully"
    assert body["data"] == {"success": True}

    mail = mailer.sent[-1]
    assert mail["to"] == "alice@devfolio.dev"
    assert mail["subject"] == "Contact Form Submission"
    assert "bob@example.com" in mail["html"]
    assert "&lt;project&gt;" in mail["html"]
    assert "<project>" not in mail["html"]


@pytest.mark.asyncio
async def test_contact_unknown_user(client, mailer):
    r = await client.post(
        "/api/v1/users/ghost/contact",
        json={"firstName": "Bob", "email": "bob@example.com", "message": "Hi"},
    )
    assert r.status_code == 404
    assert r.json()["message"] == "Owner with username ghost not found"
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_contact_missing_message(client, create_user):
    await create_user("carol")
    r = await client.post(
        "/api/v1/users/carol/contact",
        json={"firstName": "Bob", "email": "bob@example.com"},
    )
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_contact_mail_failure(client, create_user, mailer):
    await create_user("dave")
    mailer.fail = True
    r = await client.post(
        "/api/v1/users/dave/contact",
        json={"firstName": "Bob", "email": "bob@example.com", "message": "Hi"},
    )
    assert r.status_code == 500
    assert r.json()["message"] == "Error while sending the email"
