"""Registration tests — staging, OTP verification, duplicate prevention.

Covers:
1. /register stages a pending registration and emails a code, no user yet
2. /verify-otp with the right code creates exactly one user
3. Wrong, expired or missing codes never create a user
4. Duplicate username/email/githubId → 409
5. Field validation → 400 in the error envelope
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from devfolio.db.models import PendingRegistration, User, utcnow


async def _user_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(User))
    return result.scalar_one()


# ═══════════════════════════════════════════════════════════
# Staging
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_stages_without_creating_user(client, mailer, db_session, registration_form):
    r = await client.post("/api/v1/users/register", data=registration_form("Alice"))
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["statusCode"] == 201

    pending = body["data"]
    assert pending["username"] == "alice"  # lowercased
    assert pending["email"] == "alice@devfolio.dev"
    assert pending["githubId"] == "alice-gh"
    assert pending["registrationId"]
    assert pending["profilePic"] == ""
    assert pending["coverImg"] == ""
    assert "password" not in pending
    assert "passwordHash" not in pending

    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == "alice@devfolio.dev"
    assert await _user_count(db_session) == 0


@pytest.mark.asyncio
async def test_register_stores_hashes_only(client, mailer, db_session, registration_form, password):
    await client.post("/api/v1/users/register", data=registration_form("bob"))
    otp = mailer.last_otp("bob@devfolio.dev")

    pending = (await db_session.execute(select(PendingRegistration))).scalars().one()
    assert pending.otp_hash != otp
    assert pending.otp_hash.startswith("$2")
    assert "password" not in pending.payload
    assert pending.payload["password_hash"].startswith("$2")
    assert password not in str(pending.payload)


@pytest.mark.asyncio
async def test_register_uploads_profile_media(client, storage, registration_form):
    r = await client.post(
        "/api/v1/users/register",
        data=registration_form("carol"),
        files={
            "profilePic": ("me.png", b"png-bytes", "image/png"),
            "coverImg": ("cover.jpg", b"jpg-bytes", "image/jpeg"),
        },
    )
    assert r.status_code == 201
    pending = r.json()["data"]
    assert pending["profilePic"] == "/media/avatars/me.png"
    assert pending["coverImg"] == "/media/covers/cover.jpg"
    assert {folder for folder, _, _ in storage.saved} == {"avatars", "covers"}


@pytest.mark.asyncio
async def test_reregister_replaces_pending_code(client, mailer, db_session, registration_form):
    form = registration_form("dave")
    r1 = await client.post("/api/v1/users/register", data=form)
    first_id = r1.json()["data"]["registrationId"]
    r2 = await client.post("/api/v1/users/register", data=form)
    second_id = r2.json()["data"]["registrationId"]
    assert first_id != second_id

    rows = (await db_session.execute(select(PendingRegistration))).scalars().all()
    assert [row.id for row in rows] == [second_id]

    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": first_id, "otp": mailer.last_otp(form["email"])},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_register_mail_failure_is_500(client, mailer, registration_form):
    mailer.fail = True
    r = await client.post("/api/v1/users/register", data=registration_form("erin"))
    assert r.status_code == 500
    assert r.json() == {
        "statusCode": 500,
        "message": "Failed to send verification email",
        "success": False,
    }


# ═══════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_blank_field(client, registration_form):
    r = await client.post(
        "/api/v1/users/register", data=registration_form("frank", position="   ")
    )
    assert r.status_code == 400
    assert r.json()["message"] == "All fields are required"
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_register_missing_field(client, registration_form):
    form = registration_form("grace")
    del form["description"]
    r = await client.post("/api/v1/users/register", data=form)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_register_bad_email(client, registration_form):
    r = await client.post(
        "/api/v1/users/register", data=registration_form("heidi", email="not-an-email")
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Email not acceptable"


@pytest.mark.asyncio
async def test_register_bad_github_id(client, registration_form):
    r = await client.post(
        "/api/v1/users/register", data=registration_form("ivan", githubId="-bad--id-")
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Github ID not acceptable"


@pytest.mark.asyncio
async def test_register_short_password(client, registration_form):
    r = await client.post(
        "/api/v1/users/register", data=registration_form("judy", password="abc")
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Duplicates
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "username,overrides",
    [
        ("mallory", {"email": "other@devfolio.dev", "githubId": "other-gh"}),  # same username
        ("other", {"email": "mallory@devfolio.dev", "githubId": "other-gh"}),  # same email
        ("other", {"email": "other@devfolio.dev", "githubId": "mallory-gh"}),  # same github id
    ],
)
async def test_register_duplicate_identity(
    client, create_user, mailer, username, overrides, registration_form
):
    await create_user("mallory")
    mails_before = len(mailer.sent)

    r = await client.post(
        "/api/v1/users/register", data=registration_form(username, **overrides)
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Username/email/github already exists"
    assert len(mailer.sent) == mails_before


@pytest.mark.asyncio
async def test_register_duplicate_username_case_insensitive(client, create_user, registration_form):
    await create_user("niaj")
    r = await client.post(
        "/api/v1/users/register",
        data=registration_form("NIAJ", email="n2@devfolio.dev", githubId="n2-gh"),
    )
    assert r.status_code == 409


# ═══════════════════════════════════════════════════════════
# Verification
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_verify_creates_user(client, mailer, db_session, registration_form):
    form = registration_form("olivia")
    r = await client.post("/api/v1/users/register", data=form)
    registration_id = r.json()["data"]["registrationId"]

    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": registration_id, "otp": mailer.last_otp(form["email"])},
    )
    assert r.status_code == 200
    user = r.json()["data"]
    assert user["username"] == "olivia"
    assert user["fullname"] == "Olivia Developer"
    assert "password" not in user
    assert "passwordHash" not in user
    assert "refreshToken" not in user

    assert await _user_count(db_session) == 1
    remaining = (await db_session.execute(select(PendingRegistration))).scalars().all()
    assert remaining == []


@pytest.mark.asyncio
async def test_verify_by_email(client, mailer, registration_form):
    form = registration_form("peggy")
    await client.post("/api/v1/users/register", data=form)
    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"email": form["email"], "otp": mailer.last_otp(form["email"])},
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_verify_is_single_use(client, mailer, registration_form):
    form = registration_form("quinn")
    r = await client.post("/api/v1/users/register", data=form)
    body = {
        "registrationId": r.json()["data"]["registrationId"],
        "otp": mailer.last_otp(form["email"]),
    }
    assert (await client.post("/api/v1/users/verify-otp", json=body)).status_code == 200
    assert (await client.post("/api/v1/users/verify-otp", json=body)).status_code == 404


@pytest.mark.asyncio
async def test_verify_wrong_otp(client, mailer, db_session, registration_form):
    form = registration_form("rupert")
    r = await client.post("/api/v1/users/register", data=form)
    registration_id = r.json()["data"]["registrationId"]
    otp = mailer.last_otp(form["email"])
    wrong = "0" * len(otp) if otp != "0" * len(otp) else "1" * len(otp)

    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": registration_id, "otp": wrong},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Wrong OTP"
    assert await _user_count(db_session) == 0
    assert await db_session.get(PendingRegistration, registration_id) is None

    # The code is spent; even the right one no longer works
    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": registration_id, "otp": otp},
    )
    assert r.status_code == 404
    assert await _user_count(db_session) == 0


@pytest.mark.asyncio
async def test_verify_expired_otp(client, mailer, db_session, registration_form):
    form = registration_form("sybil")
    r = await client.post("/api/v1/users/register", data=form)
    registration_id = r.json()["data"]["registrationId"]

    pending = await db_session.get(PendingRegistration, registration_id)
    pending.expires_at = utcnow() - timedelta(minutes=1)
    await db_session.commit()

    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": registration_id, "otp": mailer.last_otp(form["email"])},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "OTP has expired"
    assert await _user_count(db_session) == 0
    assert await db_session.get(PendingRegistration, registration_id) is None


@pytest.mark.asyncio
async def test_verify_unknown_registration(client):
    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": "does-not-exist", "otp": "123456"},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_verify_requires_identifier(client):
    r = await client.post("/api/v1/users/verify-otp", json={"otp": "123456"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_verify_conflict_when_name_taken_meanwhile(client, mailer, create_user, registration_form):
    form = registration_form("trent")
    r = await client.post("/api/v1/users/register", data=form)
    registration_id = r.json()["data"]["registrationId"]
    otp = mailer.last_otp(form["email"])

    # Same username claimed by a different email/github while the code was pending
    await create_user("trent", email="trent2@devfolio.dev", githubId="trent2-gh")

    r = await client.post(
        "/api/v1/users/verify-otp",
        json={"registrationId": registration_id, "otp": otp},
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_register_email_is_case_folded(client, create_user, registration_form, db_session):
    r = await client.post(
        "/api/v1/users/register",
        data=registration_form("wendy", email="Wendy@DevFolio.dev"),
    )
    assert r.status_code == 201
    pending = await db_session.get(PendingRegistration, r.json()["data"]["registrationId"])
    assert pending.email == "wendy@devfolio.dev"

    await create_user("victor")
    r = await client.post(
        "/api/v1/users/register",
        data=registration_form("victor2", email="Victor@DevFolio.dev", githubId="victor2-gh"),
    )
    assert r.status_code == 409


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field,value",
    [
        ("username", "u" * 40),
        ("fullname", "F" * 101),
        ("position", "P" * 101),
        ("email", "e" * 250 + "@devfolio.dev"),
    ],
)
async def test_register_rejects_overlong_fields(
    client, mailer, db_session, registration_form, field, value
):
    """Values the users table can't hold are refused before any code is sent."""
    r = await client.post(
        "/api/v1/users/register", data=registration_form("walter", **{field: value})
    )
    assert r.status_code == 400
    assert r.json()["message"].startswith(f"{field} must be at most")
    assert mailer.sent == []
    assert (await db_session.execute(select(PendingRegistration))).scalars().all() == []
