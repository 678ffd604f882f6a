"""Test fixtures — a fresh in-memory database per test, fake mail and storage.

Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (StaticPool keeps the
   single connection alive) with every table created from the models.
2. The app's get_db, get_mailer and get_storage dependencies are
   overridden, so requests share the test's session and nothing leaves
   the process.
3. The client talks https so the Secure session cookies round-trip.
"""

import os
import re
import tempfile

# Settings are read at import time, so point them at test values first.
os.environ.setdefault("DEVFOLIO_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DEVFOLIO_MEDIA_ROOT", tempfile.mkdtemp(prefix="devfolio-media-"))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from devfolio.db.engine import get_db
from devfolio.db.models import Base
from devfolio.main import app
from devfolio.services.mail_service import MailError, get_mailer
from devfolio.services.storage import StorageError, get_storage

PASSWORD = "correct-horse-battery"


class FakeMailer:
    """Collects outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise MailError("SMTP unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})

    def last_otp(self, to: str) -> str:
        for mail in reversed(self.sent):
            if mail["to"] == to:
                return re.search(r"<b>(\d+)</b>", mail["html"]).group(1)
        raise AssertionError(f"no OTP mail sent to {to}")


class FakeStorage:
    """Records uploads and hands back predictable URLs."""

    def __init__(self):
        self.saved: list[tuple[str, str, bytes]] = []
        self.fail_on: str | None = None

    async def save(self, upload, folder: str) -> str:
        if self.fail_on == folder:
            raise StorageError("bucket unavailable")
        content = await upload.read()
        self.saved.append((folder, upload.filename, content))
        return f"/media/{folder}/{upload.filename}"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand-new in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest_asyncio.fixture()
async def client(db_session, mailer, storage):
    """HTTP client with database, mail and storage overridden for testing."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def session_per_request(client, db_session):
    """Switch the client to a brand-new session per request, as in production.

    Nothing is shared through the identity map, so every relationship a
    response needs has to be loaded by the request itself.
    """
    engine = db_session.bind

    async def fresh_db():
        async with AsyncSession(bind=engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_db] = fresh_db
    return client


def build_registration_form(username: str, **overrides) -> dict:
    form = {
        "username": username,
        "fullname": f"{username.title()} Developer",
        "email": f"{username.lower()}@devfolio.dev",
        "password": PASSWORD,
        "githubId": f"{username.lower()}-gh",
        "position": "Backend Engineer",
        "description": "Builds APIs",
    }
    form.update(overrides)
    return form


@pytest.fixture()
def password():
    return PASSWORD


@pytest.fixture()
def registration_form():
    """Builder for a complete, valid /register form; keyword args override fields."""
    return build_registration_form


@pytest.fixture()
def create_user(client, mailer):
    """Register + verify a user through the API. Returns the created user JSON."""

    async def _create(username: str, **overrides) -> dict:
        form = build_registration_form(username, **overrides)
        r = await client.post("/api/v1/users/register", data=form)
        assert r.status_code == 201, r.text
        pending = r.json()["data"]

        r = await client.post(
            "/api/v1/users/verify-otp",
            json={
                "registrationId": pending["registrationId"],
                "otp": mailer.last_otp(form["email"]),
            },
        )
        assert r.status_code == 200, r.text
        return r.json()["data"]

    return _create


@pytest.fixture()
def login(client):
    """Log in through the API (sets the session cookies on the client)."""

    async def _login(username: str, password: str = PASSWORD) -> dict:
        r = await client.post(
            "/api/v1/users/login",
            json={"username": username, "password": password},
        )
        assert r.status_code == 200, r.text
        return r.json()["data"]

    return _login
