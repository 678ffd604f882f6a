"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations mirror what is defined here.

Key concepts:
- UUID primary keys for users and projects
- Portable Uuid/JSON column types, so the schema runs on PostgreSQL in
  production and SQLite in the test suite
- Link tables for the three user↔project relations (owners, the user's
  own project list, the watch list)
- Python-side defaults, so freshly flushed rows are fully populated
  without an extra round-trip
"""

import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def new_registration_id() -> str:
    return secrets.token_urlsafe(24)


# ══════════════════════════════════════════════════════════════
# Link tables
# ══════════════════════════════════════════════════════════════

project_owners = Table(
    "project_owners",
    Base.metadata,
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

# The projects a user has published (what their profile lists).
user_projects = Table(
    "user_projects",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
)

watch_list = Table(
    "watch_list",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
)


# ══════════════════════════════════════════════════════════════
# Users and registration
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A registered developer.

    Only ever created by a successful OTP verification. refresh_token holds
    the single currently valid refresh token; issuing a new one replaces it.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(39), unique=True, index=True, nullable=False)
    fullname: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    github_id: Mapped[str] = mapped_column(String(39), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    profile_pic: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    cover_img: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    tech_stack: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    domains: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships: load explicitly (selectinload) where needed
    projects: Mapped[list["Project"]] = relationship(
        secondary=user_projects, lazy="raise"
    )
    watch_list: Mapped[list["Project"]] = relationship(
        secondary=watch_list, lazy="raise"
    )


class PendingRegistration(Base):
    """A registration waiting for its emailed one-time code.

    The id doubles as the opaque reference handed to the client. payload
    holds the validated user fields with the password already hashed, so
    nothing the client sends after registration can change the account.
    """

    __tablename__ = "pending_registrations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_registration_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    otp_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


# ══════════════════════════════════════════════════════════════
# Projects
# ══════════════════════════════════════════════════════════════


class Project(Base):
    """A showcased project with one or more owners."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    repo_id: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str] = mapped_column(String(100), nullable=False)
    tech_stacks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    videos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    thumbnail: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    owners: Mapped[list["User"]] = relationship(
        secondary=project_owners, lazy="selectin", order_by="User.username"
    )
