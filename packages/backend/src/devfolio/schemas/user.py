"""Pydantic schemas for users, registration and sessions.

Separate request schemas (input) from read schemas (output). No read
schema has a password, password hash or refresh token field, so none can
ever leak through a response.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from devfolio.schemas.common import CAMEL_CONFIG


# ─── Reads ──────────────────────────────────────────────

class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    fullname: str
    email: str
    github_id: str
    position: str
    description: str
    profile_pic: str = ""
    cover_img: str = ""
    tech_stack: list[str] = []
    domains: list[str] = []
    created_at: Optional[datetime] = None

    model_config = {**CAMEL_CONFIG, "from_attributes": True}


class PendingRegistrationRead(BaseModel):
    """What the client gets back from /register — no secrets."""
    registration_id: str
    username: str
    fullname: str
    email: str
    github_id: str
    position: str
    description: str
    profile_pic: str = ""
    cover_img: str = ""
    expires_at: datetime

    model_config = CAMEL_CONFIG


class SessionRead(BaseModel):
    user: UserRead
    access_token: str
    refresh_token: str

    model_config = CAMEL_CONFIG


class TokenPairRead(BaseModel):
    access_token: str
    refresh_token: str

    model_config = CAMEL_CONFIG


# ─── Requests ───────────────────────────────────────────

class VerifyOtpRequest(BaseModel):
    otp: str = Field(..., min_length=1)
    registration_id: Optional[str] = None
    email: Optional[str] = None

    model_config = CAMEL_CONFIG


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str = ""

    model_config = CAMEL_CONFIG


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None

    model_config = CAMEL_CONFIG


class ProfileUpdate(BaseModel):
    """Partial profile update. techStack/domains are comma-separated."""
    fullname: Optional[str] = None
    position: Optional[str] = None
    description: Optional[str] = None
    tech_stack: Optional[str] = None
    domains: Optional[str] = None

    model_config = CAMEL_CONFIG


class ContactRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    email: str = Field(..., min_length=3)
    message: str = Field(..., min_length=1)

    model_config = CAMEL_CONFIG
