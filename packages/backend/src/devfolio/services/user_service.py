"""User service — registration, sessions, and profiles.

Service layer separates business logic from HTTP routing. API routes
call services, services call the database, the mailer and media storage.

Registration is two-step. register() validates the fields, stages them
server-side in a PendingRegistration (password already hashed) and emails
a one-time code. verify_otp() checks the code and is the only place a
User row is ever created.

Sessions keep exactly one valid refresh token per user: every login or
refresh overwrites users.refresh_token, so a rotated-out token is
rejected the next time it is presented.
"""

import secrets
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from fastapi import UploadFile
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devfolio.auth.jwt import REFRESH, TokenError, create_access_token, create_refresh_token, verify_token
from devfolio.auth.password import generate_otp, hash_otp, hash_password, verify_otp, verify_password
from devfolio.config import settings
from devfolio.db.models import PendingRegistration, User, utcnow
from devfolio.errors import ApiError
from devfolio.services.mail_service import MailError, Mailer, contact_email, otp_email
from devfolio.services.storage import LocalMediaStorage, StorageError, has_file
from devfolio.services.validators import is_blank, is_valid_email, is_valid_github_id, parse_csv

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8


def check_lengths(**fields: str) -> None:
    """400 for any value longer than its users column allows."""
    for name, value in fields.items():
        limit = getattr(User.__table__.c[name].type, "length", None)
        if limit is not None and len(value) > limit:
            raise ApiError.bad_request(f"{name} must be at most {limit} characters")


class UserService:
    """Business logic for accounts and sessions."""

    def __init__(
        self,
        db: AsyncSession,
        storage: Optional[LocalMediaStorage] = None,
        mailer: Optional[Mailer] = None,
    ):
        self.db = db
        self.storage = storage
        self.mailer = mailer

    # ─── Lookups ────────────────────────────────────────

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username.strip().lower())
        )
        return result.scalars().first()

    async def identity_taken(self, username: str, email: str, github_id: str) -> bool:
        """One query across all three unique identifiers."""
        result = await self.db.execute(
            select(User.id)
            .where(
                or_(
                    User.username == username,
                    User.email == email,
                    User.github_id == github_id,
                )
            )
            .limit(1)
        )
        return result.first() is not None

    async def _pending(
        self, registration_id: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[PendingRegistration]:
        if registration_id:
            return await self.db.get(PendingRegistration, registration_id)
        result = await self.db.execute(
            select(PendingRegistration).where(PendingRegistration.email == email.strip().lower())
        )
        return result.scalars().first()

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        *,
        username: str,
        fullname: str,
        email: str,
        password: str,
        github_id: str,
        position: str,
        description: str,
        profile_pic: Optional[UploadFile] = None,
        cover_img: Optional[UploadFile] = None,
    ) -> PendingRegistration:
        """Validate, stage and email a one-time code. Creates no User."""
        required = [username, fullname, email, password, github_id, position, description]
        if any(is_blank(value) for value in required):
            raise ApiError.bad_request("All fields are required")

        username = username.strip().lower()
        email = email.strip().lower()
        github_id = github_id.strip()
        fullname = fullname.strip()
        position = position.strip()

        if not is_valid_email(email):
            raise ApiError.bad_request("Email not acceptable")
        if not is_valid_github_id(github_id):
            raise ApiError.bad_request("Github ID not acceptable")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ApiError.bad_request(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        check_lengths(username=username, fullname=fullname, email=email, position=position)

        if await self.identity_taken(username, email, github_id):
            raise ApiError.conflict("Username/email/github already exists")

        profile_pic_url = await self._upload(profile_pic, "avatars")
        cover_img_url = await self._upload(cover_img, "covers")

        payload = {
            "username": username,
            "fullname": fullname.strip(),
            "email": email,
            "github_id": github_id,
            "password_hash": hash_password(password),
            "position": position.strip(),
            "description": description.strip(),
            "profile_pic": profile_pic_url,
            "cover_img": cover_img_url,
        }

        # A second registration for the same email replaces the first code.
        existing = await self._pending(email=email)
        if existing is not None:
            await self.db.delete(existing)
            await self.db.flush()

        otp = generate_otp()
        pending = PendingRegistration(
            email=email,
            otp_hash=hash_otp(otp),
            payload=payload,
            expires_at=utcnow() + timedelta(minutes=settings.otp_expire_minutes),
        )
        self.db.add(pending)
        await self.db.commit()

        subject, html = otp_email(otp, settings.otp_expire_minutes)
        try:
            await self.mailer.send(email, subject, html)
        except MailError:
            raise ApiError.internal("Failed to send verification email")

        logger.info("devfolio.registration_pending", username=username, email=email)
        return pending

    async def verify_otp(
        self,
        otp: str,
        registration_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        """Consume a pending registration and create the User."""
        if is_blank(otp) or not (registration_id or email):
            raise ApiError.bad_request("OTP and registration id or email are required")

        pending = await self._pending(registration_id=registration_id, email=email)
        if pending is None:
            raise ApiError.not_found("No pending registration found")

        if pending.is_expired():
            await self.db.delete(pending)
            await self.db.commit()
            raise ApiError.bad_request("OTP has expired")

        if not verify_otp(otp.strip(), pending.otp_hash):
            # One guess per code: a mismatch discards it and the user re-registers.
            logger.info("devfolio.otp_mismatch", email=pending.email)
            await self.db.delete(pending)
            await self.db.commit()
            raise ApiError.bad_request("Wrong OTP")

        payload = dict(pending.payload)
        await self.db.delete(pending)

        # Someone may have claimed a name while the code was in flight.
        if await self.identity_taken(payload["username"], payload["email"], payload["github_id"]):
            await self.db.commit()
            raise ApiError.conflict("Username/email/github already exists")

        user = User(**payload)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ApiError.conflict("Username/email/github already exists")

        logger.info("devfolio.user_registered", user_id=str(user.id), username=user.username)
        return user

    # ─── Sessions ───────────────────────────────────────

    async def issue_tokens(self, user: User) -> tuple[str, str]:
        """Mint a new pair and make its refresh token the only valid one."""
        access_token = create_access_token(str(user.id), user.email, user.username)
        refresh_token = create_refresh_token(str(user.id))
        user.refresh_token = refresh_token
        await self.db.commit()
        return access_token, refresh_token

    async def login(
        self,
        password: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> tuple[User, str, str]:
        if (is_blank(username) and is_blank(email)) or not password:
            raise ApiError.bad_request(
                "One identification field and password field is required"
            )

        conditions = []
        if not is_blank(username):
            conditions.append(User.username == username.strip().lower())
        if not is_blank(email):
            conditions.append(User.email == email.strip().lower())

        result = await self.db.execute(select(User).where(or_(*conditions)))
        user = result.scalars().first()
        if user is None:
            raise ApiError.not_found("User not found")

        if not verify_password(password, user.password_hash):
            raise ApiError.unauthorized("Incorrect Password")

        access_token, refresh_token = await self.issue_tokens(user)
        logger.info("devfolio.user_logged_in", user_id=str(user.id))
        return user, access_token, refresh_token

    async def refresh(self, incoming: Optional[str]) -> tuple[User, str, str]:
        """Rotate a refresh token. The presented token must be the stored one."""
        if not incoming:
            raise ApiError.unauthorized("Unauthorized Access")

        try:
            payload = verify_token(incoming, REFRESH)
            user_id = uuid.UUID(payload["sub"])
        except (TokenError, ValueError):
            raise ApiError.unauthorized("Invalid Refresh Token")

        user = await self.db.get(User, user_id)
        if user is None:
            raise ApiError.unauthorized("Invalid Refresh Token")

        if user.refresh_token is None or not secrets.compare_digest(
            incoming, user.refresh_token
        ):
            logger.warning("devfolio.refresh_token_reused", user_id=str(user.id))
            raise ApiError.unauthorized("Refresh token expired or used")

        access_token, refresh_token = await self.issue_tokens(user)
        logger.info("devfolio.tokens_refreshed", user_id=str(user.id))
        return user, access_token, refresh_token

    async def logout(self, user: User) -> None:
        user.refresh_token = None
        await self.db.commit()
        logger.info("devfolio.user_logged_out", user_id=str(user.id))

    # ─── Profile ────────────────────────────────────────

    async def update_profile(
        self,
        user: User,
        fullname: Optional[str] = None,
        position: Optional[str] = None,
        description: Optional[str] = None,
        tech_stack: Optional[str] = None,
        domains: Optional[str] = None,
    ) -> User:
        for field, value in (
            ("fullname", fullname),
            ("position", position),
            ("description", description),
        ):
            if value is None:
                continue
            if is_blank(value):
                raise ApiError.bad_request(f"{field} cannot be empty")
            check_lengths(**{field: value.strip()})
            setattr(user, field, value.strip())

        if tech_stack is not None:
            user.tech_stack = parse_csv(tech_stack)
        if domains is not None:
            user.domains = parse_csv(domains)

        await self.db.commit()
        return user

    async def update_media(
        self,
        user: User,
        profile_pic: Optional[UploadFile] = None,
        cover_img: Optional[UploadFile] = None,
    ) -> User:
        if not has_file(profile_pic) and not has_file(cover_img):
            raise ApiError.bad_request("profilePic or coverImg is required")

        if has_file(profile_pic):
            user.profile_pic = await self._upload(profile_pic, "avatars")
        if has_file(cover_img):
            user.cover_img = await self._upload(cover_img, "covers")

        await self.db.commit()
        return user

    # ─── Contact ────────────────────────────────────────

    async def send_contact_message(
        self,
        username: str,
        first_name: str,
        last_name: str,
        email: str,
        message: str,
    ) -> None:
        """Forward a contact-form message to the user's registered address."""
        user = await self.get_by_username(username)
        if user is None:
            raise ApiError.not_found(f"Owner with username {username} not found")
        if not user.email:
            raise ApiError.not_found(f"Email for username {username} not found")

        subject, html = contact_email(first_name, last_name, email, message)
        try:
            await self.mailer.send(user.email, subject, html)
        except MailError:
            raise ApiError.internal("Error while sending the email")

    # ─── Helpers ────────────────────────────────────────

    async def _upload(self, upload: Optional[UploadFile], folder: str) -> str:
        if not has_file(upload):
            return ""
        try:
            return await self.storage.save(upload, folder)
        except StorageError as e:
            raise ApiError.internal(f"Error uploading file: {e}")
