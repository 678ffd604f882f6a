"""Users API — registration, sessions, and the signed-in user's profile.

- POST /users/register → stage a registration, email a one-time code
- POST /users/verify-otp → code + registrationId → account created
- POST /users/login → username/email + password → session cookies
- POST /users/logout → drop the stored refresh token, clear cookies
- POST /users/refresh-token → rotate both tokens
- GET/PATCH /users/me → profile
- POST /users/me/media → replace profile picture / cover image
- GET/POST/DELETE /users/me/watchlist → projects the user follows
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Body, Cookie, Depends, File, Form, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from devfolio.auth.dependencies import ACCESS_COOKIE, REFRESH_COOKIE, get_current_user
from devfolio.config import settings
from devfolio.db.engine import get_db
from devfolio.db.models import User
from devfolio.errors import ApiError
from devfolio.schemas.common import ApiResponse
from devfolio.schemas.project import ProjectRead
from devfolio.schemas.user import (
    LoginRequest,
    PendingRegistrationRead,
    ProfileUpdate,
    RefreshRequest,
    SessionRead,
    TokenPairRead,
    UserRead,
    VerifyOtpRequest,
)
from devfolio.services.mail_service import Mailer, get_mailer
from devfolio.services.project_service import ProjectService
from devfolio.services.storage import LocalMediaStorage, get_storage
from devfolio.services.user_service import UserService

router = APIRouter(prefix="/users")


# ─── Cookies ────────────────────────────────────────────


def _cookie_options() -> dict:
    return {"httponly": True, "secure": settings.cookie_secure}


def set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **_cookie_options(),
    )
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 3600,
        **_cookie_options(),
    )


def clear_session_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, **_cookie_options())
    response.delete_cookie(REFRESH_COOKIE, **_cookie_options())


# ─── Registration ───────────────────────────────────────


@router.post("/register", status_code=201)
async def register(
    username: str = Form(""),
    fullname: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    github_id: str = Form("", alias="githubId"),
    position: str = Form(""),
    description: str = Form(""),
    profile_pic: Optional[UploadFile] = File(None, alias="profilePic"),
    cover_img: Optional[UploadFile] = File(None, alias="coverImg"),
    db: AsyncSession = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_storage),
    mailer: Mailer = Depends(get_mailer),
) -> ApiResponse:
    """Stage a registration and email the one-time code. No account yet."""
    service = UserService(db, storage=storage, mailer=mailer)
    try:
        pending = await service.register(
            username=username,
            fullname=fullname,
            email=email,
            password=password,
            github_id=github_id,
            position=position,
            description=description,
            profile_pic=profile_pic,
            cover_img=cover_img,
        )
    except Exception as e:
        raise ApiError.wrap(e, "Registration failed. Please try again.")

    body = {key: value for key, value in pending.payload.items() if key != "password_hash"}
    data = PendingRegistrationRead(
        registration_id=pending.id,
        expires_at=pending.expires_at,
        **body,
    )
    return ApiResponse.build(data, "OTP sent to email", status_code=201)


@router.post("/verify-otp")
async def verify_otp(
    body: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    """Check the code and create the account."""
    service = UserService(db)
    try:
        user = await service.verify_otp(
            body.otp,
            registration_id=body.registration_id,
            email=body.email,
        )
    except Exception as e:
        raise ApiError.wrap(e, "Verification failed. Please try again.")
    return ApiResponse.build(UserRead.model_validate(user), "OTP verified")


# ─── Sessions ───────────────────────────────────────────


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    """Username or email + password → access/refresh cookies."""
    service = UserService(db)
    user, access_token, refresh_token = await service.login(
        body.password, username=body.username, email=body.email
    )
    set_session_cookies(response, access_token, refresh_token)
    data = SessionRead(
        user=UserRead.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
    )
    return ApiResponse.build(data, "User Logged In Successfully")


@router.post("/logout")
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    await UserService(db).logout(user)
    clear_session_cookies(response)
    return ApiResponse.build({}, "User Logged Out Successfully")


@router.post("/refresh-token")
async def refresh_token(
    response: Response,
    body: Optional[RefreshRequest] = Body(None),
    cookie_token: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    """Exchange the current refresh token (cookie or body) for a new pair."""
    incoming = cookie_token or (body.refresh_token if body else None)
    _, access_token, new_refresh_token = await UserService(db).refresh(incoming)
    set_session_cookies(response, access_token, new_refresh_token)
    data = TokenPairRead(access_token=access_token, refresh_token=new_refresh_token)
    return ApiResponse.build(data, "Access Token Refreshed")


# ─── Profile ────────────────────────────────────────────


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)) -> ApiResponse:
    return ApiResponse.build(UserRead.model_validate(user), "User Data Successfully fetched")


@router.patch("/me")
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    user = await UserService(db).update_profile(
        user,
        fullname=body.fullname,
        position=body.position,
        description=body.description,
        tech_stack=body.tech_stack,
        domains=body.domains,
    )
    return ApiResponse.build(UserRead.model_validate(user), "Profile updated")


@router.post("/me/media")
async def update_media(
    profile_pic: Optional[UploadFile] = File(None, alias="profilePic"),
    cover_img: Optional[UploadFile] = File(None, alias="coverImg"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: LocalMediaStorage = Depends(get_storage),
) -> ApiResponse:
    service = UserService(db, storage=storage)
    try:
        user = await service.update_media(user, profile_pic=profile_pic, cover_img=cover_img)
    except Exception as e:
        raise ApiError.wrap(e, "Error updating profile media")
    return ApiResponse.build(UserRead.model_validate(user), "Profile media updated")


# ─── Watch list ─────────────────────────────────────────


@router.get("/me/watchlist")
async def get_watchlist(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    projects = await ProjectService(db).list_watchlist(user)
    data = [ProjectRead.model_validate(p) for p in projects]
    return ApiResponse.build(data, "Watch list fetched")


@router.post("/me/watchlist/{project_id}")
async def add_to_watchlist(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    await ProjectService(db).add_to_watchlist(user, project_id)
    return ApiResponse.build({"projectId": project_id}, "Project added to watch list")


@router.delete("/me/watchlist/{project_id}")
async def remove_from_watchlist(
    project_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse:
    await ProjectService(db).remove_from_watchlist(user, project_id)
    return ApiResponse.build({"projectId": project_id}, "Project removed from watch list")
