"""Contact API — forward a visitor's message to a developer by email."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devfolio.db.engine import get_db
from devfolio.errors import ApiError
from devfolio.schemas.common import ApiResponse
from devfolio.schemas.user import ContactRequest
from devfolio.services.mail_service import Mailer, get_mailer
from devfolio.services.user_service import UserService

router = APIRouter(prefix="/users")


@router.post("/{username}/contact")
async def contact_user(
    username: str,
    body: ContactRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> ApiResponse:
    service = UserService(db, mailer=mailer)
    try:
        await service.send_contact_message(
            username,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            message=body.message,
        )
    except Exception as e:
        raise ApiError.wrap(e, "Error while sending the email")
    return ApiResponse.build({"success": True}, "Email sent successfully")
