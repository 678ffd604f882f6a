"""Uniform API error type and the handlers that serialize it.

Every failure leaves the API in the same envelope:

    {"statusCode": 404, "message": "User not found", "success": false}

Services raise ApiError directly. Route handlers wrap anything unexpected
with ApiError.wrap() so the top-level handler only ever sees one shape.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = structlog.get_logger()


class ApiError(Exception):
    """An error carrying an HTTP status code and a client-facing message."""

    def __init__(self, status_code: int, message: str = "Something went wrong"):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __repr__(self) -> str:
        return f"ApiError({self.status_code}, {self.message!r})"

    # ─── Shorthands ─────────────────────────────────────

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(400, message)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized Access") -> "ApiError":
        return cls(401, message)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(404, message)

    @classmethod
    def conflict(cls, message: str) -> "ApiError":
        return cls(409, message)

    @classmethod
    def internal(cls, message: str = "Internal Server Error") -> "ApiError":
        return cls(500, message)

    @classmethod
    def wrap(cls, exc: Exception, message: str) -> "ApiError":
        """Pass ApiErrors through untouched, turn anything else into a 500."""
        if isinstance(exc, ApiError):
            return exc
        logger.error("devfolio.unexpected_error", error=str(exc), message=message)
        return cls.internal(message)


def error_body(status_code: int, message: str) -> dict:
    return {"statusCode": status_code, "message": message, "success": False}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.message),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Missing or malformed fields are a plain 400, not FastAPI's 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=error_body(400, message))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("devfolio.unhandled_exception", path=request.url.path)
    return JSONResponse(status_code=500, content=error_body(500, "Internal Server Error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
