"""Security headers middleware.

Every response gets:
- X-Content-Type-Options: nosniff, so uploaded media is never re-typed
- X-Frame-Options: DENY
- Referrer-Policy: strict-origin-when-cross-origin
- Strict-Transport-Security, only when the request came in over HTTPS

API responses also get Cache-Control: no-store (they carry tokens and
profile data). Files under the media prefix are user uploads, so they are
served sandboxed and can't run script in the app's origin.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

MEDIA_CSP = "default-src 'none'; img-src 'self'; media-src 'self'; sandbox"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, api_prefix: str = "/api", media_prefix: str = "/media"):
        super().__init__(app)
        self.api_prefix = api_prefix
        self.media_prefix = media_prefix

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        headers = response.headers
        headers["X-Content-Type-Options"] = "nosniff"
        headers["X-Frame-Options"] = "DENY"
        headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        path = request.url.path
        if path.startswith(self.api_prefix):
            headers["Cache-Control"] = "no-store"
        elif path.startswith(self.media_prefix):
            headers["Content-Security-Policy"] = MEDIA_CSP
        return response
