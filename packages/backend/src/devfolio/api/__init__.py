"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.

Authentication is per-route (Depends(get_current_user) on the handlers
that need it): the /users namespace mixes public endpoints (register,
login, browsing projects) with protected ones (logout, /me, creating
projects).
"""

from fastapi import APIRouter

from devfolio.api.contact import router as contact_router
from devfolio.api.health import router as health_router
from devfolio.api.projects import router as projects_router
from devfolio.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users", "auth"])
api_router.include_router(projects_router, tags=["projects"])
api_router.include_router(contact_router, tags=["contact"])
