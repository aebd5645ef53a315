"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Unlike a blanket include_router(dependencies=...) guard, each
protected route declares its own guard chain, because the chains differ
(plain authentication for reads, tenant + admin role for writes).
Health and the auth endpoints that establish a session are open.
"""

from fastapi import APIRouter

from projecthub.api.auth import router as auth_router
from projecthub.api.health import router as health_router
from projecthub.api.projects import router as projects_router
from projecthub.api.templates import router as templates_router
from projecthub.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(projects_router, tags=["projects"])
api_router.include_router(templates_router, tags=["templates"])
