"""API route definitions.

Uses a factory so importing route modules never loads settings.
"""

from fastapi import APIRouter

from groundup.api.routes.enhancements import router as enhancements_router
from groundup.api.routes.health import router as health_router
from groundup.api.routes.keys import router as keys_router
from groundup.api.routes.models import router as models_router
from groundup.api.routes.resumes import router as resumes_router


def create_api_router() -> APIRouter:
    """Create the API router with every route registered."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(keys_router, tags=["keys"])
    api_router.include_router(models_router, tags=["models"])
    api_router.include_router(resumes_router, tags=["resumes"])
    api_router.include_router(enhancements_router, tags=["enhancements"])
    return api_router


__all__ = ["create_api_router"]
