"""Health check endpoint."""

from fastapi import APIRouter

from groundup.responses import success_response

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Liveness only. Does not touch the database or upstream providers."""
    return success_response({"status": "ok"})
