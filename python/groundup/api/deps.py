"""FastAPI dependencies for route handlers."""

from fastapi import Request

from groundup.db.session import get_db, get_session_factory
from groundup.services.llm import LLMRouter

__all__ = ["get_db", "get_llm_router", "get_session_factory"]


def get_llm_router(request: Request) -> LLMRouter:
    """Shared LLMRouter created by the app lifespan (one httpx.AsyncClient per process)."""
    return request.app.state.llm_router
