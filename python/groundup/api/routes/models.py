"""Model catalogue route.

- GET /models: per-provider selectable models and the default used when a
  credential stores none. Providers disabled by feature flag are omitted.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from groundup.api.deps import get_llm_router
from groundup.auth.middleware import Viewer, get_viewer
from groundup.responses import success_response
from groundup.services import models as models_service
from groundup.services.llm import LLMRouter

router = APIRouter(tags=["models"])


@router.get("/models")
def list_models(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    llm_router: Annotated[LLMRouter, Depends(get_llm_router)],
) -> dict:
    """List the model catalogue.

    Returns:
        {"data": [ProviderModelsOut, ...]}
    """
    enabled = {
        provider: llm_router.is_provider_available(provider)
        for provider in models_service.MODEL_CATALOGUE
    }
    catalogue = models_service.list_provider_models(enabled)
    return success_response([p.model_dump(mode="json") for p in catalogue])
