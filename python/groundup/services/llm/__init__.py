"""Provider adapter layer for multi-provider streaming enhancement.

Provides a unified interface for streaming from OpenAI, Anthropic, Google
(Gemini) and an operator-held OpenAI-compatible fallback provider:

- Provider adapters: pure request builders and stream-line parsers
- Router: adapter selection, feature flags, and the streaming HTTP call
- Fallback policy: the single retry after a rejected user credential
- Prompt templates and input truncation
- Error classification and normalization

Usage:
    from groundup.services.llm import LLMRouter, Turn

    router = LLMRouter(httpx_client, fallback_url=settings.fallback_base_url)
    async for event in router.stream_events("openai", "gpt-4o-mini", api_key, messages):
        ...
"""

from groundup.services.llm.adapter import ProviderAdapter
from groundup.services.llm.errors import LLMError, LLMErrorClass, classify_provider_error
from groundup.services.llm.fallback import ProviderState, fallback_state, should_fallback
from groundup.services.llm.prompt import (
    ENHANCEMENT_PROMPTS,
    build_messages,
    truncate_to_budget,
)
from groundup.services.llm.router import LLMRouter
from groundup.services.llm.types import (
    FALLBACK_PROVIDER,
    HttpRequestSpec,
    ProviderEvent,
    StreamDone,
    StreamFailed,
    TextDelta,
    Turn,
)

__all__ = [
    # Core types
    "Turn",
    "HttpRequestSpec",
    "ProviderEvent",
    "TextDelta",
    "StreamDone",
    "StreamFailed",
    "FALLBACK_PROVIDER",
    # Adapter interface
    "ProviderAdapter",
    # Router
    "LLMRouter",
    # Fallback policy
    "ProviderState",
    "should_fallback",
    "fallback_state",
    # Errors
    "LLMError",
    "LLMErrorClass",
    "classify_provider_error",
    # Prompt rendering
    "ENHANCEMENT_PROMPTS",
    "build_messages",
    "truncate_to_budget",
]
