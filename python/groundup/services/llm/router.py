"""Provider router: adapter selection and the streaming HTTP call.

- Resolves the adapter for a provider name, honoring feature flags
- Issues the request built by the adapter over the shared httpx.AsyncClient
- Turns the upstream response into ProviderEvents:
    non-2xx          -> StreamFailed(status_code, body slice)
    read timeout     -> StreamFailed(None, ..., E_LLM_TIMEOUT)
    network failure  -> StreamFailed(None, ..., E_LLM_PROVIDER_DOWN)
    data lines       -> TextDelta / StreamDone via adapter.parse_event
- Never raises for upstream problems; the orchestrator decides what a failure means

Observability:
- Emits llm.request.started / llm.request.finished / llm.request.failed
- All events go through safe_kv(); URLs (which may carry a Google key) are never logged
"""

import json
import time
from collections.abc import AsyncIterator

import httpx

from groundup.logging import get_logger
from groundup.services.llm.adapter import ProviderAdapter
from groundup.services.llm.anthropic_adapter import AnthropicAdapter
from groundup.services.llm.errors import LLMError, LLMErrorClass, classify_provider_error
from groundup.services.llm.gemini_adapter import GeminiAdapter
from groundup.services.llm.openai_adapter import FallbackAdapter, OpenAIAdapter
from groundup.services.llm.types import (
    FALLBACK_PROVIDER,
    ProviderEvent,
    StreamDone,
    StreamFailed,
    Turn,
)
from groundup.services.redact import safe_kv

logger = get_logger(__name__)

DEFAULT_READ_TIMEOUT_S = 60.0
CONNECT_TIMEOUT_S = 10.0

# Upper bound on upstream error body kept for notes and logs
MAX_ERROR_BODY_CHARS = 500


class LLMRouter:
    """Routes streaming requests to provider adapters."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        fallback_url: str,
        enable_openai: bool = True,
        enable_anthropic: bool = True,
        enable_google: bool = True,
    ):
        """Initialize router with shared HTTP client and feature flags.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
            fallback_url: Chat completions URL of the OpenAI-compatible fallback provider.
            enable_openai: Whether OpenAI provider is enabled.
            enable_anthropic: Whether Anthropic provider is enabled.
            enable_google: Whether Google provider is enabled.
        """
        self._client = client
        self._feature_flags = {
            "openai": enable_openai,
            "anthropic": enable_anthropic,
            "google": enable_google,
            # The fallback provider cannot be disabled
            FALLBACK_PROVIDER: True,
        }
        self._adapters: dict[str, ProviderAdapter] = {
            "openai": OpenAIAdapter(),
            "anthropic": AnthropicAdapter(),
            "google": GeminiAdapter(),
            FALLBACK_PROVIDER: FallbackAdapter(fallback_url),
        }

    def resolve_adapter(self, provider: str) -> ProviderAdapter:
        """Get adapter for provider, checking feature flags.

        Raises:
            LLMError: If provider is unknown or disabled.
        """
        if provider not in self._adapters:
            raise LLMError(
                LLMErrorClass.MODEL_NOT_AVAILABLE,
                f"Unknown provider: {provider}",
                provider=provider,
            )

        if not self._feature_flags.get(provider, False):
            raise LLMError(
                LLMErrorClass.MODEL_NOT_AVAILABLE,
                f"Provider {provider} is disabled",
                provider=provider,
            )

        return self._adapters[provider]

    def is_provider_available(self, provider: str) -> bool:
        """True if provider exists and is enabled."""
        return provider in self._adapters and self._feature_flags.get(provider, False)

    async def stream_events(
        self,
        provider: str,
        model: str,
        credential: str,
        messages: list[Turn],
        *,
        read_timeout_s: float = DEFAULT_READ_TIMEOUT_S,
    ) -> AsyncIterator[ProviderEvent]:
        """Stream one upstream call as ProviderEvents.

        The sequence ends after StreamDone, after a StreamFailed, or when the
        upstream body ends. Closing this generator early closes the upstream
        connection.

        Args:
            provider: Provider name.
            model: Upstream model identifier.
            credential: Provider credential (never logged).
            messages: Conversation turns.
            read_timeout_s: Maximum idle gap between upstream bytes.
        """
        base = {"provider": provider, "model_name": model}

        try:
            adapter = self.resolve_adapter(provider)
            spec = adapter.build_request(model, credential, messages)
        except (LLMError, ValueError) as e:
            error_class = (
                e.error_class if isinstance(e, LLMError) else LLMErrorClass.MODEL_NOT_AVAILABLE
            )
            logger.error(
                "llm.request.failed",
                **safe_kv(**base, outcome="error", error_class=error_class.value),
            )
            yield StreamFailed(status_code=None, body=str(e), error_class=error_class.value)
            return

        logger.info(
            "llm.request.started",
            **safe_kv(**base, message_chars=sum(len(m.content) for m in messages)),
        )
        start = time.monotonic()
        delta_count = 0

        try:
            async with self._client.stream(
                "POST",
                spec.url,
                headers=spec.headers,
                json=spec.body,
                timeout=httpx.Timeout(read_timeout_s, connect=CONNECT_TIMEOUT_S),
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    error_class = classify_provider_error(
                        provider, response.status_code, _safe_parse_json(body), None
                    )
                    logger.error(
                        "llm.request.failed",
                        **safe_kv(
                            **base,
                            outcome="error",
                            status_code=response.status_code,
                            error_class=error_class.value,
                            latency_ms=_elapsed_ms(start),
                        ),
                    )
                    yield StreamFailed(
                        status_code=response.status_code,
                        body=body[:MAX_ERROR_BODY_CHARS],
                        error_class=error_class.value,
                    )
                    return

                async for line in response.aiter_lines():
                    event = adapter.parse_event(line)
                    if event is None:
                        continue
                    if isinstance(event, StreamDone):
                        break
                    delta_count += 1
                    yield event

        except httpx.TransportError as e:
            error_class = classify_provider_error(provider, None, None, e)
            logger.error(
                "llm.request.failed",
                **safe_kv(
                    **base,
                    outcome="error",
                    error_class=error_class.value,
                    error_type=type(e).__name__,
                    delta_count=delta_count,
                    latency_ms=_elapsed_ms(start),
                ),
            )
            yield StreamFailed(
                status_code=None,
                body=f"{type(e).__name__} while streaming from {provider}",
                error_class=error_class.value,
            )
            return

        logger.info(
            "llm.request.finished",
            **safe_kv(
                **base,
                outcome="success",
                delta_count=delta_count,
                latency_ms=_elapsed_ms(start),
            ),
        )
        yield StreamDone()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _safe_parse_json(body: str) -> dict | None:
    """Parse an error body as JSON, returning None when it is not a JSON object."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None
