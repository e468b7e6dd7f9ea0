"""OpenAI and OpenAI-compatible (fallback) adapters.

- Endpoint: POST https://api.openai.com/v1/chat/completions
- Headers: Authorization: Bearer <key>, Content-Type: application/json
- Streaming: Server-Sent Events, `data: {...}` lines, terminal `data: [DONE]`

Request body:
{
  "model": "<model_name>",
  "messages": [{"role": "user", "content": "..."}],
  "stream": true,
  "max_tokens": 4096
}

Stream chunk:
{"choices": [{"delta": {"content": "<text>"}}]}

The fallback provider speaks the same protocol at an operator-configured URL
(FALLBACK_BASE_URL). It differs from OpenAI only in URL and provider name.
"""

from typing import Any

from groundup.services.llm.adapter import DEFAULT_MAX_TOKENS, ProviderAdapter
from groundup.services.llm.types import (
    FALLBACK_PROVIDER,
    HttpRequestSpec,
    ProviderEvent,
    TextDelta,
    Turn,
)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions adapter.

    OpenAI uses the same role names as our Turn type, so messages pass through flat.
    """

    name = "openai"

    def __init__(self, url: str = OPENAI_CHAT_URL):
        self.url = url

    def _build(self, model: str, credential: str, messages: list[Turn]) -> HttpRequestSpec:
        return HttpRequestSpec(
            url=self.url,
            headers={
                "Authorization": f"Bearer {credential}",
                "Content-Type": "application/json",
            },
            body={
                "model": model,
                "messages": [{"role": turn.role, "content": turn.content} for turn in messages],
                "stream": True,
                "max_tokens": DEFAULT_MAX_TOKENS,
            },
        )

    def _parse_payload(self, data: dict[str, Any]) -> ProviderEvent | None:
        choices = data.get("choices") or []
        if not choices:
            return None

        text = (choices[0].get("delta") or {}).get("content")
        if isinstance(text, str) and text:
            return TextDelta(text)
        return None


class FallbackAdapter(OpenAIAdapter):
    """Operator-held OpenAI-compatible provider used after a credential is rejected."""

    name = FALLBACK_PROVIDER
