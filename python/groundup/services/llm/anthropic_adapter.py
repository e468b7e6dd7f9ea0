"""Anthropic messages adapter.

- Endpoint: POST https://api.anthropic.com/v1/messages
- Headers: x-api-key: <key>, anthropic-version: 2023-06-01, Content-Type: application/json

Turn conversion:
- Roles are normalized to "user" / "assistant"; a system turn is sent as a user turn
  because this service never sends a separate system prompt

Request body:
{
  "model": "<model_name>",
  "messages": [{"role": "user", "content": "..."}],
  "max_tokens": 4096,
  "stream": true
}

Streaming events (only data lines matter; `event:` lines are ignored):
- {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "..."}}
- {"type": "message_stop"}  terminal
"""

from typing import Any

from groundup.services.llm.adapter import DEFAULT_MAX_TOKENS, ProviderAdapter
from groundup.services.llm.types import (
    HttpRequestSpec,
    ProviderEvent,
    StreamDone,
    TextDelta,
    Turn,
)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """Anthropic API adapter for the messages endpoint."""

    name = "anthropic"

    def _build(self, model: str, credential: str, messages: list[Turn]) -> HttpRequestSpec:
        return HttpRequestSpec(
            url=ANTHROPIC_MESSAGES_URL,
            headers={
                "x-api-key": credential,
                "anthropic-version": ANTHROPIC_API_VERSION,
                "Content-Type": "application/json",
            },
            body={
                "model": model,
                "messages": [
                    {
                        "role": "assistant" if turn.role == "assistant" else "user",
                        "content": turn.content,
                    }
                    for turn in messages
                ],
                "max_tokens": DEFAULT_MAX_TOKENS,
                "stream": True,
            },
        )

    def _parse_payload(self, data: dict[str, Any]) -> ProviderEvent | None:
        event_type = data.get("type")

        if event_type == "message_stop":
            return StreamDone()

        if event_type != "content_block_delta":
            return None

        text = (data.get("delta") or {}).get("text")
        if isinstance(text, str) and text:
            return TextDelta(text)
        return None
