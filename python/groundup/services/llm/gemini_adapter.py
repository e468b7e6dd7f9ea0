"""Google Gemini adapter.

- Endpoint: POST https://generativelanguage.googleapis.com/v1beta/models/{model}:streamGenerateContent?alt=sse&key=<key>
- Auth: the key travels ONLY in the query string; no auth header is sent
- NEVER log the URL

Turn conversion:
- "assistant" becomes "model"; everything else becomes "user"
- Content is nested under parts: [{"text": "..."}]
- No "stream" field: streaming is selected by the endpoint

Request body:
{
  "contents": [{"role": "user", "parts": [{"text": "..."}]}]
}

Stream chunk:
{"candidates": [{"content": {"parts": [{"text": "..."}], "role": "model"}}]}

Gemini has no explicit terminal event; the end of the response body ends the stream.
"""

from typing import Any
from urllib.parse import quote, urlencode

from groundup.services.llm.adapter import ProviderAdapter
from groundup.services.llm.types import HttpRequestSpec, ProviderEvent, TextDelta, Turn

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiAdapter(ProviderAdapter):
    """Gemini streamGenerateContent adapter."""

    name = "google"

    def _build(self, model: str, credential: str, messages: list[Turn]) -> HttpRequestSpec:
        query = urlencode({"alt": "sse", "key": credential})
        return HttpRequestSpec(
            url=f"{GEMINI_BASE_URL}/{quote(model, safe='-._')}:streamGenerateContent?{query}",
            headers={"Content-Type": "application/json"},
            body={
                "contents": [
                    {
                        "role": "model" if turn.role == "assistant" else "user",
                        "parts": [{"text": turn.content}],
                    }
                    for turn in messages
                ],
            },
        )

    def _parse_payload(self, data: dict[str, Any]) -> ProviderEvent | None:
        candidates = data.get("candidates") or []
        if not candidates:
            return None

        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts:
            return None

        text = parts[0].get("text")
        if isinstance(text, str) and text:
            return TextDelta(text)
        return None
