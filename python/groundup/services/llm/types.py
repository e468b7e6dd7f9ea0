"""Shared type definitions for the provider adapter layer.

- Turn: Provider-agnostic conversation turn
- HttpRequestSpec: Fully built upstream HTTP request (pure data)
- ProviderEvent: One parsed upstream stream line (TextDelta | StreamDone | StreamFailed)

Parsing invariants:
- A line that carries no text and no terminal marker parses to None
- parse_event produces StreamDone only for an explicit terminal marker; the
  router also emits one when the upstream body ends cleanly
- StreamFailed is produced by the router, never by an adapter's parse_event
"""

from dataclasses import dataclass, field
from typing import Any, Literal

FALLBACK_PROVIDER = "fallback"


@dataclass(frozen=True)
class Turn:
    """Provider-agnostic conversation turn.

    Attributes:
        role: One of "system", "user", or "assistant"
        content: The text content of the turn
    """

    role: Literal["system", "user", "assistant"]
    content: str


@dataclass(frozen=True)
class HttpRequestSpec:
    """Everything needed to issue one upstream streaming call.

    The URL may carry the credential (Google). Never log it.

    Attributes:
        url: Absolute request URL
        headers: Request headers, including auth where the provider uses a header
        body: JSON request body
    """

    url: str
    headers: dict[str, str]
    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextDelta:
    """A fragment of generated text, in upstream order."""

    text: str


@dataclass(frozen=True)
class StreamDone:
    """Explicit end-of-stream marker from the provider."""


@dataclass(frozen=True)
class StreamFailed:
    """Upstream call failed before or during streaming.

    Attributes:
        status_code: HTTP status when the provider answered with non-2xx, else None
        body: Bounded slice of the upstream error body, or a short description
            of the transport failure. Goes to logs and notes only.
        error_class: Normalized classification (groundup.services.llm.errors)
    """

    status_code: int | None
    body: str
    error_class: str


ProviderEvent = TextDelta | StreamDone | StreamFailed
