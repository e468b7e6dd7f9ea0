"""Abstract base class for provider adapters.

Adapters are pure translators:
- build_request turns (model, credential, messages) into an HttpRequestSpec
- parse_event turns one raw upstream stream line into a ProviderEvent or None

No I/O, no retries, no DB access and no logging of bodies inside adapters.
The router performs the HTTP call.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from groundup.services.llm.types import HttpRequestSpec, ProviderEvent, StreamDone, Turn

SSE_DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
DEFAULT_MAX_TOKENS = 4096


class ProviderAdapter(ABC):
    """Translates between neutral turns/events and one provider's wire format."""

    #: Provider name as stored on enhancement rows and in logs.
    name: str

    def build_request(self, model: str, credential: str, messages: list[Turn]) -> HttpRequestSpec:
        """Build the upstream streaming request.

        Args:
            model: Upstream model identifier (non-empty).
            credential: Secret placed in exactly one location of the request.
            messages: Ordered conversation turns.

        Raises:
            ValueError: If model is empty.
        """
        if not model:
            raise ValueError("model must be non-empty")
        return self._build(model, credential, messages)

    @abstractmethod
    def _build(self, model: str, credential: str, messages: list[Turn]) -> HttpRequestSpec:
        pass

    def parse_event(self, raw_line: str) -> ProviderEvent | None:
        """Parse one line of the upstream stream.

        Lines without the `data:` prefix, unparseable JSON and payloads that
        carry no text all yield None. `data: [DONE]` yields StreamDone.
        """
        if not raw_line.startswith(SSE_DATA_PREFIX):
            return None

        payload = raw_line[len(SSE_DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            return StreamDone()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            return None

        if not isinstance(data, dict):
            return None

        try:
            return self._parse_payload(data)
        except (KeyError, IndexError, TypeError, AttributeError):
            return None

    @abstractmethod
    def _parse_payload(self, data: dict[str, Any]) -> ProviderEvent | None:
        pass
