"""Upstream error classification.

Normalizes provider failures into one error class for logs and failure notes:
- E_LLM_INVALID_KEY: Authentication failure (401/403)
- E_LLM_RATE_LIMIT: Rate limit exceeded (429)
- E_LLM_CONTEXT_TOO_LARGE: Context length exceeded
- E_LLM_TIMEOUT: Read timeout or per-job deadline exceeded
- E_LLM_PROVIDER_DOWN: 5xx, network error, anything else
- E_MODEL_NOT_AVAILABLE: Model not found, or provider unknown/disabled

Classification never decides fallback; only the raw status code does
(see groundup.services.llm.fallback).
"""

from enum import Enum

from groundup.logging import get_logger

logger = get_logger(__name__)


class LLMErrorClass(str, Enum):
    """Normalized LLM error classifications."""

    INVALID_KEY = "E_LLM_INVALID_KEY"
    RATE_LIMIT = "E_LLM_RATE_LIMIT"
    CONTEXT_TOO_LARGE = "E_LLM_CONTEXT_TOO_LARGE"
    TIMEOUT = "E_LLM_TIMEOUT"
    PROVIDER_DOWN = "E_LLM_PROVIDER_DOWN"
    MODEL_NOT_AVAILABLE = "E_MODEL_NOT_AVAILABLE"


class LLMError(Exception):
    """Exception for LLM-related errors.

    Attributes:
        error_class: The normalized error classification
        message: Human-readable error message
        provider: The provider that returned the error (if known)
    """

    def __init__(
        self,
        error_class: LLMErrorClass,
        message: str,
        provider: str | None = None,
    ):
        self.error_class = error_class
        self.message = message
        self.provider = provider
        super().__init__(message)


def classify_provider_error(
    provider: str,
    status_code: int | None,
    json_body: dict | None,
    exception: Exception | None = None,
) -> LLMErrorClass:
    """Classify an upstream failure.

    Args:
        provider: One of "openai", "anthropic", "google", "fallback"
        status_code: HTTP status code (if the provider answered)
        json_body: Parsed JSON error response (if available)
        exception: Transport exception (if the call never got a status)
    """
    if exception is not None:
        exception_type = type(exception).__name__
        if "Timeout" in exception_type:
            return LLMErrorClass.TIMEOUT
        return LLMErrorClass.PROVIDER_DOWN

    if status_code is None:
        return LLMErrorClass.PROVIDER_DOWN

    if provider in ("openai", "fallback"):
        return _classify_openai_error(status_code, json_body)
    if provider == "anthropic":
        return _classify_anthropic_error(status_code, json_body)
    if provider == "google":
        return _classify_gemini_error(status_code, json_body)

    logger.warning("unknown_provider_for_error_classification", provider=provider)
    return LLMErrorClass.PROVIDER_DOWN


def _common_status_class(status_code: int) -> LLMErrorClass | None:
    if status_code in (401, 403):
        return LLMErrorClass.INVALID_KEY
    if status_code == 429:
        return LLMErrorClass.RATE_LIMIT
    if status_code == 404:
        return LLMErrorClass.MODEL_NOT_AVAILABLE
    if status_code >= 500:
        return LLMErrorClass.PROVIDER_DOWN
    return None


def _classify_openai_error(status_code: int, json_body: dict | None) -> LLMErrorClass:
    """OpenAI and OpenAI-compatible providers.

    400 + error.code == "context_length_exceeded" (or "maximum context length"
    in the message) means the input was too large.
    """
    common = _common_status_class(status_code)
    if common is not None:
        return common

    if status_code == 400 and json_body:
        error = json_body.get("error") or {}
        if not isinstance(error, dict):
            return LLMErrorClass.PROVIDER_DOWN
        message = str(error.get("message", "")).lower()
        if error.get("code") == "context_length_exceeded" or "maximum context length" in message:
            return LLMErrorClass.CONTEXT_TOO_LARGE
        if "model" in message and "not found" in message:
            return LLMErrorClass.MODEL_NOT_AVAILABLE

    return LLMErrorClass.PROVIDER_DOWN


def _classify_anthropic_error(status_code: int, json_body: dict | None) -> LLMErrorClass:
    common = _common_status_class(status_code)
    if common is not None:
        return common

    if status_code == 400 and json_body:
        error = json_body.get("error") or {}
        if (
            isinstance(error, dict)
            and error.get("type") == "invalid_request_error"
            and "too long" in str(error.get("message", "")).lower()
        ):
            return LLMErrorClass.CONTEXT_TOO_LARGE

    return LLMErrorClass.PROVIDER_DOWN


def _classify_gemini_error(status_code: int, json_body: dict | None) -> LLMErrorClass:
    """Gemini reports some auth and quota failures as 400 with a reason in the body."""
    body_str = str(json_body).lower() if json_body else ""

    if "api_key_invalid" in body_str:
        return LLMErrorClass.INVALID_KEY
    if "resource_exhausted" in body_str:
        return LLMErrorClass.RATE_LIMIT
    if "exceeds the maximum" in body_str:
        return LLMErrorClass.CONTEXT_TOO_LARGE

    return _common_status_class(status_code) or LLMErrorClass.PROVIDER_DOWN
