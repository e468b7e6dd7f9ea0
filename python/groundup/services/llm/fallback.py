"""Fallback policy: one retry against the operator's provider after a rejected credential.

A job starts on the provider of the user's selected credential, or directly on
the fallback provider when the user has none. If the first attempt is refused
with 401 while using a user credential, the job is retried exactly once against
the fallback provider, which is OpenAI-shaped and always uses FALLBACK_MODEL and
the operator credential (FALLBACK_API_KEY). No other failure is retried, and the
fallback never cascades.
"""

from dataclasses import dataclass, replace

from groundup.config import Settings
from groundup.services.llm.types import FALLBACK_PROVIDER

AUTH_FAILURE_STATUS = 401


@dataclass(frozen=True)
class ProviderState:
    """Provider selection for one enhancement job.

    Attributes:
        provider: Provider name ("openai", "anthropic", "google" or "fallback")
        model: Upstream model identifier
        credential: Secret for the provider; None only when the operator key is unset
        attempted_fallback: True once the job is on the fallback provider
    """

    provider: str
    model: str
    credential: str | None
    attempted_fallback: bool = False

    def __repr__(self) -> str:
        # Keep the credential out of tracebacks and debug output
        return (
            f"ProviderState(provider={self.provider!r}, model={self.model!r}, "
            f"attempted_fallback={self.attempted_fallback!r})"
        )


def should_fallback(state: ProviderState, status_code: int | None) -> bool:
    """True iff a failed attempt warrants the single fallback retry."""
    return (
        status_code == AUTH_FAILURE_STATUS
        and state.provider != FALLBACK_PROVIDER
        and not state.attempted_fallback
    )


def fallback_state(state: ProviderState | None, settings: Settings) -> ProviderState:
    """State for the fallback provider.

    Used both after a rejected user credential and when the user has no
    credential at all (state is None). Either way attempted_fallback is set,
    so the fallback provider is tried at most once per job.
    """
    target = ProviderState(
        provider=FALLBACK_PROVIDER,
        model=settings.fallback_model,
        credential=settings.fallback_api_key,
        attempted_fallback=True,
    )
    if state is None:
        return target
    return replace(
        state,
        provider=target.provider,
        model=target.model,
        credential=target.credential,
        attempted_fallback=True,
    )
