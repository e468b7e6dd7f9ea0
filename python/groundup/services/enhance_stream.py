"""Streaming resume enhancement: one job from request to terminal row.

Pipeline per job: Initializing -> Streaming -> Finalizing -> Completed | Failed.

- prepare_enhancement (sync, before the response starts): validates the kind,
  loads the owned resume, selects the credential or starts on the fallback
  provider, truncates the input and creates the `processing` row. Client
  errors raise ApiError here so the route answers with a JSON envelope.
- stream_enhancement (async generator): issues the upstream call, forwards a
  `processing` frame per text delta, applies the single 401 fallback, and
  finalizes the row exactly once.

Outbound frames (text/plain body, SSE framing):
- data: {"status": "processing", "message": "Enhancing resume..."}
- data: {"status": "completed", "result": "<full text>"}
- data: {"status": "error", "message": "Enhancement failed. Please try again."}
- data: [DONE]

Terminal writes go through finalize_enhancement (WHERE status='processing'),
so the stream, its disconnect path and the sweeper can never double-finalize.
Sync DB access uses run_in_threadpool (starlette) to avoid blocking the event loop.

ENHANCE_DEADLINE_S caps every upstream read, not only reads that produce text,
so an upstream sending nothing but keep-alives still fails on time. On client
disconnect the server cancels the surrounding scope; the final write runs in a
shielded scope so it still lands.
"""

import asyncio
import json
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from uuid import UUID

import anyio
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from groundup.config import Settings, get_settings
from groundup.db.models import EnhancementStatus
from groundup.errors import ApiErrorCode, InvalidRequestError
from groundup.logging import get_logger, set_enhancement_id
from groundup.services.api_keys import select_active_credential
from groundup.services.enhancements import create_enhancement, finalize_enhancement
from groundup.services.llm.errors import LLMErrorClass
from groundup.services.llm.fallback import ProviderState, fallback_state, should_fallback
from groundup.services.llm.prompt import build_messages, get_enhancement_prompt, truncate_to_budget
from groundup.services.llm.router import LLMRouter
from groundup.services.llm.types import StreamDone, StreamFailed, TextDelta, Turn
from groundup.services.models import resolve_model
from groundup.services.redact import hash_text, safe_kv
from groundup.services.resumes import get_owned_resume

logger = get_logger(__name__)

PROCESSING_MESSAGE = "Enhancing resume..."
CLIENT_ERROR_MESSAGE = "Enhancement failed. Please try again."
DONE_FRAME = "data: [DONE]\n\n"
DISCONNECT_NOTE = "client disconnected"


def format_stream_frame(payload: dict) -> str:
    """Format one JSON payload as an SSE data frame."""
    return f"data: {json.dumps(payload)}\n\n"


@dataclass(frozen=True)
class EnhancementPlan:
    """Everything the streaming phase needs, resolved up front.

    Attributes:
        enhancement_id: The `processing` row created for this job
        resume_id: Source resume
        enhancement_type: One of the EnhancementType values
        state: Initial provider selection
        messages: Upstream conversation (already truncated)
        input_chars: Length of the resume text before truncation
        truncated: Whether the resume text was cut to the input budget
    """

    enhancement_id: UUID
    resume_id: UUID
    enhancement_type: str
    state: ProviderState
    messages: list[Turn]
    input_chars: int
    truncated: bool

    def __repr__(self) -> str:
        return (
            f"EnhancementPlan(enhancement_id={self.enhancement_id!r}, "
            f"enhancement_type={self.enhancement_type!r}, state={self.state!r})"
        )


def prepare_enhancement(
    db: Session,
    user_id: UUID,
    resume_id: UUID,
    enhancement_type: str,
    *,
    settings: Settings | None = None,
    llm_router: LLMRouter | None = None,
) -> EnhancementPlan:
    """Initialize one enhancement job.

    Args:
        db: Database session.
        user_id: Requesting owner.
        resume_id: Resume to enhance.
        enhancement_type: Requested kind.
        settings: Settings override (defaults to get_settings()).
        llm_router: When given, a credential for a disabled provider is
            treated as absent and the job starts on the fallback provider.

    Returns:
        The plan for stream_enhancement.

    Raises:
        InvalidRequestError: E_INVALID_ENHANCEMENT_TYPE for an unknown kind.
        NotFoundError: E_RESUME_NOT_FOUND if the resume is missing or not owned.
    """
    settings = settings or get_settings()

    if get_enhancement_prompt(enhancement_type) is None:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_ENHANCEMENT_TYPE, "Invalid enhancement type"
        )

    resume = get_owned_resume(db, user_id, resume_id)

    credential = select_active_credential(db, user_id)
    if credential is not None and llm_router is not None:
        if not llm_router.is_provider_available(credential.provider):
            logger.info(
                "enhancement.provider_disabled",
                **safe_kv(provider=credential.provider, key_id=str(credential.key_id)),
            )
            credential = None

    if credential is None:
        state = fallback_state(None, settings)
    else:
        state = ProviderState(
            provider=credential.provider,
            model=resolve_model(credential.provider, credential.default_model),
            credential=credential.api_key,
        )

    source = resume.original_content or ""
    text, truncated = truncate_to_budget(source, settings.input_budget_chars)

    enhancement = create_enhancement(
        db, resume.id, enhancement_type, state.provider, state.model
    )
    set_enhancement_id(str(enhancement.id))

    if truncated:
        logger.info(
            "enhancement.truncated",
            **safe_kv(
                input_chars=len(source),
                kept_chars=len(text),
                budget_chars=settings.input_budget_chars,
            ),
        )

    logger.info(
        "enhancement.started",
        **safe_kv(
            resume_id=str(resume.id),
            enhancement_type=enhancement_type,
            provider=state.provider,
            model_name=state.model,
            byok=credential is not None,
            resume_sha256=hash_text(source),
        ),
    )

    return EnhancementPlan(
        enhancement_id=enhancement.id,
        resume_id=resume.id,
        enhancement_type=enhancement_type,
        state=state,
        messages=build_messages(text, enhancement_type),
        input_chars=len(source),
        truncated=truncated,
    )


def _finalize(
    db_factory: Callable[[], Session],
    plan: EnhancementPlan,
    state: ProviderState,
    status: EnhancementStatus,
    content: str,
    notes: str | None,
) -> bool:
    """Finalize the row in a fresh session. Persistence errors are logged, not raised."""
    switched = state.provider != plan.state.provider
    db: Session | None = None
    try:
        db = db_factory()
        return finalize_enhancement(
            db,
            plan.enhancement_id,
            status,
            content=content,
            notes=notes,
            provider=state.provider if switched else None,
            model=state.model if switched else None,
        )
    except Exception:
        logger.exception("enhancement.finalize_failed", status=status.value)
        return False
    finally:
        if db is not None:
            db.close()


def _deadline_failure(settings: Settings) -> StreamFailed:
    return StreamFailed(
        status_code=None,
        body=f"deadline of {settings.enhance_deadline_s:g}s exceeded",
        error_class=LLMErrorClass.TIMEOUT.value,
    )


def _failure_note(state: ProviderState, failure: StreamFailed) -> str:
    if failure.status_code is not None:
        return f"{state.provider} returned HTTP {failure.status_code}: {failure.body}"
    return f"{state.provider} request failed ({failure.error_class}): {failure.body}"


async def stream_enhancement(
    db_factory: Callable[[], Session],
    plan: EnhancementPlan,
    llm_router: LLMRouter,
    settings: Settings | None = None,
) -> AsyncIterator[str]:
    """Stream one enhancement job as SSE frames.

    Args:
        db_factory: Callable returning a new sync Session.
        plan: Output of prepare_enhancement.
        llm_router: Shared LLMRouter from app.state.
        settings: Settings override (defaults to get_settings()).

    Yields:
        SSE-formatted frames; the last one is always `data: [DONE]`.
    """
    settings = settings or get_settings()
    set_enhancement_id(str(plan.enhancement_id))

    state = plan.state
    parts: list[str] = []
    finalized = False
    start = time.monotonic()
    deadline = start + settings.enhance_deadline_s

    try:
        while True:
            failure: StreamFailed | None = None
            events = llm_router.stream_events(
                state.provider,
                state.model,
                state.credential or "",
                plan.messages,
                read_timeout_s=settings.upstream_read_timeout_s,
            )
            try:
                while True:
                    # Bounds each upstream read, including keep-alive-only stretches
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        failure = _deadline_failure(settings)
                        break
                    try:
                        with anyio.move_on_after(remaining) as read_scope:
                            event = await anext(events)
                    except StopAsyncIteration:
                        break
                    if read_scope.cancelled_caught:
                        failure = _deadline_failure(settings)
                        break
                    if isinstance(event, TextDelta):
                        parts.append(event.text)
                        yield format_stream_frame(
                            {"status": "processing", "message": PROCESSING_MESSAGE}
                        )
                    elif isinstance(event, StreamFailed):
                        failure = event
                        break
                    elif isinstance(event, StreamDone):
                        break
            finally:
                with anyio.CancelScope(shield=True):
                    await events.aclose()

            if failure is not None and should_fallback(state, failure.status_code):
                logger.warning(
                    "enhancement.fallback_activated",
                    **safe_kv(
                        from_provider=state.provider,
                        from_model=state.model,
                        status_code=failure.status_code,
                    ),
                )
                state = fallback_state(state, settings)
                parts.clear()
                continue
            break

        latency_ms = int((time.monotonic() - start) * 1000)
        output = "".join(parts)

        if failure is None:
            await run_in_threadpool(
                _finalize, db_factory, plan, state, EnhancementStatus.completed, output, None
            )
            finalized = True
            logger.info(
                "enhancement.completed",
                **safe_kv(
                    enhancement_type=plan.enhancement_type,
                    provider=state.provider,
                    model_name=state.model,
                    output_chars=len(output),
                    fallback_used=state.provider != plan.state.provider,
                    latency_ms=latency_ms,
                ),
            )
            yield format_stream_frame({"status": "completed", "result": output})
        else:
            logger.error(
                "enhancement.upstream_failed",
                **safe_kv(
                    enhancement_type=plan.enhancement_type,
                    provider=state.provider,
                    model_name=state.model,
                    status_code=failure.status_code,
                    error_class=failure.error_class,
                    attempted_fallback=state.attempted_fallback,
                    output_chars=len(output),
                    latency_ms=latency_ms,
                ),
            )
            await run_in_threadpool(
                _finalize,
                db_factory,
                plan,
                state,
                EnhancementStatus.error,
                output,
                _failure_note(state, failure),
            )
            finalized = True
            yield format_stream_frame({"status": "error", "message": CLIENT_ERROR_MESSAGE})

        yield DONE_FRAME

    except (asyncio.CancelledError, GeneratorExit):
        if not finalized:
            logger.info(
                "enhancement.client_disconnected",
                **safe_kv(provider=state.provider, output_chars=sum(len(p) for p in parts)),
            )
            # The surrounding cancel scope is already cancelled on disconnect
            with anyio.CancelScope(shield=True):
                await run_in_threadpool(
                    _finalize,
                    db_factory,
                    plan,
                    state,
                    EnhancementStatus.error,
                    "".join(parts),
                    DISCONNECT_NOTE,
                )
        raise
    except Exception as e:
        logger.exception("enhancement.unexpected_error", error_type=type(e).__name__)
        if not finalized:
            await run_in_threadpool(
                _finalize,
                db_factory,
                plan,
                state,
                EnhancementStatus.error,
                "".join(parts),
                f"internal error: {type(e).__name__}",
            )
            yield format_stream_frame({"status": "error", "message": CLIENT_ERROR_MESSAGE})
            yield DONE_FRAME
