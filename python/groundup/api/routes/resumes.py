"""Resume routes.

- GET /resumes: the viewer's resumes with enhancement summaries, newest first
- POST /resumes/{resume_id}/enhance: run one enhancement job as a stream

The enhance route validates and creates the job before the response starts,
so client errors (unknown kind, missing resume) are ordinary JSON error
envelopes. Once streaming, every outcome is reported in-band and the body
always ends with `data: [DONE]`.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from groundup.api.deps import get_db, get_llm_router, get_session_factory
from groundup.auth.middleware import Viewer, get_viewer
from groundup.config import get_settings
from groundup.responses import success_response
from groundup.schemas.resumes import EnhanceRequest
from groundup.services import resumes as resumes_service
from groundup.services.enhance_stream import prepare_enhancement, stream_enhancement
from groundup.services.llm import LLMRouter

router = APIRouter(tags=["resumes"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/resumes")
def list_resumes(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List the viewer's resumes.

    Returns:
        {"data": [ResumeOut, ...]}
    """
    resumes = resumes_service.list_resumes(db, viewer.user_id)
    return success_response([r.model_dump(mode="json") for r in resumes])


@router.post("/resumes/{resume_id}/enhance")
async def enhance_resume(
    resume_id: UUID,
    body: EnhanceRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    db_factory: Annotated[sessionmaker[Session], Depends(get_session_factory)],
    llm_router: Annotated[LLMRouter, Depends(get_llm_router)],
) -> StreamingResponse:
    """Enhance a resume, streaming progress.

    Errors (before streaming):
        E_INVALID_ENHANCEMENT_TYPE (400): Unknown enhancement kind
        E_RESUME_NOT_FOUND (404): Missing, or owned by someone else
    """
    settings = get_settings()
    plan = await run_in_threadpool(
        prepare_enhancement,
        db,
        viewer.user_id,
        resume_id,
        body.enhancement_type,
        settings=settings,
        llm_router=llm_router,
    )

    return StreamingResponse(
        stream_enhancement(db_factory, plan, llm_router, settings),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )
