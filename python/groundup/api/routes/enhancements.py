"""Enhancement read route.

- GET /enhancements/{enhancement_id}: one enhancement whose resume the viewer owns.
  Clients re-read here after the stream reports completion.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from groundup.api.deps import get_db
from groundup.auth.middleware import Viewer, get_viewer
from groundup.responses import success_response
from groundup.services import resumes as resumes_service

router = APIRouter(tags=["enhancements"])


@router.get("/enhancements/{enhancement_id}")
def get_enhancement(
    enhancement_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get one enhancement.

    Errors:
        E_ENHANCEMENT_NOT_FOUND (404): Missing, or the resume belongs to someone else
    """
    enhancement = resumes_service.get_enhancement(db, viewer.user_id, enhancement_id)
    return success_response(enhancement.model_dump(mode="json"))
