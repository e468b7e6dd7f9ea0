"""Provider credential routes.

Routes are transport-only: each calls exactly one service function.

- GET /keys: List the viewer's credentials (safe fields only)
- POST /keys: Store a credential for a provider (encrypted at rest)
- DELETE /keys/{key_id}: Delete a credential

Response envelope: {"data": ...}
Error envelope: {"error": {"code": "...", "message": "...", "request_id": "..."}}

Security invariants:
- Responses never include encrypted_key, key_nonce, master_key_version
- Plaintext keys are never logged
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from groundup.api.deps import get_db
from groundup.auth.middleware import Viewer, get_viewer
from groundup.responses import success_response
from groundup.schemas.keys import UserApiKeyCreate
from groundup.services import api_keys as api_keys_service

router = APIRouter(tags=["keys"])


@router.get("/keys")
def list_keys(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List the viewer's credentials, newest first.

    Returns:
        {"data": [UserApiKeyOut, ...]}
    """
    keys = api_keys_service.list_user_keys(db=db, user_id=viewer.user_id)
    return success_response([k.model_dump(mode="json") for k in keys])


@router.post("/keys", status_code=201)
def create_key(
    body: UserApiKeyCreate,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Store a credential.

    Returns:
        201 Created: {"data": UserApiKeyOut}

    Errors:
        E_INVALID_REQUEST (400): Unknown provider, short key, or whitespace in key
        E_KEY_ALREADY_EXISTS (409): The viewer already has a credential for the provider
    """
    key_out = api_keys_service.create_user_key(db=db, user_id=viewer.user_id, body=body)
    return success_response(key_out.model_dump(mode="json"))


@router.delete("/keys/{key_id}", status_code=204)
def delete_key(
    key_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a credential.

    Errors:
        E_KEY_NOT_FOUND (404): Key doesn't exist or not owned by viewer
    """
    api_keys_service.delete_user_key(db=db, user_id=viewer.user_id, key_id=key_id)
    return Response(status_code=204)
