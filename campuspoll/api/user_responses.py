from fastapi import APIRouter, Depends
from typing import Optional
from campuspoll.core.auth import Principal, get_principal
from campuspoll.core.database import Database, get_database
from campuspoll.core.responses import find_response, list_user_responses, record_response
from campuspoll.core.schema import UserResponseCreate
from .envelope import ok
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/user-responses")
async def get_user_responses(
    userId: Optional[str] = None,
    promptId: Optional[str] = None,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Get a user's responses, or their single response to one prompt (null if none)"""
    user_id = userId or principal.user_id
    if not principal.is_mod:
        principal.require_self(user_id)

    if promptId:
        return ok(await find_response(db, user_id, promptId))
    return ok(await list_user_responses(db, user_id))


@router.post("/user-responses")
async def save_user_response(
    body: UserResponseCreate,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Record the caller's answer; a second answer to the same prompt is rejected"""
    return ok(await record_response(db, principal, body), status_code=201)
