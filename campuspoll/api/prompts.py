from fastapi import APIRouter, Depends
from typing import Optional
from campuspoll.core.auth import Principal, get_principal
from campuspoll.core.database import Database, get_database
from campuspoll.core.errors import InvalidInputError
from campuspoll.core.moderation import ModerationGate, get_moderation_gate
from campuspoll.core.prompts import (
    PENDING_REVIEW_MESSAGE,
    PromptAction,
    apply_transition,
    delete_prompt,
    get_prompt,
    list_prompts,
    submit_prompt,
    update_prompt,
)
from campuspoll.core.schema import PromptCreate, PromptUpdate, PromptView
from .envelope import ok
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/prompt")
async def create_prompt(
    body: PromptCreate,
    db: Database = Depends(get_database),
    gate: ModerationGate = Depends(get_moderation_gate),
    principal: Principal = Depends(get_principal)
):
    """
    Submit a new prompt.
    - Every non-empty text is screened by the moderation gate
    - Flagged prompts are stored but held out of the feed
    """
    prompt, flagged = await submit_prompt(db, gate, principal, body)
    if flagged:
        return ok(prompt, status_code=201, message=PENDING_REVIEW_MESSAGE)
    return ok(prompt, status_code=201)


@router.get("/prompt")
async def get_prompts(
    id: Optional[str] = None,
    view: PromptView = PromptView.FEED,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """
    Get one prompt by id, or a list of prompts.
    - feed: not archived and not auto-flagged (default)
    - reported / archived / flagged: moderators only
    - mine: prompts created by the caller
    """
    if id:
        return ok(await get_prompt(db, id))
    return ok(await list_prompts(db, principal, view))


@router.put("/prompt")
async def edit_prompt(
    body: PromptUpdate,
    db: Database = Depends(get_database),
    gate: ModerationGate = Depends(get_moderation_gate),
    principal: Principal = Depends(get_principal)
):
    """Edit a prompt's text; the new text is screened again"""
    return ok(await update_prompt(db, gate, principal, body))


@router.delete("/prompt")
async def remove_prompt(
    id: Optional[str] = None,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Delete a prompt (moderators only)"""
    if not id:
        raise InvalidInputError("ID is required for deletion")
    await delete_prompt(db, principal, id)
    return ok({})


@router.post("/prompt/{prompt_id}/{action}")
async def transition_prompt(
    prompt_id: str,
    action: PromptAction,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Report (any user), or archive / restore / clear-report / approve (moderators)"""
    return ok(await apply_transition(db, principal, prompt_id, action))
