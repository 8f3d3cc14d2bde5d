import logging
from enum import Enum
from typing import Any, Dict, List, Tuple
from bson import ObjectId
from pymongo import ReturnDocument
from .auth import Principal
from .database import Database
from .errors import InvalidInputError, NotFoundError, PermissionDeniedError
from .moderation import ModerationGate
from .schema import Prompt, PromptCreate, PromptUpdate, PromptView
from .utils import to_object_id

logger = logging.getLogger(__name__)

PENDING_REVIEW_MESSAGE = "Your prompt has been flagged and is pending moderator review."

OPTION_FIELDS = ("resp1", "resp2", "resp3", "resp4")


class PromptAction(str, Enum):
    REPORT = "report"
    ARCHIVE = "archive"
    RESTORE = "restore"
    CLEAR_REPORT = "clear-report"
    APPROVE = "approve"


# action -> (flag writes, moderator only)
TRANSITIONS = {
    PromptAction.REPORT: ({"isReported": True}, False),
    PromptAction.ARCHIVE: ({"isArchived": True}, True),
    PromptAction.RESTORE: ({"isArchived": False}, True),
    PromptAction.CLEAR_REPORT: ({"isReported": False}, True),
    PromptAction.APPROVE: ({"isAutoFlagged": False}, True),
}

VIEW_FILTERS = {
    PromptView.FEED: {"isArchived": False, "isAutoFlagged": False},
    PromptView.REPORTED: {"isReported": True},
    PromptView.ARCHIVED: {"isArchived": True},
    PromptView.FLAGGED: {"isAutoFlagged": True},
}

MODERATOR_VIEWS = {PromptView.REPORTED, PromptView.ARCHIVED, PromptView.FLAGGED}


def _prompt_oid(prompt_id: str) -> ObjectId:
    oid = to_object_id(prompt_id)
    if oid is None:
        raise NotFoundError("Prompt not found")
    return oid


async def get_prompt(db: Database, prompt_id: str) -> Dict[str, Any]:
    prompt = await db.prompts.find_one({"_id": _prompt_oid(prompt_id)})
    if not prompt:
        raise NotFoundError("Prompt not found")
    return prompt


async def submit_prompt(
    db: Database,
    gate: ModerationGate,
    principal: Principal,
    data: PromptCreate,
) -> Tuple[Dict[str, Any], bool]:
    """Screen and store a new prompt.

    Flagged prompts are still stored; they only stay out of the default
    feed until a moderator approves them. Returns the stored document and
    whether it was flagged.
    """
    principal.require_self(data.created_by, field="createdBy")

    flagged = await gate.check_texts([data.prompt_question, *data.options])
    if flagged:
        logger.info(f"Inappropriate content detected in prompt from {principal.user_id}")

    prompt = Prompt(
        prompt_question=data.prompt_question,
        resp1=data.resp1,
        resp2=data.resp2,
        resp3=data.resp3,
        resp4=data.resp4,
        created_by=principal.user_id,
        is_auto_flagged=flagged,
    )
    doc = prompt.to_mongo()
    result = await db.prompts.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"New prompt submitted: {result.inserted_id} (isAutoFlagged={flagged})")
    return doc, flagged


async def list_prompts(db: Database, principal: Principal, view: PromptView = PromptView.FEED) -> List[Dict[str, Any]]:
    if view in MODERATOR_VIEWS:
        principal.require_moderator()

    if view == PromptView.MINE:
        query = {"createdBy": principal.user_id}
    else:
        query = dict(VIEW_FILTERS[view])

    return await db.prompts.find(query).sort("createdAt", -1).to_list(length=None)


async def update_prompt(
    db: Database,
    gate: ModerationGate,
    principal: Principal,
    update: PromptUpdate,
) -> Dict[str, Any]:
    """Edit question/option text; the edited prompt is screened again"""
    current = await get_prompt(db, update.id)
    if current["createdBy"] != principal.user_id and not principal.is_mod:
        raise PermissionDeniedError("Only the creator or a moderator can edit this prompt")

    changes = update.changes()
    merged = {**current, **changes}
    if not any(merged.get(field) for field in OPTION_FIELDS):
        raise InvalidInputError("A prompt needs at least one response option")
    texts = [merged.get("promptQuestion")] + [merged.get(field) for field in OPTION_FIELDS]
    changes["isAutoFlagged"] = await gate.check_texts(texts)

    prompt = await db.prompts.find_one_and_update(
        {"_id": current["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not prompt:
        raise NotFoundError("Prompt not found")
    logger.info(f"Prompt {update.id} edited by {principal.user_id} (isAutoFlagged={changes['isAutoFlagged']})")
    return prompt


async def apply_transition(db: Database, principal: Principal, prompt_id: str, action: PromptAction) -> Dict[str, Any]:
    flags, moderator_only = TRANSITIONS[action]
    if moderator_only:
        principal.require_moderator()

    prompt = await db.prompts.find_one_and_update(
        {"_id": _prompt_oid(prompt_id)},
        {"$set": flags},
        return_document=ReturnDocument.AFTER,
    )
    if not prompt:
        raise NotFoundError("Prompt not found")
    logger.info(f"Prompt {prompt_id}: {action.value} by {principal.user_id}")
    return prompt


async def delete_prompt(db: Database, principal: Principal, prompt_id: str):
    """Remove a prompt. Responses recorded against it are left in place."""
    principal.require_moderator()

    oid = _prompt_oid(prompt_id)
    result = await db.prompts.delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFoundError("Prompt not found")
    logger.info(f"Prompt {prompt_id} deleted by {principal.user_id}")
