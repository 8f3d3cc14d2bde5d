import logging
from typing import Any, Dict, List, Optional
from pymongo.errors import DuplicateKeyError
from .auth import Principal
from .database import Database
from .errors import AlreadyRespondedError, InvalidInputError
from .prompts import OPTION_FIELDS, get_prompt
from .schema import UserResponse, UserResponseCreate

logger = logging.getLogger(__name__)


async def find_response(db: Database, user_id: str, prompt_id: str) -> Optional[Dict[str, Any]]:
    return await db.user_responses.find_one({"userId": user_id, "promptId": prompt_id})


async def list_user_responses(db: Database, user_id: str) -> List[Dict[str, Any]]:
    return await db.user_responses.find({"userId": user_id}).sort("responseDate", -1).to_list(length=None)


async def record_response(db: Database, principal: Principal, data: UserResponseCreate) -> Dict[str, Any]:
    """Store the caller's single answer to a prompt.

    A second answer raises AlreadyRespondedError carrying the first one,
    whether it is caught by the lookup or by the unique index when two
    submissions race.
    """
    principal.require_self(data.user_id)

    prompt = await get_prompt(db, data.prompt_id)
    prompt_id = str(prompt["_id"])
    options = [prompt.get(field) for field in OPTION_FIELDS if prompt.get(field)]
    if data.selected_response not in options:
        raise InvalidInputError(f"selectedResponse must be one of: {', '.join(options)}")

    existing = await find_response(db, principal.user_id, prompt_id)
    if existing:
        raise AlreadyRespondedError(existing)

    doc = UserResponse(
        user_id=principal.user_id,
        prompt_id=prompt_id,
        selected_response=data.selected_response,
    ).to_mongo()
    try:
        result = await db.user_responses.insert_one(doc)
    except DuplicateKeyError:
        logger.warning(f"Concurrent duplicate response from {principal.user_id} on prompt {prompt_id}")
        raise AlreadyRespondedError(await find_response(db, principal.user_id, prompt_id))

    doc["_id"] = result.inserted_id
    logger.info(f"Response recorded: user={principal.user_id} prompt={prompt_id}")
    return doc
