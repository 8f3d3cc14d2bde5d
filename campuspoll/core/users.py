import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from pymongo import ReturnDocument
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from .auth import Principal
from .database import Database
from .errors import AuthenticationError, InvalidInputError, NotFoundError
from .schema import ProfileForm, User, UserCreate, UserUpdate
from .utils import to_object_id

logger = logging.getLogger(__name__)


def _lookup_filters(user_id: str) -> List[Dict[str, Any]]:
    """clerkId first, Mongo _id as a fallback"""
    filters = [{"clerkId": user_id}]
    oid = to_object_id(user_id)
    if oid is not None:
        filters.append({"_id": oid})
    return filters


async def find_user(db: Database, user_id: str) -> Dict[str, Any]:
    for query in _lookup_filters(user_id):
        user = await db.users.find_one(query)
        if user:
            return user
    raise NotFoundError("User not found")


async def list_users(db: Database) -> List[Dict[str, Any]]:
    return await db.users.find({}).sort("createdAt", 1).to_list(length=None)


async def create_user(
    db: Database,
    data: UserCreate,
    account_created: bool = False,
    moderators: Iterable[str] = (),
) -> Dict[str, Any]:
    user = User(
        clerk_id=data.clerk_id,
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        gender=data.gender,
        position=data.position,
        year=data.year,
        account_created=account_created,
        is_mod=data.clerk_id in set(moderators),
    )
    doc = user.to_mongo()
    try:
        result = await db.users.insert_one(doc)
    except DuplicateKeyError:
        raise InvalidInputError("A user with this clerkId or email already exists")
    doc["_id"] = result.inserted_id
    logger.info(f"User created: {data.clerk_id} (isMod={doc['isMod']})")
    return doc


async def update_user(db: Database, update: UserUpdate) -> Dict[str, Any]:
    changes = update.changes()
    for query in _lookup_filters(update.id):
        try:
            user = await db.users.find_one_and_update(
                query, {"$set": changes}, return_document=ReturnDocument.AFTER
            ) if changes else await db.users.find_one(query)
        except DuplicateKeyError:
            raise InvalidInputError("A user with this email already exists")
        if user:
            return user
    raise NotFoundError("User not found")


async def save_profile(
    db: Database,
    principal: Optional[Principal],
    form: ProfileForm,
    moderators: Iterable[str] = (),
) -> Tuple[Dict[str, Any], bool]:
    """Complete a user's profile, creating the record if the webhook never did.

    An existing profile may only be completed by its owner (or a moderator),
    and only the fields present in the form are written. Returns the stored
    user and whether it was newly created.
    """
    if await db.users.find_one({"clerkId": form.clerk_id}) is None:
        return await create_user(db, form, account_created=True, moderators=moderators), True

    if principal is None:
        raise AuthenticationError("Authentication required")
    if not principal.is_mod:
        principal.require_self(form.clerk_id, field="clerkId")

    fields = form.model_dump(by_alias=True, exclude={"clerk_id", "email"}, exclude_unset=True)
    fields["accountCreated"] = True
    user = await db.users.find_one_and_update(
        {"clerkId": form.clerk_id},
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )
    if user:
        logger.info(f"Profile completed for existing user {form.clerk_id}")
        return user, False
    return await create_user(db, form, account_created=True, moderators=moderators), True


async def sync_webhook_user(db: Database, data: Dict[str, Any], moderators: Iterable[str] = ()) -> Tuple[Dict[str, Any], bool]:
    """Mirror a ``user.created`` event from the identity provider"""
    clerk_id = data.get("id")
    emails = data.get("email_addresses") or []
    if not clerk_id or not emails:
        raise InvalidInputError("Webhook payload is missing id or email_addresses")

    existing = await db.users.find_one({"clerkId": clerk_id})
    if existing:
        logger.info(f"User already exists: {clerk_id}")
        return existing, False

    try:
        form = UserCreate(
            clerk_id=clerk_id,
            email=emails[0].get("email_address", ""),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            gender=data.get("gender") or "",
        )
    except ValidationError as e:
        raise InvalidInputError(f"Invalid webhook user data: {e.errors()[0]['msg']}")
    return await create_user(db, form, account_created=False, moderators=moderators), True


async def promote_user(db: Database, principal: Principal, user_id: str) -> Dict[str, Any]:
    principal.require_moderator()
    for query in _lookup_filters(user_id):
        user = await db.users.find_one_and_update(
            query, {"$set": {"isMod": True}}, return_document=ReturnDocument.AFTER
        )
        if user:
            logger.info(f"User {user['clerkId']} promoted to moderator by {principal.user_id}")
            return user
    raise NotFoundError("User not found")

