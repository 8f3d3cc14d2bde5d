from fastapi import APIRouter, Depends, Request
from typing import Optional
from campuspoll.core.auth import Principal, get_optional_principal, get_principal
from campuspoll.core.database import Database, get_database
from campuspoll.core.schema import ProfileForm, UserCreate, UserUpdate
from campuspoll.core import users as user_service
from .envelope import ok
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/users")
async def create_user(
    request: Request,
    body: UserCreate,
    db: Database = Depends(get_database)
):
    """Create a new user (accountCreated is false until the profile is completed)"""
    user = await user_service.create_user(
        db, body, moderators=request.app.state.settings.bootstrap_moderators
    )
    return ok(user, status_code=201)


@router.get("/users")
async def get_users(
    id: Optional[str] = None,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Fetch one user by clerkId or _id, or every user when no id is given"""
    if id:
        return ok(await user_service.find_user(db, id))
    return ok(await user_service.list_users(db))


@router.put("/users")
async def update_user(
    body: UserUpdate,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Update profile fields of the caller (moderators may update anyone)"""
    if not principal.is_mod:
        target = await user_service.find_user(db, body.id)
        principal.require_self(target["clerkId"], field="id")
    return ok(await user_service.update_user(db, body))


@router.post("/users/{user_id}/promote")
async def promote_user(
    user_id: str,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Grant moderator privileges"""
    return ok(await user_service.promote_user(db, principal, user_id))


@router.post("/save-user")
async def save_user(
    request: Request,
    body: ProfileForm,
    db: Database = Depends(get_database),
    principal: Optional[Principal] = Depends(get_optional_principal)
):
    """
    Profile completion form posted after sign-up.
    - Unknown clerkId: the user is created with accountCreated=true
    - Existing user: only the owner (or a moderator) may update it
    """
    user, created = await user_service.save_profile(
        db, principal, body, moderators=request.app.state.settings.bootstrap_moderators
    )
    if created:
        return ok(user, status_code=201, message="User saved successfully!")
    return ok(user, message="User updated successfully!")
