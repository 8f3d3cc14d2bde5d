from fastapi import APIRouter, Depends, Request
from campuspoll.core.auth import verify_webhook
from campuspoll.core.database import Database, get_database
from campuspoll.core.users import sync_webhook_user
from .envelope import ok
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webhooks")
async def identity_webhook(request: Request, db: Database = Depends(get_database)):
    """Receive identity-provider events; user.created mirrors the user locally"""
    settings = request.app.state.settings
    body = await request.body()
    event = verify_webhook(settings.signing_secret, body, request.headers)

    event_type = event.get("type")
    if event_type == "user.created":
        user, created = await sync_webhook_user(
            db, event.get("data") or {}, moderators=settings.bootstrap_moderators
        )
        if created:
            logger.info(f"User saved from webhook: {user['clerkId']}")
            return ok(user, status_code=201, message="User created")
        return ok(user, message="User already exists")

    logger.info(f"Webhook received: {event_type}")
    return ok(None, message="Webhook received")
