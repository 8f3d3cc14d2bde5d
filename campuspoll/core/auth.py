"""Caller identity and identity-provider webhook verification."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from fastapi import Depends, Request
from svix.webhooks import Webhook, WebhookVerificationError
from .database import Database, get_database
from .errors import AuthenticationError, InvalidInputError, PermissionDeniedError, PollError

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, passed explicitly into core operations"""

    user_id: str
    is_mod: bool = False

    def require_moderator(self):
        if not self.is_mod:
            raise PermissionDeniedError("Moderator privileges required")

    def require_self(self, user_id: Optional[str], field: str = "userId"):
        """Body-supplied ids must match the caller when present"""
        if user_id and user_id != self.user_id:
            raise PermissionDeniedError(f"{field} does not match the authenticated user")


async def get_principal(request: Request, db: Database = Depends(get_database)) -> Principal:
    """Resolve the caller from the identity provider's user-id header"""
    header = request.app.state.settings.auth_user_header
    user_id = request.headers.get(header)
    if not user_id:
        raise AuthenticationError("Authentication required")

    user = await db.users.find_one({"clerkId": user_id})
    if not user:
        raise AuthenticationError("Unknown user")
    return Principal(user_id=user_id, is_mod=bool(user.get("isMod", False)))


async def get_optional_principal(request: Request, db: Database = Depends(get_database)) -> Optional[Principal]:
    """Like get_principal, but None for callers not yet in the directory"""
    try:
        return await get_principal(request, db)
    except AuthenticationError:
        return None


def verify_webhook(secret: Optional[str], body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
    """Verify an identity-provider webhook signed with svix and return its payload"""
    if not secret:
        raise PollError("Please add SIGNING_SECRET to .env")

    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    if not all(svix_headers.values()):
        raise InvalidInputError("Missing Svix headers")

    try:
        return Webhook(secret).verify(body, svix_headers)
    except WebhookVerificationError as e:
        logger.error(f"Error: Could not verify webhook: {e}")
        raise InvalidInputError("Verification error")
