"""Content moderation gate.

Screens prompt text with Google Cloud Natural Language's ``moderateText``
endpoint. Any category at or above the confidence threshold marks the text
inappropriate. Any failure to get a verdict also counts as inappropriate.
"""
import asyncio
import base64
import json
import logging
from typing import Iterable, List, Optional
import httpx
from fastapi import Request
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account
from pydantic import BaseModel
from .config import Settings

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
DEFAULT_THRESHOLD = 0.7


class ModerationCategory(BaseModel):
    name: str
    confidence: float


class GoogleModerationClassifier:
    """Async client for the Cloud Natural Language moderation API"""

    def __init__(self, key_b64: Optional[str], url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key_b64 = key_b64
        self.url = url
        self.transport = transport
        self._credentials = None

    def _load_credentials(self):
        if not self.key_b64:
            raise RuntimeError("GCP_KEY_B64 is not configured")
        info = json.loads(base64.b64decode(self.key_b64).decode("utf-8"))
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)

    async def access_token(self) -> str:
        if self._credentials is None:
            self._credentials = self._load_credentials()
        if not self._credentials.valid:
            # google-auth refreshes synchronously
            await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
        return self._credentials.token

    async def classify(self, text: str) -> List[ModerationCategory]:
        token = await self.access_token()
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json"
                },
                json={"document": {"type": "PLAIN_TEXT", "content": text}},
            )
            response.raise_for_status()
            payload = response.json()

        categories = payload.get("moderationCategories") or []
        if not isinstance(categories, list):
            raise ValueError(f"Unexpected moderationCategories payload: {categories!r}")
        return [ModerationCategory.model_validate(c) for c in categories]


class ModerationGate:
    def __init__(self, classifier, threshold: float = DEFAULT_THRESHOLD, timeout: float = 10.0):
        self.classifier = classifier
        self.threshold = threshold
        self.timeout = timeout

    async def is_inappropriate(self, text: str) -> bool:
        """Return True when the text should be held back, failing closed"""
        logger.info(f"Moderation check started for text: {text[:80]!r}")
        try:
            categories = await asyncio.wait_for(self.classifier.classify(text), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"❌ Moderation call timed out after {self.timeout}s, flagging content")
            return True
        except Exception as e:
            logger.error(f"❌ Error calling moderation API, flagging content: {e}")
            return True

        for category in categories:
            if category.confidence >= self.threshold:
                logger.info(f"Flagged as inappropriate: {category.name} - {category.confidence}")
                return True
        return False

    async def check_texts(self, texts: Iterable[Optional[str]]) -> bool:
        """Screen fragments in order, stopping at the first inappropriate one"""
        for text in texts:
            if not text:
                continue
            if await self.is_inappropriate(text):
                return True
        return False


def build_moderation_gate(settings: Settings) -> ModerationGate:
    classifier = GoogleModerationClassifier(settings.gcp_key_b64, settings.moderation_api_url)
    return ModerationGate(
        classifier,
        threshold=settings.moderation_threshold,
        timeout=settings.moderation_timeout,
    )


async def get_moderation_gate(request: Request) -> ModerationGate:
    return request.app.state.moderation
