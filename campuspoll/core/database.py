import asyncio
import logging
from typing import Optional
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import IndexModel, ASCENDING, DESCENDING
from .config import Settings

logger = logging.getLogger(__name__)

USERS = "users"
PROMPTS = "prompts"
USER_RESPONSES = "userresponses"


class Database:
    """Owns the motor client for one process.

    Constructed once at startup and handed to request handlers through
    ``get_database``. A pre-built client (e.g. an in-memory one) may be
    passed in; otherwise ``connect`` creates one from the settings.
    """

    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self.client = client
        self.db = client[settings.db_name] if client is not None else None
        self._owns_client = client is None

    def __bool__(self):
        """Prevent boolean evaluation of database objects"""
        return True

    async def connect(self, max_retries: int = 5, retry_delay: float = 3.0):
        """Connect to MongoDB and make sure the indexes exist"""
        if self.client is None:
            logger.info("🔗 Connecting to MongoDB...")
            logger.info(f"📊 Database: {self.settings.db_name}")

            self.client = AsyncIOMotorClient(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=10000,
                connectTimeoutMS=10000,
                socketTimeoutMS=10000
            )
            # Database named in the URI wins over DB_NAME
            self.db = self.client.get_default_database(default=self.settings.db_name)

            for attempt in range(max_retries):
                try:
                    await self.client.admin.command("ping")
                    logger.info(f"✅ Connected to MongoDB: {self.db.name}")
                    break
                except Exception as e:
                    if attempt < max_retries - 1:
                        logger.warning(f"⚠️ Connection attempt {attempt + 1} failed, retrying... Error: {e}")
                        await asyncio.sleep(retry_delay)
                    else:
                        logger.error(f"❌ All connection attempts failed. Last error: {e}")
                        raise

        await self.create_indexes()

    async def disconnect(self):
        """Disconnect from MongoDB if this object opened the connection"""
        if self.client is not None and self._owns_client:
            self.client.close()
            self.client = None
            self.db = None

    async def ping(self, timeout: float = 5.0):
        await asyncio.wait_for(self.client.admin.command("ping"), timeout=timeout)

    async def create_indexes(self):
        """Create the indexes the collections rely on"""
        await self.users.create_indexes([
            IndexModel([("clerkId", ASCENDING)], unique=True),
            IndexModel([("email", ASCENDING)], unique=True),
        ])

        await self.prompts.create_indexes([
            IndexModel([("isArchived", ASCENDING), ("isAutoFlagged", ASCENDING)]),
            IndexModel([("isReported", ASCENDING)]),
            IndexModel([("createdBy", ASCENDING)]),
            IndexModel([("createdAt", DESCENDING)]),
        ])

        # One answer per user per prompt; the authoritative duplicate guard
        await self.user_responses.create_indexes([
            IndexModel([("userId", ASCENDING), ("promptId", ASCENDING)], unique=True),
            IndexModel([("promptId", ASCENDING)]),
        ])

        logger.info("✅ Database indexes created successfully")

    @property
    def users(self):
        return self.db[USERS]

    @property
    def prompts(self):
        return self.db[PROMPTS]

    @property
    def user_responses(self):
        return self.db[USER_RESPONSES]


async def get_database(request: Request) -> Database:
    """FastAPI dependency returning the database built at startup"""
    return request.app.state.db
