import base64
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from campuspoll.core.auth import Principal
from campuspoll.core.config import Settings
from campuspoll.core.database import Database
from campuspoll.core.moderation import ModerationCategory, ModerationGate
from campuspoll.main import create_app

SIGNING_SECRET = "whsec_" + base64.b64encode(b"campuspoll-test-signing-secret").decode()
MODERATOR_ID = "mod-1"


class FakeClassifier:
    """Flags text containing "inappropriate" or listed verbatim in flagged_texts"""

    def __init__(self, flagged_texts=(), error=None):
        self.flagged_texts = set(flagged_texts)
        self.error = error
        self.calls = []

    async def classify(self, text):
        self.calls.append(text)
        if self.error:
            raise self.error
        if text in self.flagged_texts or "inappropriate" in text.lower():
            return [ModerationCategory(name="Toxic", confidence=0.9)]
        return [ModerationCategory(name="Profanity", confidence=0.2)]


@pytest.fixture
def settings():
    return Settings(
        db_name="campuspoll_test",
        signing_secret=SIGNING_SECRET,
        bootstrap_moderators=[MODERATOR_ID],
        stats_min_responses_per_answer=2,
    )


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def gate(classifier):
    return ModerationGate(classifier)


@pytest_asyncio.fixture
async def db(settings):
    database = Database(settings, client=AsyncMongoMockClient())
    await database.create_indexes()
    yield database


@pytest.fixture
def member():
    return Principal(user_id="user-a")


@pytest.fixture
def moderator():
    return Principal(user_id=MODERATOR_ID, is_mod=True)


@pytest.fixture
def client(settings, gate):
    app = create_app(
        settings,
        database=Database(settings, client=AsyncMongoMockClient()),
        moderation_gate=gate,
    )
    with TestClient(app) as test_client:
        yield test_client


def as_user(user_id):
    return {"X-User-Id": user_id}


def create_user(client, clerk_id, **fields):
    body = {"clerkId": clerk_id, "email": f"{clerk_id}@campus.edu", **fields}
    response = client.post("/api/users", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_prompt(client, user_id, question="Pineapple on pizza?", options=("Yes", "No")):
    body = {"promptQuestion": question}
    for index, option in enumerate(options, start=1):
        body[f"resp{index}"] = option
    response = client.post("/api/prompt", json=body, headers=as_user(user_id))
    assert response.status_code == 201, response.text
    return response.json()
