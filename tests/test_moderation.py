import asyncio
import json
import httpx
import pytest
from campuspoll.core.moderation import GoogleModerationClassifier, ModerationCategory, ModerationGate
from tests.conftest import FakeClassifier

API_URL = "https://language.googleapis.com/v2/documents:moderateText"


class StaticClassifier:
    def __init__(self, categories):
        self.categories = [ModerationCategory(**c) for c in categories]

    async def classify(self, text):
        return self.categories


class SlowClassifier:
    async def classify(self, text):
        await asyncio.sleep(1)
        return []


def google_classifier(handler):
    classifier = GoogleModerationClassifier("unused", API_URL, transport=httpx.MockTransport(handler))

    async def fake_token():
        return "test-token"

    classifier.access_token = fake_token
    return classifier


async def test_confidence_at_threshold_is_inappropriate():
    gate = ModerationGate(StaticClassifier([{"name": "Toxic", "confidence": 0.7}]))
    assert await gate.is_inappropriate("you suck") is True


async def test_confidence_below_threshold_is_appropriate():
    gate = ModerationGate(StaticClassifier([
        {"name": "Profanity", "confidence": 0.2},
        {"name": "Toxic", "confidence": 0.69},
    ]))
    assert await gate.is_inappropriate("hello friend") is False


async def test_no_categories_is_appropriate():
    gate = ModerationGate(StaticClassifier([]))
    assert await gate.is_inappropriate("hello friend") is False


async def test_classifier_error_fails_closed():
    gate = ModerationGate(FakeClassifier(error=RuntimeError("API error")))
    assert await gate.is_inappropriate("crash") is True


async def test_classifier_timeout_fails_closed():
    gate = ModerationGate(SlowClassifier(), timeout=0.01)
    assert await gate.is_inappropriate("slow") is True


async def test_check_texts_stops_at_first_flagged_fragment():
    classifier = FakeClassifier(flagged_texts={"No"})
    gate = ModerationGate(classifier)

    assert await gate.check_texts(["Pineapple on pizza?", "Yes", "No", "Maybe"]) is True
    assert classifier.calls == ["Pineapple on pizza?", "Yes", "No"]


async def test_check_texts_skips_empty_fragments():
    classifier = FakeClassifier()
    gate = ModerationGate(classifier)

    assert await gate.check_texts(["Coffee or tea?", "", None, "Tea"]) is False
    assert classifier.calls == ["Coffee or tea?", "Tea"]


async def test_google_classifier_parses_categories():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"moderationCategories": [
            {"name": "Toxic", "confidence": 0.91},
            {"name": "Insult", "confidence": 0.4},
        ]})

    categories = await google_classifier(handler).classify("you suck")

    assert seen["auth"] == "Bearer test-token"
    assert seen["body"] == {"document": {"type": "PLAIN_TEXT", "content": "you suck"}}
    assert [(c.name, c.confidence) for c in categories] == [("Toxic", 0.91), ("Insult", 0.4)]


async def test_google_classifier_without_categories_returns_empty():
    categories = await google_classifier(lambda request: httpx.Response(200, json={})).classify("hi")
    assert categories == []


async def test_gate_fails_closed_on_http_error():
    gate = ModerationGate(google_classifier(lambda request: httpx.Response(403, json={"error": "denied"})))
    assert await gate.is_inappropriate("hello") is True


async def test_gate_fails_closed_on_malformed_payload():
    handler = lambda request: httpx.Response(200, json={"moderationCategories": [{"name": "Toxic"}]})
    gate = ModerationGate(google_classifier(handler))
    assert await gate.is_inappropriate("hello") is True


async def test_gate_fails_closed_without_credentials():
    gate = ModerationGate(GoogleModerationClassifier(None, API_URL))
    assert await gate.is_inappropriate("hello") is True


@pytest.mark.parametrize("threshold,expected", [(0.5, True), (0.95, False)])
async def test_threshold_is_configurable(threshold, expected):
    gate = ModerationGate(StaticClassifier([{"name": "Toxic", "confidence": 0.9}]), threshold=threshold)
    assert await gate.is_inappropriate("text") is expected
