import copy
import json
import os

# must be set before notra is imported anywhere
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_JSON"] = "0"

import pytest  # noqa: E402

from notra.core.config import GenerationConfig  # noqa: E402
from notra.services.asset_store import InMemoryAssetStore  # noqa: E402
from notra.services.learning_assets import LearningAssetPipeline  # noqa: E402


VALID_ASSET = {
    "title": "Newton's Second Law",
    "notes": [
        {
            "id": "note-1",
            "heading": "Force, mass and acceleration",
            "content": "Newton's second law states that **force** equals mass times acceleration: $F = ma$.",
            "bullets": ["Force is a vector", "Acceleration is proportional to net force"],
            "example": "A 2 kg cart pushed with 10 N accelerates at 5 m/s^2.",
            "tableSummary": [{"label": "F", "value": "Net force in newtons"}],
        },
        {
            "id": "note-2",
            "heading": "Units",
            "content": "One newton is the force that accelerates 1 kg at 1 m/s^2.",
        },
    ],
    "quizzes": [
        {
            "id": "quiz-1",
            "question": "A net force of 10 N acts on a 2 kg mass. What is its acceleration?",
            "options": [
                {"label": "A", "text": "2 m/s^2"},
                {"label": "B", "text": "5 m/s^2"},
                {"label": "C", "text": "10 m/s^2"},
                {"label": "D", "text": "20 m/s^2"},
            ],
            "correctIndex": 1,
            "explanation": "a = F / m = 10 / 2 = 5 m/s^2.",
            "difficulty": "easy",
        }
    ],
    "flashcards": [
        {"id": "card-1", "front": "Newton's second law", "back": "F = ma", "tag": "Mechanics"},
    ],
    "summaryForChat": "Covers Newton's second law F = ma, its units and a worked example.",
}


def asset_dict(**overrides) -> dict:
    d = copy.deepcopy(VALID_ASSET)
    d.update(overrides)
    return d


def asset_json(**overrides) -> str:
    return json.dumps(asset_dict(**overrides))


class ScriptedClient:
    """
    Fake completion client. Returns the scripted responses in order and
    repeats the last one; Exception instances are raised instead.
    """

    name = "fake"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def complete(self, prompt, *, temperature, json_mode, max_tokens):
        self.calls.append(
            {"prompt": prompt, "temperature": temperature, "json_mode": json_mode, "max_tokens": max_tokens}
        )
        r = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(r, Exception):
            raise r
        return r


@pytest.fixture
def config():
    return GenerationConfig()


@pytest.fixture
def store():
    return InMemoryAssetStore()


@pytest.fixture
def make_pipeline(config, store):
    def _make(*responses, cfg=None):
        client = ScriptedClient(*responses)
        return LearningAssetPipeline(client=client, store=store, config=cfg or config), client

    return _make
