"""
Shared pytest fixtures. No test talks to Groq or MongoDB: the generation
client and the store are the in-memory fakes from tests/fakes.py.
"""
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for _p in (ROOT, TESTS_DIR):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

import pytest

from fakes import FakeGroqClient, FakeStore, RecordingSleep

from assessment_engine.core.ai_services import AIService, GenerationGateway
from assessment_engine.services.leaderboard_service import LeaderboardService
from assessment_engine.services.quiz_service import QuizService
from assessment_engine.services.scoring import ScoringEngine
from assessment_engine.services.session_service import SessionService

QUIZ_OPTIONS = ["Paris", "Berlin", "Madrid", "Rome"]


def question_json(n=1, answer="Paris"):
    return json.dumps({
        "question": f"Question {n}: what is the capital of France?",
        "options": QUIZ_OPTIONS,
        "answer": answer,
        "explanation": "Paris is the capital of France.",
    })


def default_responder(prompt):
    """A well-behaved generation service keyed on prompt wording"""
    if "general-purpose quiz topic" in prompt:
        return 'Here you go: {"topic": "Effective Communication"}'
    if "user profile" in prompt:
        return json.dumps({"topic": "Python Internals", "category": "TECHNICAL", "userSegment": "Backend Dev"})
    if "multiple-choice quiz question" in prompt:
        return "```json\n" + question_json() + "\n```"
    if "Evaluate the following answer" in prompt:
        return "Score: 8\nSuggestion: Mention trade-offs."
    if "identify the correct answer" in prompt:
        return "Correct Answer: B\nExplanation: Each term doubles."
    if "aptitude test question" in prompt:
        return "What comes next: 2, 4, 8, ?\nA) 10\nB) 16\nC) 12\nD) 14"
    return "Explain the difference between a process and a thread."


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def responder():
    """Override in a test module to script the generation service"""
    return default_responder


@pytest.fixture
def client(responder):
    return FakeGroqClient(responder)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def gateway(client, sleep):
    return GenerationGateway(client, model="test-model", max_attempts=3, base_delay=2.0, sleep=sleep)


@pytest.fixture
def ai_service(gateway):
    return AIService(gateway)


@pytest.fixture
def session_service(store, ai_service):
    return SessionService(store, ai_service)


@pytest.fixture
def leaderboard_service(store):
    return LeaderboardService(store)


@pytest.fixture
def scoring(store, leaderboard_service):
    return ScoringEngine(store, leaderboard_service)


@pytest.fixture
def quiz_service(store, ai_service, scoring):
    return QuizService(store, ai_service, scoring)


@pytest.fixture
def profile_id(store):
    user_id = store.add_user("Ada", "Lovelace")
    return store.add_profile(user_id, photo="ada.png")
