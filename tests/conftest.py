import os
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
os.environ['LOG_FILE_PATH'] = ''


@pytest.fixture(autouse=True)
def silence_logger(monkeypatch):
    # log_* helpers fetch the logger on every call
    import studycore.utils.logger as logger_mod
    monkeypatch.setattr(logger_mod, 'get_logger', lambda *a, **k: MagicMock())
    yield


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeTimer:
    """Epoch-seconds clock for the response cache."""

    def __init__(self, start=1_000_000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def settings():
    from studycore.config import Settings
    return Settings(_env_file=None, OPENAI_API_KEY=None, STORE_BACKEND='memory')


@pytest.fixture
def memory_store():
    from studycore.utils import MemoryStore
    return MemoryStore()


@pytest.fixture
def mock_redis_client():
    from tests.fixtures.mock_redis import MockRedisClient
    return MockRedisClient()


@pytest.fixture
def fake_provider():
    from tests.fixtures.fake_provider import FakeProvider
    from tests.fixtures import sample_data
    from studycore import config
    return FakeProvider({
        config.QUIZ_GENERATION: sample_data.quiz_payload(),
        config.ENHANCED_QUIZ_GENERATION: sample_data.enhanced_quiz_payload(),
        config.DOCUMENT_ANALYSIS: sample_data.analysis_payload(),
        config.DOCUMENT_TIPS: sample_data.tips_payload(),
        config.EXERCISE_GENERATION: sample_data.exercises_payload(),
        config.FULL_COVERAGE_QUESTIONS: {'questions': ['What is ATP?'], 'hasMore': False},
        config.WRITTEN_ANSWER_GRADING: {'score': 7, 'maxScore': 10, 'feedback': 'Mostly right.'},
        config.CHAT_SESSION: {'sessionId': 's1', 'systemInstruction': 'Answer about the document.', 'history': []},
    })


@pytest.fixture
def engine(memory_store, fake_provider, settings, clock):
    from studycore import LearningEngine
    return LearningEngine(store=memory_store, provider=fake_provider, settings=settings, clock=clock)


@pytest.fixture
def sample_questions():
    from tests.fixtures.sample_data import mixed_question_pool
    return mixed_question_pool()
