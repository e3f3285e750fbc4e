"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest
import pytz

from clinica_ai_agent.config import SchedulingConfig, Settings
from clinica_ai_agent.knowledge import load_knowledge_base
from clinica_ai_agent.services.clinic import (
    AvailabilityService,
    ClinicRepository,
    NotificationService,
    PatientService,
)
from clinica_ai_agent.services.context import ContextStore, ConversationContextManager
from clinica_ai_agent.services.conversation import ConversationManager
from clinica_ai_agent.services.flows import ConversationFlowHandler
from clinica_ai_agent.services.llm import GeminiClient
from clinica_ai_agent.services.nlp import NLPPipeline
from clinica_ai_agent.utils.date import DateParser


TIMEZONE = "America/Sao_Paulo"


class FakePipeline:
    """MULTI/EXEC pipeline that replays queued commands on execute."""

    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.commands = []

    def incr(self, key):
        self.commands.append(("incr", (key,)))
        return self

    def expire(self, key, ttl):
        self.commands.append(("expire", (key, ttl)))
        return self

    async def execute(self):
        results = [await getattr(self.redis, name)(*args) for name, args in self.commands]
        self.commands = []
        return results


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio calls the app makes."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def expire(self, key, ttl):
        if key not in self.data:
            return False
        self.ttls[key] = ttl
        return True

    async def ttl(self, key):
        return self.ttls.get(key, -2)

    async def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def incr(self, key):
        self.data[key] = int(self.data.get(key, 0)) + 1
        return self.data[key]

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        self.closed = True


def upcoming_weekday(offset: int = 0) -> str:
    """ISO date of the first Monday-to-Friday day after today, plus ``offset`` weekdays."""
    day = datetime.now(pytz.timezone(TIMEZONE)).date() + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    for _ in range(offset):
        day += timedelta(days=1)
        while day.weekday() >= 5:
            day += timedelta(days=1)
    return day.isoformat()


def upcoming(weekday: int) -> str:
    """ISO date of the next given weekday (Monday = 0), never today."""
    today = datetime.now(pytz.timezone(TIMEZONE)).date()
    days_ahead = (weekday - today.weekday() + 7) % 7 or 7
    return (today + timedelta(days=days_ahead)).isoformat()


@pytest.fixture
def weekday_date():
    """Next working day; every seeded cardiologist is in from 08:00 to 12:00."""
    return upcoming_weekday()


@pytest.fixture
def working_day():
    """``working_day(n)``: the n-th working day after the next one."""
    return upcoming_weekday


@pytest.fixture
def next_weekday():
    """``next_weekday(5)``: date of the coming Saturday."""
    return upcoming


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and any local .env file."""
    return Settings(
        _env_file=None,
        gemini_api_key=None,
        openai_api_key=None,
        notification_webhook_url=None,
        clinic_db_path=str(tmp_path / "clinic.db"),
        chroma_path=str(tmp_path / "chroma"),
        timezone=TIMEZONE,
        environment="test",
    )


@pytest.fixture
def scheduling_config():
    return SchedulingConfig(timezone=TIMEZONE)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def knowledge_base():
    return load_knowledge_base()


@pytest.fixture
def date_parser():
    return DateParser(TIMEZONE)


@pytest.fixture
def repository(tmp_path, knowledge_base):
    """SQLite repository in a temp dir; tables and seeds are created on first use."""
    return ClinicRepository(str(tmp_path / "clinic.db"), knowledge_base)


@pytest.fixture
def availability(repository, scheduling_config):
    return AvailabilityService(repository, scheduling_config)


@pytest.fixture
def patient_service(repository):
    return PatientService(repository)


@pytest.fixture
def notifications():
    """Notification service with no webhook configured."""
    service = NotificationService()
    service.notify = AsyncMock(return_value=False)
    return service


@pytest.fixture
def flow_handler(repository, availability, patient_service, notifications, knowledge_base, scheduling_config):
    return ConversationFlowHandler(
        repository=repository,
        availability=availability,
        patients=patient_service,
        notifications=notifications,
        knowledge_base=knowledge_base,
        config=scheduling_config,
    )


@pytest.fixture
def context_manager(fake_redis):
    return ConversationContextManager(ContextStore(fake_redis, ttl_seconds=1800), max_history=20)


@pytest.fixture
def mock_llm():
    """Gemini client double; tests set return values or side effects per call."""
    llm = Mock(spec=GeminiClient)
    llm.analyze_intent = AsyncMock(return_value={"intent": "UNKNOWN", "confidence": 0.0, "entities": {}})
    llm.generate_response = AsyncMock(return_value="Claro! Como posso ajudar?")
    llm.health_check = AsyncMock(return_value={"status": "healthy", "model": "gemini-test"})
    return llm


@pytest.fixture
def manager_factory(context_manager, flow_handler, knowledge_base, repository, date_parser, settings):
    """Build a ConversationManager around the given LLM double (or none)."""

    def _build(llm=None, semantic=None):
        return ConversationManager(
            context_manager=context_manager,
            nlp=NLPPipeline(llm, knowledge_base, date_parser),
            flow_handler=flow_handler,
            knowledge_base=knowledge_base,
            llm=llm,
            semantic=semantic,
            repository=repository,
            settings=settings,
        )

    return _build

