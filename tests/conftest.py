"""
Pytest Configuration and Fixtures

Every test gets its own file-backed SQLite database; stores are wired to it
through create_uow_provider exactly as the API does.
"""
import os
import sys

import pytest
import pytest_asyncio

# Add services/core to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'services', 'core'))

# Must be set before database/config are imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORE_RETRY_BACKOFF_SECONDS", "0")

from database import create_engine_for_url, create_session_factory, init_models  # noqa: E402
from infrastructure.events import EventPublisher  # noqa: E402
from infrastructure.uow import create_uow_provider  # noqa: E402
from schemas import CustomFieldDefinitionRequest, GoalTypeRequest  # noqa: E402
from services.goals import (  # noqa: E402
    CustomFieldAnswerStore,
    CustomFieldDefinitionStore,
    GoalStore,
    GoalTypeStore,
)

OWNER = "user-alice"
OTHER_OWNER = "user-bob"


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh schema per test"""
    test_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'goals.db'}")
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def published_events():
    return []


@pytest.fixture
def publisher(published_events):
    event_publisher = EventPublisher()

    async def capture(event):
        published_events.append(event)

    event_publisher.subscribe(capture)
    return event_publisher


@pytest.fixture
def uow_provider(session_factory, publisher):
    return create_uow_provider(session_factory, publisher=publisher)


@pytest.fixture
def goal_type_store(uow_provider):
    return GoalTypeStore(uow_provider)


@pytest.fixture
def definition_store(uow_provider):
    return CustomFieldDefinitionStore(uow_provider)


@pytest.fixture
def goal_store(uow_provider):
    return GoalStore(uow_provider)


@pytest.fixture
def answer_store(uow_provider):
    return CustomFieldAnswerStore(uow_provider)


def field(key, label=None, type="TEXT", required=False, placeholder=None):
    """Shortcut for a field definition payload"""
    return CustomFieldDefinitionRequest(
        key=key,
        label=label or key.replace("_", " ").title(),
        type=type,
        required=required,
        placeholder=placeholder,
    )


def goal_type_request(title, *fields):
    return GoalTypeRequest(title=title, custom_fields=list(fields))
