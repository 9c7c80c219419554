import sys
from datetime import date, datetime
from pathlib import Path

# Ensure the src directory is importable for tests
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))


import pytest

from babynest_assistant.chatbot_nlu.dispatcher import Dispatcher
from babynest_assistant.chatbot_nlu.io_types import UserContext
from babynest_assistant.chatbot_nlu.ontology import Ontology
from babynest_assistant.chatbot_nlu.policy import Policy
from babynest_assistant.chatbot_nlu.undo import UndoLog
from babynest_assistant.llm_providers import StaticResponder
from babynest_assistant.records import SQLiteRecordStore
from babynest_assistant.session import ChatSession

# Monday; every relative date in the tests resolves against it
TODAY = date(2025, 3, 10)


@pytest.fixture(scope="session")
def ontology():
    return Ontology.default()


@pytest.fixture
def store():
    store = SQLiteRecordStore(":memory:", clock=lambda: datetime(2025, 3, 10, 8, 30))
    yield store
    store.close()


@pytest.fixture
def ctx():
    return UserContext(current_week=12, reference_date=TODAY)


@pytest.fixture
def undo_log(store):
    return UndoLog(store)


@pytest.fixture
def dispatcher(store, undo_log, ontology):
    return Dispatcher(store, undo_log, Policy(ontology))


@pytest.fixture
def session(store, ontology, ctx):
    return ChatSession(store, StaticResponder("static reply"), ontology, ctx)
