import pytest

from fakes import RecordingNotifier
from mailbrief.infrastructure.in_flight import InFlightSet
from mailbrief.infrastructure.memory_store import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def in_flight():
    return InFlightSet()
