"""Shared test fixtures."""
import pytest

from factories import TZ
from processor.settings import get_settings
from storage.memory_store import MemoryEventStore


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Pin configuration so tests do not depend on the host environment."""
    monkeypatch.setenv('EVENTS_TIME_ZONE', 'America/Los_Angeles')
    monkeypatch.setenv('DEFAULT_URL_SCHEME', 'http://')
    monkeypatch.delenv('BLACKLIST_FILE', raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def tz():
    """Configured event time zone."""
    return TZ


@pytest.fixture
def store():
    """Create an empty in-process event store."""
    return MemoryEventStore()
