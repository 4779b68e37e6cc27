"""Unit tests for configuration loading."""
from zoneinfo import ZoneInfo

from processor.settings import DEFAULT_BLACKLIST, get_settings, load_blacklist, load_settings


def test_defaults(monkeypatch):
    """Test settings defaults when the environment is empty."""
    monkeypatch.delenv('EVENTS_TIME_ZONE', raising=False)
    monkeypatch.delenv('DEFAULT_URL_SCHEME', raising=False)
    monkeypatch.delenv('TABLE_NAME', raising=False)

    settings = load_settings()

    assert settings.time_zone == ZoneInfo('America/Los_Angeles')
    assert settings.default_url_scheme == 'http://'
    assert settings.blacklist == DEFAULT_BLACKLIST
    assert settings.table_name == 'community-events'
    assert settings.timeout_seconds == 30


def test_environment_overrides(monkeypatch):
    """Test that environment variables override the defaults."""
    monkeypatch.setenv('EVENTS_TIME_ZONE', 'Europe/Berlin')
    monkeypatch.setenv('TABLE_NAME', 'events-prod')
    monkeypatch.setenv('TIMEOUT_SECONDS', '5')

    settings = load_settings()

    assert settings.time_zone == ZoneInfo('Europe/Berlin')
    assert settings.table_name == 'events-prod'
    assert settings.timeout_seconds == 5


def test_invalid_time_zone_falls_back(monkeypatch):
    """Test that an unknown zone name falls back to the default zone."""
    monkeypatch.setenv('EVENTS_TIME_ZONE', 'Mars/Olympus_Mons')

    assert load_settings().time_zone == ZoneInfo('America/Los_Angeles')


def test_get_settings_is_cached():
    """Test that settings are loaded once per process."""
    assert get_settings() is get_settings()


def test_load_blacklist_file(tmp_path):
    """Test reading patterns from a blacklist file."""
    path = tmp_path / 'blacklist.txt'
    path.write_text("# words\n\\bfoo\\b\n  \nbar\n")

    assert load_blacklist(str(path)) == [r'\bfoo\b', 'bar']
