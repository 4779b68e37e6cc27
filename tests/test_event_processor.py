"""Unit tests for EventProcessor."""
from datetime import datetime
from unittest.mock import Mock

import pytest

from factories import TZ, make_event
from processor.event_processor import EventProcessor
from processor.exceptions import DuplicateResolutionError, EventLockedError
from processor.duplicates import DuplicateSquasher


def raw_event(**overrides):
    """Raw event payload with valid defaults."""
    raw = {
        'title': 'Live Music Night',
        'description': 'Enjoy live entertainment',
        'url': 'example.com/event/123',
        'start_time': '2030-01-15 19:00',
        'end_time': '2030-01-15 21:00',
        'venue_details': 'Spanish Springs',
    }
    raw.update(overrides)
    return raw


class TestEventProcessor:
    """Test cases for normalization and validation."""

    def test_build_event_valid_event(self):
        """Test building a valid event."""
        processor = EventProcessor()

        event = processor.build_event(raw_event())

        assert event.is_valid
        assert event.title == "Live Music Night"
        assert event.url == "http://example.com/event/123"
        assert event.start_time == datetime(2030, 1, 15, 19, 0, tzinfo=TZ)
        assert event.end_time == datetime(2030, 1, 15, 21, 0, tzinfo=TZ)
        assert event.venue_details == "Spanish Springs"

    def test_build_event_ignores_unknown_keys(self):
        """Test that unknown payload keys are dropped."""
        event = EventProcessor().build_event(raw_event(id=42, version=9, category="Music"))

        assert event.id is None
        assert event.version == 0

    def test_invalid_time_is_recorded_not_raised(self):
        """Test that a bad time becomes a validation error."""
        event = EventProcessor().build_event(raw_event(start_time="not-a-time"))

        assert event.start_time is None
        assert "is invalid" in event.errors['start_time']
        assert not event.is_valid

    def test_errors_are_additive(self):
        """Test that every failing check is reported."""
        event = EventProcessor().build_event(
            raw_event(title="   ", start_time="not-a-time", end_time="also bad")
        )

        assert event.errors['title'] == ["can't be blank"]
        assert event.errors['start_time'] == ["is invalid", "can't be blank"]
        assert event.errors['end_time'] == ["is invalid"]

    def test_end_before_start(self):
        """Test rejecting an end time before the start time."""
        event = EventProcessor().build_event(raw_event(end_time='2030-01-15 18:00'))

        assert event.errors == {'end_time': ['cannot be before start']}

    def test_end_equal_to_start_is_valid(self):
        """Test that equal start and end times are valid."""
        event = EventProcessor().build_event(raw_event(end_time='2030-01-15 19:00'))

        assert event.is_valid

    def test_malformed_url(self):
        """Test rejecting a malformed URL."""
        event = EventProcessor().build_event(raw_event(url='http://exa mple.com'))

        assert event.errors['url'] == ['is invalid']

    def test_blank_url_is_allowed(self):
        """Test that a blank URL is valid."""
        assert EventProcessor().build_event(raw_event(url='')).is_valid

    def test_blacklisted_content(self):
        """Test rejecting blacklisted words."""
        processor = EventProcessor(blacklist=[r'\bspam\b'])

        event = processor.build_event(raw_event(description="Cheap SPAM here"))

        assert event.errors == {'description': ['contains blacklisted content']}

    def test_blacklist_file(self, tmp_path, monkeypatch):
        """Test patterns loaded from a blacklist file."""
        from processor.settings import get_settings

        blacklist = tmp_path / "blacklist.txt"
        blacklist.write_text("# comment\n\\bpoker\\b\n\n")
        monkeypatch.setenv('BLACKLIST_FILE', str(blacklist))
        get_settings.cache_clear()

        event = EventProcessor().build_event(raw_event(title="Poker night"))

        assert event.errors == {'title': ['contains blacklisted content']}

    def test_process_events_skips_invalid(self):
        """Test that invalid events are dropped from a batch."""
        processor = EventProcessor()

        processed = processor.process_events([
            raw_event(),
            raw_event(title=""),
            raw_event(start_time=""),
        ])

        assert len(processed) == 1
        assert processed[0].title == "Live Music Night"

    def test_tags_are_assigned_as_set(self):
        """Test that tags are stored as a set."""
        event = EventProcessor().build_event(raw_event(tags=["music", "music", "free"]))

        assert event.tags == {"music", "free"}


class TestEditing:
    """Test cases for editing and edit locking."""

    def test_update_event(self):
        """Test updating an event's attributes."""
        processor = EventProcessor()
        event = make_event()

        processor.update_event(event, {'title': ' New title ', 'url': 'example.org'})

        assert event.title == "New title"
        assert event.url == "http://example.org"
        assert event.is_valid

    def test_update_revalidates(self):
        """Test that updates run validation again."""
        processor = EventProcessor()
        event = make_event()

        processor.update_event(event, {'end_time': '2030-02-01 10:00', 'start_time': 'bogus'})

        assert event.errors['start_time'] == ["is invalid", "can't be blank"]

    def test_locked_event_rejects_edits(self):
        """Test that a locked event refuses updates."""
        event = make_event()
        event.lock_editing()

        with pytest.raises(EventLockedError):
            EventProcessor().update_event(event, {'title': 'Changed'})

        assert event.title == "Town Hall"

    def test_unlock_allows_edits(self):
        """Test that unlocking allows updates again."""
        event = make_event()
        event.lock_editing()
        event.unlock_editing()

        EventProcessor().update_event(event, {'title': 'Changed'})

        assert event.title == "Changed"


class TestImport:
    """Test cases for the import pipeline."""

    def test_import_new_event(self, store):
        """Test importing a new event."""
        processor = EventProcessor(store=store)

        event = processor.import_event(raw_event(), source_id=3)

        assert event.id == 1
        assert event.source_id == 3
        assert event.is_canonical
        assert store.get(1).title == "Live Music Night"

    def test_reimport_is_squashed(self, store):
        """Test that importing the same event again squashes it."""
        processor = EventProcessor(store=store)

        first = processor.import_event(raw_event(), source_id=3)
        second = processor.import_event(raw_event(venue_details='Spanish Springs'), source_id=4)

        assert second.id == 2
        assert second.duplicate_of_id == first.id
        assert store.get(2).duplicate_of_id == first.id
        assert store.get(1).duplicate_of_id is None

    def test_invalid_event_is_not_saved(self, store):
        """Test that invalid events are not stored."""
        processor = EventProcessor(store=store)

        event = processor.import_event(raw_event(title=""))

        assert event.id is None
        assert store.enumerate() == []

    def test_import_events_counts(self, store):
        """Test import statistics."""
        processor = EventProcessor(store=store)

        result = processor.import_events([
            raw_event(),
            raw_event(),
            raw_event(title="Different"),
            raw_event(start_time="not-a-time"),
        ], source_id=1)

        assert result.created == 3
        assert result.squashed == 1
        assert result.invalid == 1
        assert result.squashes == {2: 1}
        assert result.errors == []

    def test_import_events_collects_squash_errors(self, store):
        """Test that squash failures are reported per event."""
        squasher = Mock(spec=DuplicateSquasher)
        squasher.squash.side_effect = DuplicateResolutionError(2, 1, "boom")
        processor = EventProcessor(store=store, squasher=squasher)

        result = processor.import_events([raw_event(), raw_event()])

        assert result.created == 1
        assert len(result.errors) == 1
        assert "boom" in result.errors[0]

    def test_import_requires_store(self):
        """Test that importing without a store fails."""
        with pytest.raises(ValueError):
            EventProcessor().import_event(raw_event())
