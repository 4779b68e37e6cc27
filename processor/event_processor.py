"""Event processor for normalizing, validating and importing event data."""
import logging
import re
from typing import Any, Dict, List, Optional

from processor.duplicates import DuplicateMatcher, DuplicateSquasher
from processor.exceptions import EventError, EventLockedError
from processor.models import Event, ImportResult
from processor.settings import get_settings
from storage.base import EventStore

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(
    r'^https?://(\w+:?\w*@)?(\S+)(:[0-9]+)?(/|/([\w#!:.?+=&%@!\-/]))?$'
)

# Attributes accepted from raw input
ASSIGNABLE_ATTRIBUTES = (
    'title',
    'description',
    'url',
    'rrule',
    'start_time',
    'end_time',
    'venue_id',
    'source_id',
    'venue_details',
    'tags',
)

BLANK_MESSAGE = "can't be blank"
BEFORE_START_MESSAGE = 'cannot be before start'
BLACKLISTED_MESSAGE = 'contains blacklisted content'


class EventProcessor:
    """Processor for normalizing, validating and importing event data."""

    def __init__(
        self,
        store: Optional[EventStore] = None,
        matcher: Optional[DuplicateMatcher] = None,
        squasher: Optional[DuplicateSquasher] = None,
        blacklist: Optional[List[str]] = None,
    ):
        """
        Initialize the processor.

        Args:
            store: Storage collaborator; required for importing
            matcher: Duplicate matcher (default: one over ``store``)
            squasher: Duplicate squasher (default: one over ``store``)
            blacklist: Regular expressions rejected in free-text fields
                (default: configured blacklist)
        """
        self.store = store
        self.matcher = matcher if matcher is not None else DuplicateMatcher(store)
        if squasher is None and store is not None:
            squasher = DuplicateSquasher(store)
        self.squasher = squasher
        if blacklist is None:
            blacklist = get_settings().blacklist
        self.blacklist = [re.compile(pattern, re.IGNORECASE) for pattern in blacklist]

    def build_event(self, raw: Dict[str, Any]) -> Event:
        """
        Build an event from raw attributes and validate it.

        Unknown keys are ignored. Bad time values become validation errors.

        Args:
            raw: Attribute dictionary, as produced by a feed scraper

        Returns:
            Event, possibly carrying validation errors
        """
        event = Event()
        self._assign(event, raw)
        self.validate(event)
        return event

    def process_events(self, raw_events: List[Dict[str, Any]]) -> List[Event]:
        """
        Normalize and validate raw event data.

        Args:
            raw_events: List of raw attribute dictionaries

        Returns:
            List of valid Event objects
        """
        processed_events = []

        for raw in raw_events:
            event = self.build_event(raw)
            if not event.is_valid:
                logger.warning(
                    f"Skipping invalid event '{event.title}': "
                    f"{'; '.join(event.errors.full_messages())}"
                )
                continue
            processed_events.append(event)

        logger.info(
            f"Processed {len(processed_events)} valid events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events

    def validate(self, event: Event) -> bool:
        """
        Record validation errors on an event.

        Errors already recorded, such as unparseable times, are kept.

        Args:
            event: Event to validate

        Returns:
            True if the event has no errors
        """
        if not event.title:
            event.errors.add('title', BLANK_MESSAGE)

        if event.start_time is None:
            event.errors.add('start_time', BLANK_MESSAGE)
        elif event.end_time is not None and event.end_time < event.start_time:
            event.errors.add('end_time', BEFORE_START_MESSAGE)

        if event.url and not URL_PATTERN.match(event.url):
            event.errors.add('url', 'is invalid')

        for field_name in ('title', 'description', 'url'):
            value = getattr(event, field_name)
            if value and any(pattern.search(value) for pattern in self.blacklist):
                event.errors.add(field_name, BLACKLISTED_MESSAGE)

        return event.is_valid

    def update_event(self, event: Event, changes: Dict[str, Any]) -> Event:
        """
        Apply edits to an event and revalidate it.

        Args:
            event: Event to edit
            changes: Attribute dictionary of new values

        Returns:
            The edited event

        Raises:
            EventLockedError: If editing of the event is locked
        """
        if event.locked:
            raise EventLockedError(event.id)

        event.errors.clear()
        self._assign(event, changes)
        self.validate(event)
        return event

    def import_event(self, raw: Dict[str, Any], source_id: Optional[int] = None) -> Event:
        """
        Import a single event: normalize, validate, save and squash.

        An event matching an existing future event is saved and then marked
        as a duplicate of that event.

        Args:
            raw: Raw attribute dictionary
            source_id: Source feed the event came from

        Returns:
            The event; ``duplicate_of_id`` is set when it was squashed and
            ``errors`` is non-empty when it was rejected
        """
        if self.store is None:
            raise ValueError("A store is required to import events")

        event = Event()
        self._assign(event, raw)
        if source_id is not None:
            event.source_id = source_id
        if not self.validate(event):
            return event

        match = self.matcher.find_duplicate(event)
        self.store.save(event)

        if match is not None:
            self.squasher.squash(event, match)

        return event

    def import_events(
        self, raw_events: List[Dict[str, Any]], source_id: Optional[int] = None
    ) -> ImportResult:
        """
        Import a batch of raw events.

        Args:
            raw_events: List of raw attribute dictionaries
            source_id: Source feed the events came from

        Returns:
            ImportResult with counts of created, squashed and invalid events
        """
        logger.info(f"Starting import of {len(raw_events)} events")
        result = ImportResult()

        for raw in raw_events:
            try:
                event = self.import_event(raw, source_id=source_id)
            except EventError as e:
                error_msg = f"Failed to import event '{raw.get('title')}': {e}"
                logger.error(error_msg)
                result.errors.append(error_msg)
                continue

            if not event.is_valid:
                result.invalid += 1
                logger.warning(
                    f"Rejected invalid event '{event.title}': "
                    f"{'; '.join(event.errors.full_messages())}"
                )
                continue

            result.created += 1
            if event.is_duplicate:
                result.squashed += 1
                result.squashes[event.id] = event.duplicate_of_id

        logger.info(
            f"Import complete: {result.created} created, {result.squashed} "
            f"squashed, {result.invalid} invalid"
        )
        return result

    def _assign(self, event: Event, values: Dict[str, Any]) -> None:
        """Assign known attributes through their normalizers."""
        for name in ASSIGNABLE_ATTRIBUTES:
            if name not in values:
                continue
            value = values[name]
            if name == 'tags':
                value = set(value or ())
            setattr(event, name, value)
