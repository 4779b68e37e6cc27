"""In-process event store."""
import copy
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from processor.models import Event
from storage.base import EventFilter, EventStore, sort_events

logger = logging.getLogger(__name__)


class MemoryEventStore(EventStore):
    """Event store keeping copies of events in a dictionary.

    Reads return copies so callers never mutate stored state without saving.
    """

    def __init__(self):
        self._events: Dict[int, Event] = {}
        self._next_id = 1

    def get(self, event_id: int) -> Optional[Event]:
        event = self._events.get(event_id)
        return copy.deepcopy(event) if event else None

    def enumerate(
        self, predicate: Optional[EventFilter] = None, order_by: str = 'id'
    ) -> List[Event]:
        events = [
            copy.deepcopy(event) for event in self._events.values()
            if predicate is None or predicate(event)
        ]
        return sort_events(events, order_by)

    def save(self, event: Event) -> Event:
        now = datetime.now(timezone.utc)
        if event.id is None:
            event.id = self._next_id
            self._next_id += 1
        else:
            self._next_id = max(self._next_id, event.id + 1)
        if event.created_at is None:
            event.created_at = now
        event.version += 1
        event.updated_at = now
        self._events[event.id] = copy.deepcopy(event)
        logger.debug(f"Saved event {event.id} (version {event.version})")
        return event

    def delete(self, event_id: int) -> bool:
        return self._events.pop(event_id, None) is not None
