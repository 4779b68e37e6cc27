"""Storage collaborator interface for events."""
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from processor.models import Event

EventFilter = Callable[[Event], bool]


class EventStore(ABC):
    """Abstract base class for event storage backends.

    ``save`` owns the administrative fields: it assigns an id on first save,
    increments ``version`` and stamps ``created_at``/``updated_at``.
    """

    @abstractmethod
    def get(self, event_id: int) -> Optional[Event]:
        """Return the event with ``event_id``, or None."""
        ...

    @abstractmethod
    def enumerate(
        self, predicate: Optional[EventFilter] = None, order_by: str = 'id'
    ) -> List[Event]:
        """Return stored events accepted by ``predicate``, sorted by ``order_by``."""
        ...

    @abstractmethod
    def save(self, event: Event) -> Event:
        """Persist ``event`` and return it with administrative fields set."""
        ...

    @abstractmethod
    def delete(self, event_id: int) -> bool:
        """Delete an event. Returns True if it existed."""
        ...


def sort_events(events: List[Event], order_by: str) -> List[Event]:
    """Sort events by an attribute name; a leading '-' sorts descending."""
    reverse = order_by.startswith('-')
    attribute = order_by.lstrip('-')
    return sorted(events, key=lambda e: getattr(e, attribute), reverse=reverse)
