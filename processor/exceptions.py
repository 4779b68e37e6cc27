"""Exceptions raised by the event processing core."""
from typing import Optional


class EventError(Exception):
    """Base exception for event processing errors."""


class DuplicateResolutionError(EventError):
    """Raised when a squash would self-reference or a duplicate chain loops."""

    def __init__(self, duplicate_id: Optional[int], canonical_id: Optional[int], message: str):
        self.duplicate_id = duplicate_id
        self.canonical_id = canonical_id
        super().__init__(
            f"Cannot squash event {duplicate_id} into {canonical_id}: {message}"
        )


class EventNotFoundError(EventError):
    """Raised when an event reference does not resolve to a stored event."""

    def __init__(self, event_id: Optional[int]):
        self.event_id = event_id
        super().__init__(f"Event not found: {event_id}")


class EventLockedError(EventError):
    """Raised when editing an event whose editing has been locked."""

    def __init__(self, event_id: Optional[int]):
        self.event_id = event_id
        super().__init__(f"Event {event_id} is locked for editing")
