"""Data models for event processing."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from processor.attributes import (
    NormalizedAttribute,
    normalize_newlines,
    prefix_url,
    strip_title,
    time_for,
)


class ValidationErrors(dict):
    """Field-attributed validation messages; several may coexist per field."""

    def add(self, field_name: str, message: str) -> None:
        messages = self.setdefault(field_name, [])
        if message not in messages:
            messages.append(message)

    def discard(self, field_name: str, message: str) -> None:
        messages = self.get(field_name)
        if messages and message in messages:
            messages.remove(message)
            if not messages:
                del self[field_name]

    def full_messages(self) -> List[str]:
        return [
            f"{field_name} {message}"
            for field_name, messages in self.items()
            for message in messages
        ]


@dataclass
class Event:
    """Calendar event record.

    ``errors`` is declared first so that it exists before the normalized
    attributes are assigned in ``__init__``.
    """
    errors: ValidationErrors = field(
        default_factory=ValidationErrors, init=False, repr=False, compare=False
    )
    id: Optional[int] = None
    title: str = NormalizedAttribute(read=strip_title, default='')
    description: str = NormalizedAttribute(read=normalize_newlines)
    url: Optional[str] = NormalizedAttribute(write=prefix_url)
    rrule: Optional[str] = None
    start_time: Optional[datetime] = NormalizedAttribute(write=time_for)
    end_time: Optional[datetime] = NormalizedAttribute(write=time_for)
    venue_id: Optional[int] = None
    source_id: Optional[int] = None
    duplicate_of_id: Optional[int] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    venue_details: Optional[str] = None
    locked: bool = False
    tags: Set[str] = field(default_factory=set)

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of_id is not None

    @property
    def is_canonical(self) -> bool:
        return self.duplicate_of_id is None

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def lock_editing(self) -> None:
        self.locked = True

    def unlock_editing(self) -> None:
        self.locked = False


@dataclass
class SquashResult:
    """Result of squashing a duplicate into its canonical event."""
    duplicate_id: int
    canonical_id: int
    changed: bool
    repointed: List[int] = field(default_factory=list)


@dataclass
class ImportResult:
    """Result of an import run."""
    created: int = 0
    squashed: int = 0
    invalid: int = 0
    errors: List[str] = field(default_factory=list)
    squashes: Dict[int, int] = field(default_factory=dict)
