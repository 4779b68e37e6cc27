"""Duplicate detection and squashing for events."""
import logging
from dataclasses import fields
from datetime import date
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from processor.exceptions import DuplicateResolutionError, EventNotFoundError
from processor.models import Event, SquashResult
from processor.temporal import is_future, today_in_zone
from storage.base import EventStore

logger = logging.getLogger(__name__)

# Volatile and administrative attributes never compared between events
DEFAULT_IGNORED_ATTRIBUTES = (
    'id',
    'duplicate_of_id',
    'version',
    'source_id',
    'venue_id',
    'created_at',
    'updated_at',
    'tags',
    'locked',
)

# Associations that stay on the duplicate when it is squashed
DEFAULT_IGNORED_ASSOCIATIONS = ('tags', 'base_tags', 'taggings')

Reassigner = Callable[[Event, Event], None]


class DuplicateMatcher:
    """Finds existing events equivalent to a candidate event."""

    def __init__(
        self,
        store: Optional[EventStore] = None,
        ignore_attributes: Sequence[str] = DEFAULT_IGNORED_ATTRIBUTES,
        compare_attributes: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the matcher.

        Args:
            store: Storage collaborator used to build the default search scope
            ignore_attributes: Event attributes excluded from comparison
            compare_attributes: Explicit allowlist; overrides ignore_attributes
        """
        self.store = store
        self.ignore_attributes = tuple(ignore_attributes)
        self.compare_attributes = (
            tuple(compare_attributes) if compare_attributes is not None else None
        )

    def comparable_attributes(self) -> List[str]:
        if self.compare_attributes is not None:
            return list(self.compare_attributes)
        return [
            f.name for f in fields(Event)
            if f.compare and f.name not in self.ignore_attributes
        ]

    def attributes_match(self, candidate: Event, other: Event) -> bool:
        """Compare the normalized values of every comparable attribute."""
        return all(
            getattr(candidate, name) == getattr(other, name)
            for name in self.comparable_attributes()
        )

    def search_scope(self, today: Optional[date] = None) -> List[Event]:
        """
        Fetch future events ordered by id ascending.

        Args:
            today: Reference date in the configured zone (default: today)

        Returns:
            Events classified as future relative to ``today``
        """
        if self.store is None:
            raise ValueError("A store is required to build the search scope")

        today = today or today_in_zone()
        return self.store.enumerate(
            predicate=lambda event: is_future(event, today),
            order_by='id',
        )

    def find_duplicates(
        self,
        candidate: Event,
        search_scope: Optional[Iterable[Event]] = None,
        today: Optional[date] = None,
    ) -> List[Event]:
        """Return every event in scope equivalent to ``candidate``, in scope order."""
        if search_scope is None:
            search_scope = self.search_scope(today)

        return [
            event for event in search_scope
            if not (candidate.id is not None and event.id == candidate.id)
            and self.attributes_match(candidate, event)
        ]

    def find_duplicate(
        self,
        candidate: Event,
        search_scope: Optional[Iterable[Event]] = None,
        today: Optional[date] = None,
    ) -> Optional[Event]:
        """
        Find the first existing event equivalent to ``candidate``.

        Args:
            candidate: Event to look up
            search_scope: Events to scan (default: future events by id)
            today: Reference date for the default scope

        Returns:
            The first matching event in scope order, or None
        """
        if search_scope is None:
            search_scope = self.search_scope(today)

        for event in search_scope:
            if candidate.id is not None and event.id == candidate.id:
                continue
            if self.attributes_match(candidate, event):
                logger.debug(f"Event {candidate.id} matches existing event {event.id}")
                return event
        return None


class DuplicateSquasher:
    """Marks events as duplicates of a canonical event.

    Squashing is a soft merge: the duplicate keeps its data and only gains a
    ``duplicate_of_id`` reference. Callers running concurrent imports must
    serialize squashes touching the same records.
    """

    def __init__(
        self,
        store: EventStore,
        ignore_associations: Sequence[str] = DEFAULT_IGNORED_ASSOCIATIONS,
        associations: Optional[Mapping[str, Reassigner]] = None,
    ):
        """
        Initialize the squasher.

        Args:
            store: Storage collaborator used to resolve and persist events
            ignore_associations: Associations left attached to the duplicate
            associations: Reassigners by association name, each called with
                (duplicate, canonical) to move that association
        """
        self.store = store
        self.ignore_associations = tuple(ignore_associations)
        self.associations = dict(associations or {})

    def resolve_canonical(self, event: Event) -> Event:
        """
        Follow ``duplicate_of_id`` references up to the canonical event.

        Args:
            event: Event to resolve

        Returns:
            The canonical ancestor, or ``event`` itself if it is canonical

        Raises:
            DuplicateResolutionError: If the references form a cycle
            EventNotFoundError: If a reference does not resolve
        """
        seen = {event.id}
        current = event
        while current.duplicate_of_id is not None:
            parent_id = current.duplicate_of_id
            if parent_id in seen:
                raise DuplicateResolutionError(
                    event.id, parent_id, "duplicate references form a cycle"
                )
            seen.add(parent_id)
            parent = self.store.get(parent_id)
            if parent is None:
                raise EventNotFoundError(parent_id)
            current = parent
        return current

    def squash(self, duplicate: Event, canonical: Event) -> SquashResult:
        """
        Squash ``duplicate`` into ``canonical`` (or into its canonical ancestor).

        Args:
            duplicate: Event to mark as a duplicate
            canonical: Event it duplicates

        Returns:
            SquashResult; ``changed`` is False when already squashed there

        Raises:
            DuplicateResolutionError: On self-squash or a reference cycle
            EventNotFoundError: If either event is not stored
        """
        if duplicate.id is None:
            raise EventNotFoundError(None)
        if duplicate.id == canonical.id:
            raise DuplicateResolutionError(
                duplicate.id, canonical.id, "an event cannot duplicate itself"
            )

        stored_canonical = (
            self.store.get(canonical.id) if canonical.id is not None else None
        )
        if stored_canonical is None:
            raise EventNotFoundError(canonical.id)

        target = self.resolve_canonical(stored_canonical)
        if target.id == duplicate.id:
            raise DuplicateResolutionError(
                duplicate.id, canonical.id, "canonical event resolves to the duplicate"
            )

        if duplicate.duplicate_of_id == target.id:
            logger.info(f"Event {duplicate.id} already squashed into {target.id}")
            return SquashResult(
                duplicate_id=duplicate.id, canonical_id=target.id, changed=False
            )

        if target.id != canonical.id:
            logger.info(
                f"Event {canonical.id} is a duplicate; squashing into its "
                f"canonical event {target.id}"
            )

        children = self.store.enumerate(
            predicate=lambda event: event.duplicate_of_id == duplicate.id
        )

        for name, reassign in self.associations.items():
            if name in self.ignore_associations:
                continue
            reassign(duplicate, target)

        previous_id = duplicate.duplicate_of_id
        duplicate.duplicate_of_id = target.id
        try:
            self.store.save(duplicate)
        except Exception:
            duplicate.duplicate_of_id = previous_id
            raise

        for child in children:
            child.duplicate_of_id = target.id
            self.store.save(child)
        repointed = [child.id for child in children]

        logger.info(
            f"Squashed event {duplicate.id} into {target.id} "
            f"({len(repointed)} duplicates repointed)"
        )
        return SquashResult(
            duplicate_id=duplicate.id,
            canonical_id=target.id,
            changed=True,
            repointed=repointed,
        )
