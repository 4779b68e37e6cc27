"""DynamoDB-backed event store."""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.attributes import raw_attribute
from processor.models import Event
from storage.base import EventFilter, EventStore, sort_events

logger = logging.getLogger(__name__)


class DynamoDBEventStore(EventStore):
    """Event store backed by a DynamoDB table keyed on numeric ``id``.

    Ids are allocated from an atomic counter kept in the item with id 0.
    """

    COUNTER_ID = 0

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBEventStore for table: {table_name}")

    def get(self, event_id: int) -> Optional[Event]:
        try:
            response = self.table.get_item(Key={'id': event_id})
        except ClientError as e:
            logger.error(f"Error reading event {event_id}: {e}")
            raise

        item = response.get('Item')
        if not item or int(item['id']) == self.COUNTER_ID:
            return None
        return self._item_to_event(item)

    def get_all_events(self) -> Dict[int, Event]:
        """
        Retrieve all events from DynamoDB using Scan operation.

        Returns:
            Dictionary mapping event id to Event objects
        """
        logger.info("Scanning DynamoDB table for all events")
        events = {}

        try:
            # Scan the table (paginated automatically by boto3)
            response = self.table.scan()
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

            for item in items:
                if int(item['id']) == self.COUNTER_ID:
                    continue
                event = self._item_to_event(item)
                if event:
                    events[event.id] = event

            logger.info(f"Retrieved {len(events)} events from DynamoDB")
            return events

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

    def enumerate(
        self, predicate: Optional[EventFilter] = None, order_by: str = 'id'
    ) -> List[Event]:
        events = [
            event for event in self.get_all_events().values()
            if predicate is None or predicate(event)
        ]
        return sort_events(events, order_by)

    def save(self, event: Event) -> Event:
        self._stamp(event)
        try:
            self.table.put_item(Item=self._event_to_item(event))
        except ClientError as e:
            logger.error(f"Error writing event {event.id}: {e}")
            raise
        return event

    def delete(self, event_id: int) -> bool:
        try:
            response = self.table.delete_item(
                Key={'id': event_id}, ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            logger.error(f"Error deleting event {event_id}: {e}")
            raise
        return 'Attributes' in response

    def _next_id(self) -> int:
        """Allocate the next event id from the counter item."""
        response = self.table.update_item(
            Key={'id': self.COUNTER_ID},
            UpdateExpression='ADD next_id :one',
            ExpressionAttributeValues={':one': 1},
            ReturnValues='UPDATED_NEW',
        )
        return int(response['Attributes']['next_id'])

    def _stamp(self, event: Event) -> None:
        now = datetime.now(timezone.utc)
        if event.id is None:
            event.id = self._next_id()
        if event.created_at is None:
            event.created_at = now
        event.version += 1
        event.updated_at = now

    def _item_to_event(self, item: dict) -> Optional[Event]:
        """
        Convert DynamoDB item to Event object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Event object or None if conversion fails
        """
        try:
            return Event(
                id=int(item['id']),
                title=item.get('title', ''),
                description=item.get('description'),
                url=item.get('url'),
                rrule=item.get('rrule'),
                start_time=_parse_datetime(item.get('start_time')),
                end_time=_parse_datetime(item.get('end_time')),
                venue_id=_optional_int(item.get('venue_id')),
                source_id=_optional_int(item.get('source_id')),
                duplicate_of_id=_optional_int(item.get('duplicate_of_id')),
                version=int(item.get('version', 0)),
                created_at=_parse_datetime(item.get('created_at')),
                updated_at=_parse_datetime(item.get('updated_at')),
                venue_details=item.get('venue_details'),
                locked=bool(item.get('locked', False)),
                tags=set(item.get('tags', [])),
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to Event: {e}")
            return None

    def _event_to_item(self, event: Event) -> dict:
        """
        Convert Event object to DynamoDB item.

        Stored values are written as assigned, before read projections.

        Args:
            event: Event object

        Returns:
            DynamoDB item dictionary
        """
        item = {
            'id': event.id,
            'title': raw_attribute(event, 'title') or '',
            'start_time': event.start_time.isoformat(),
            'version': event.version,
            'locked': event.locked,
            'tags': sorted(event.tags),
        }

        # Add optional fields if present
        optional = {
            'description': raw_attribute(event, 'description'),
            'url': event.url,
            'rrule': event.rrule,
            'end_time': event.end_time.isoformat() if event.end_time else None,
            'venue_id': event.venue_id,
            'source_id': event.source_id,
            'duplicate_of_id': event.duplicate_of_id,
            'created_at': event.created_at.isoformat() if event.created_at else None,
            'updated_at': event.updated_at.isoformat() if event.updated_at else None,
            'venue_details': event.venue_details,
        }
        item.update({key: value for key, value in optional.items() if value is not None})

        return item


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _optional_int(value) -> Optional[int]:
    return int(value) if value is not None else None
