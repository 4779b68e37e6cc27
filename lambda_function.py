"""AWS Lambda handler for importing community events from source feeds."""
import json
import logging
import time
from typing import Dict, Any

from processor.event_processor import EventProcessor
from processor.settings import get_settings
from scraper.feed_scraper import FeedScraper
from storage.dynamodb_manager import DynamoDBEventStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _error_response(message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Import events for one source feed.

    The payload either names a feed to scrape (``source_url``) or carries
    raw events directly (``events``). ``source_id`` links the imported
    events to their source.

    Args:
        event: Invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and import statistics
    """
    settings = get_settings()

    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    source_id = event.get('source_id')
    source_url = event.get('source_url')
    logger.info(
        "Lambda execution started",
        extra={
            'table_name': settings.table_name,
            'source_id': source_id,
            'source_url': source_url
        }
    )

    try:
        store = DynamoDBEventStore(table_name=settings.table_name)
        processor = EventProcessor(store=store)

        if source_url:
            try:
                scraper = FeedScraper(timeout=settings.timeout_seconds)
                raw_events = scraper.fetch_events(source_url)
            except Exception as e:
                logger.error(
                    f"Failed to fetch source feed after retries: {str(e)}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                return _error_response('Failed to fetch source feed', e, start_time)
        else:
            raw_events = event.get('events', [])

        logger.info(f"Importing {len(raw_events)} raw events")
        result = processor.import_events(raw_events, source_id=source_id)

        duration = time.time() - start_time
        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'events_created': result.created,
                'events_squashed': result.squashed,
                'events_invalid': result.invalid,
                'errors': result.errors
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Import completed successfully',
                'statistics': {
                    'raw_events_received': len(raw_events),
                    'events_created': result.created,
                    'events_squashed': result.squashed,
                    'events_invalid': result.invalid,
                    'duration_seconds': round(duration, 2)
                },
                'squashed': {str(k): v for k, v in result.squashes.items()},
                'errors': result.errors
            })
        }

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response('Import failed', e, start_time)
