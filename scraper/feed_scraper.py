"""Source feed scraper for hCalendar event listings."""
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class FeedScraper:
    """Fetches a source feed page and extracts hCalendar events."""

    def __init__(self, timeout: int = 30, max_retries: int = 3, base_delay: float = 1):
        """
        Initialize the feed scraper.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Number of fetch attempts (default: 3)
            base_delay: First retry delay in seconds, doubled each retry
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay

    def fetch_events(self, url: str) -> List[Dict[str, Any]]:
        """
        Fetch raw events from a source feed.

        Args:
            url: Address of the source feed page

        Returns:
            List of raw event attribute dictionaries
        """
        logger.info(f"Fetching events from source feed {url}")

        html_content = self._fetch_html(url)
        events = self.parse_events(html_content)

        logger.info(f"Successfully fetched {len(events)} events")
        return events

    def _fetch_html(self, url: str) -> str:
        """
        Fetch feed HTML with retry logic.

        Args:
            url: Address of the source feed page

        Returns:
            HTML content as string

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching feed HTML (attempt {attempt + 1}/{self.max_retries})")
                response = requests.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def parse_events(self, html_content: str) -> List[Dict[str, Any]]:
        """
        Parse hCalendar ``vevent`` blocks from HTML.

        Args:
            html_content: HTML content of a feed page

        Returns:
            List of raw event attribute dictionaries
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        events = []

        for element in soup.find_all(class_='vevent'):
            event = self._parse_vevent(element)
            if event:
                events.append(event)

        return events

    def _parse_vevent(self, element) -> Optional[Dict[str, Any]]:
        """
        Parse a single vevent element.

        Times are returned as found; the processor coerces them.

        Args:
            element: BeautifulSoup element with class ``vevent``

        Returns:
            Raw attribute dictionary, or None without a summary and start
        """
        summary = element.find(class_='summary')
        dtstart = element.find(class_='dtstart')
        if summary is None or dtstart is None:
            logger.warning("Skipping vevent without summary or dtstart")
            return None

        description = element.find(class_='description')
        dtend = element.find(class_='dtend')
        location = element.find(class_='location')
        url = element.find(class_='url')

        return {
            'title': summary.get_text(strip=True),
            'description': description.get_text() if description else None,
            'start_time': self._time_value(dtstart),
            'end_time': self._time_value(dtend) if dtend else None,
            'url': url.get('href') if url else None,
            'venue_details': location.get_text(strip=True) if location else None,
        }

    def _time_value(self, element) -> str:
        """Prefer machine-readable ``datetime``/``title`` attributes over text."""
        return (
            element.get('datetime')
            or element.get('title')
            or element.get_text(strip=True)
        )
