"""Unit tests for the source feed scraper."""
from unittest.mock import patch

import pytest
import responses
from requests.exceptions import RequestException, Timeout

from processor.event_processor import EventProcessor
from scraper.feed_scraper import FeedScraper

FEED_URL = "https://calendar.example.org/events"

FEED_HTML = """
<html>
    <body>
        <div class="vevent">
            <h3 class="summary"> Farmers Market </h3>
            <abbr class="dtstart" title="2030-05-04T09:00:00">May 4, 9am</abbr>
            <abbr class="dtend" title="2030-05-04T13:00:00">1pm</abbr>
            <div class="description">Fresh produce\r\nand crafts</div>
            <span class="location">Main Street Plaza</span>
            <a class="url" href="calendar.example.org/market">Details</a>
        </div>
        <div class="vevent">
            <h3 class="summary">Book Club</h3>
            <time class="dtstart" datetime="2030-05-06 19:00">Monday evening</time>
        </div>
        <div class="vevent">
            <h3 class="summary">No start time</h3>
        </div>
    </body>
</html>
"""


@pytest.fixture(autouse=True)
def no_sleep():
    """Skip backoff delays between retries."""
    with patch('scraper.feed_scraper.time.sleep') as sleep:
        yield sleep


class TestFeedScraper:
    """Test cases for FeedScraper."""

    def test_parse_events(self):
        """Test parsing hCalendar entries from a feed page."""
        events = FeedScraper().parse_events(FEED_HTML)

        assert len(events) == 2
        market = events[0]
        assert market['title'] == "Farmers Market"
        assert market['start_time'] == "2030-05-04T09:00:00"
        assert market['end_time'] == "2030-05-04T13:00:00"
        assert market['url'] == "calendar.example.org/market"
        assert market['venue_details'] == "Main Street Plaza"

        book_club = events[1]
        assert book_club['start_time'] == "2030-05-06 19:00"
        assert book_club['end_time'] is None
        assert book_club['description'] is None

    def test_parsed_events_normalize(self):
        """Test that parsed events pass through normalization."""
        events = FeedScraper().parse_events(FEED_HTML)

        processed = EventProcessor().process_events(events)

        assert len(processed) == 2
        assert processed[0].url == "http://calendar.example.org/market"
        assert "\r" not in processed[0].description

    @responses.activate
    def test_fetch_events_success(self):
        """Test successful feed fetch."""
        responses.add(responses.GET, FEED_URL, body=FEED_HTML, status=200)

        events = FeedScraper(timeout=30).fetch_events(FEED_URL)

        assert [e['title'] for e in events] == ["Farmers Market", "Book Club"]
        assert len(responses.calls) == 1

    @responses.activate
    def test_fetch_events_with_retry_success(self, no_sleep):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.GET, FEED_URL, body="Server Error", status=500)
        responses.add(responses.GET, FEED_URL, body="Server Error", status=500)
        responses.add(responses.GET, FEED_URL, body=FEED_HTML, status=200)

        events = FeedScraper(timeout=30).fetch_events(FEED_URL)

        assert len(events) == 2
        assert len(responses.calls) == 3
        assert [c.args[0] for c in no_sleep.call_args_list] == [1, 2]

    @responses.activate
    def test_fetch_events_all_retries_fail(self):
        """Test that the last error is raised when every retry fails."""
        for _ in range(3):
            responses.add(responses.GET, FEED_URL, body="Server Error", status=500)

        with pytest.raises(RequestException):
            FeedScraper(timeout=30).fetch_events(FEED_URL)

        assert len(responses.calls) == 3

    @responses.activate
    def test_fetch_events_timeout(self):
        """Test handling of request timeouts."""
        for _ in range(3):
            responses.add(responses.GET, FEED_URL, body=Timeout("Request timed out"))

        with pytest.raises(Timeout):
            FeedScraper(timeout=5).fetch_events(FEED_URL)
