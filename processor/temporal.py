"""Temporal predicates and date-window scopes for events.

All day boundaries are midnight of the relevant calendar day in the
configured time zone. Reference dates passed in are assumed to already be
dates in that zone.
"""
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Iterable, List, Optional

from processor.models import Event
from processor.settings import get_settings

# Grace period applied by is_old when an event has no end time
ONE_HOUR = timedelta(hours=1)


def _zone(tz: Optional[tzinfo]) -> tzinfo:
    return tz if tz is not None else get_settings().time_zone


def today_in_zone(tz: Optional[tzinfo] = None) -> date:
    """Return the current calendar date in the configured zone."""
    return datetime.now(_zone(tz)).date()


def beginning_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """Return midnight at the start of ``day`` in the configured zone."""
    if isinstance(day, datetime):
        day = day.astimezone(_zone(tz)).date() if day.tzinfo else day.date()
    return datetime.combine(day, time.min, tzinfo=_zone(tz))


def is_current(event: Event, today: Optional[date] = None, tz: Optional[tzinfo] = None) -> bool:
    """Is the event ending (or starting, without an end) today or later?"""
    today = today or today_in_zone(tz)
    return (event.end_time or event.start_time) >= beginning_of_day(today, tz)


def is_old(event: Event, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> bool:
    """Did the event finish before the start of the current day?"""
    now = now or datetime.now(_zone(tz))
    finished = event.end_time or event.start_time + ONE_HOUR
    return finished <= beginning_of_day(now, tz)


def is_ongoing(event: Event, today: Optional[date] = None, tz: Optional[tzinfo] = None) -> bool:
    """Did the event start before today but end today or later?"""
    midnight = beginning_of_day(today or today_in_zone(tz), tz)
    return (
        event.start_time < midnight
        and event.end_time is not None
        and event.end_time >= midnight
    )


def duration(event: Event) -> timedelta:
    if event.start_time and event.end_time:
        return event.end_time - event.start_time
    return timedelta(0)


def is_future(event: Event, today: Optional[date] = None, tz: Optional[tzinfo] = None) -> bool:
    """Does the event start on or after ``today``, or run past its start?"""
    midnight = beginning_of_day(today or today_in_zone(tz), tz)
    return event.start_time >= midnight or (
        event.end_time is not None and event.end_time > midnight
    )


def is_past(event: Event, today: Optional[date] = None, tz: Optional[tzinfo] = None) -> bool:
    midnight = beginning_of_day(today or today_in_zone(tz), tz)
    return event.start_time < midnight


def is_within(event: Event, start_date: date, end_date: date, tz: Optional[tzinfo] = None) -> bool:
    """
    Check whether an event falls inside a date window.

    The window is [start_date, end_date); when both dates are the same it
    covers that single day.

    Args:
        event: Event to classify
        start_date: First day of the window
        end_date: Day after the window, or the single day

    Returns:
        True if the event is within the window
    """
    if start_date == end_date:
        end_date = end_date + timedelta(days=1)
    return is_future(event, start_date, tz) and is_past(event, end_date, tz)


def _by_start(event: Event) -> datetime:
    return event.start_time


def after_date(events: Iterable[Event], day: date, tz: Optional[tzinfo] = None) -> List[Event]:
    """Events starting at or after the beginning of ``day``, by start time."""
    midnight = beginning_of_day(day, tz)
    return sorted((e for e in events if e.start_time >= midnight), key=_by_start)


def on_or_after_date(events: Iterable[Event], day: date, tz: Optional[tzinfo] = None) -> List[Event]:
    return sorted((e for e in events if is_future(e, day, tz)), key=_by_start)


def before_date(events: Iterable[Event], day: date, tz: Optional[tzinfo] = None) -> List[Event]:
    return sorted((e for e in events if is_past(e, day, tz)), key=_by_start, reverse=True)


def future(events: Iterable[Event], today: Optional[date] = None, tz: Optional[tzinfo] = None) -> List[Event]:
    return on_or_after_date(events, today or today_in_zone(tz), tz)


def past(events: Iterable[Event], today: Optional[date] = None, tz: Optional[tzinfo] = None) -> List[Event]:
    return before_date(events, today or today_in_zone(tz), tz)


def within_dates(
    events: Iterable[Event], start_date: date, end_date: date, tz: Optional[tzinfo] = None
) -> List[Event]:
    return sorted((e for e in events if is_within(e, start_date, end_date, tz)), key=_by_start)


def ordered_by_ui_field(
    events: Iterable[Event],
    ui_field: Optional[str],
    venue_title: Optional[Callable[[Optional[int]], Optional[str]]] = None,
) -> List[Event]:
    """
    Order events by a sort name used in listing views.

    Args:
        events: Events to order
        ui_field: 'name', 'venue', or anything else for start time only
        venue_title: Looks up a venue title by venue id (needed for 'venue')

    Returns:
        Ordered list, with start time as the final sort key
    """
    if ui_field == 'name':
        return sorted(events, key=lambda e: (e.title.lower(), e.start_time))
    if ui_field == 'venue' and venue_title is not None:
        return sorted(
            events,
            key=lambda e: ((venue_title(e.venue_id) or '').lower(), e.start_time),
        )
    return sorted(events, key=_by_start)
