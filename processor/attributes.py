"""Field normalization for event attributes.

Each normalized attribute is a raw stored value plus an optional read
projection (applied on every read) and an optional write normalizer
(applied on every assignment). A write normalizer that raises ValueError
does not propagate: the attribute is cleared and "is invalid" is recorded
against the field on the owning object's ``errors``.
"""
import re
from datetime import date, datetime, tzinfo
from typing import Any, Callable, Optional

from dateutil import parser as date_parser

from processor.settings import get_settings

INVALID_MESSAGE = 'is invalid'

SCHEME_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')


def strip_title(raw: Any) -> str:
    """Return the title without surrounding whitespace."""
    return '' if raw is None else str(raw).strip()


def normalize_newlines(raw: Any) -> str:
    """Return text with carriage returns converted to line feeds."""
    if raw is None:
        return ''
    return str(raw).replace('\r\n', '\n').replace('\r', '\n')


def prefix_url(value: Any, scheme: Optional[str] = None) -> Any:
    """
    Prefix a URL with the default scheme when it has none.

    Args:
        value: URL as entered
        scheme: Scheme to prefix, including '://' (default: configured scheme)

    Returns:
        The prefixed URL, or the value unchanged when empty or None
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value or SCHEME_PATTERN.match(value):
        return value
    if scheme is None:
        scheme = get_settings().default_url_scheme
    return f"{scheme}{value}"


def time_for(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Coerce a time-like value to an aware datetime in the configured zone.

    Accepts a datetime, a date, a string, a list or tuple of strings (joined
    with a space) or None. Naive values are taken to be in the zone.

    Args:
        value: Value to coerce
        tz: Zone to use (default: configured time zone)

    Returns:
        Aware datetime, or None for empty input

    Raises:
        ValueError: If the value cannot be parsed as a time or falls outside
            the range representable in the zone
    """
    if tz is None:
        tz = get_settings().time_zone

    if isinstance(value, (list, tuple)):
        value = ' '.join(str(part) for part in value)

    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Unparseable time value: {value!r}") from e
    else:
        raise ValueError(f"Unsupported time value: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    try:
        return parsed.astimezone(tz)
    except OverflowError as e:
        raise ValueError(f"Time value out of range: {value!r}") from e


class NormalizedAttribute:
    """Descriptor applying a read projection and a write normalizer."""

    def __init__(
        self,
        read: Optional[Callable[[Any], Any]] = None,
        write: Optional[Callable[[Any], Any]] = None,
        default: Any = None,
    ):
        self.read = read
        self.write = write
        self.default = default
        self.name = None
        self.storage_name = None

    def __set_name__(self, owner, name):
        self.name = name
        self.storage_name = f"_{name}"

    def __get__(self, instance, owner=None):
        if instance is None:
            return self.default
        raw = self.raw(instance)
        return self.read(raw) if self.read else raw

    def __set__(self, instance, value):
        if self.write is not None:
            try:
                value = self.write(value)
            except ValueError:
                instance.errors.add(self.name, INVALID_MESSAGE)
                value = None
            else:
                instance.errors.discard(self.name, INVALID_MESSAGE)
        instance.__dict__[self.storage_name] = value

    def raw(self, instance) -> Any:
        """Return the stored value without the read projection."""
        return instance.__dict__.get(self.storage_name, self.default)


def raw_attribute(obj: Any, name: str) -> Any:
    """Return the stored value of an attribute, bypassing any projection."""
    descriptor = vars(type(obj)).get(name)
    if isinstance(descriptor, NormalizedAttribute):
        return descriptor.raw(obj)
    return getattr(obj, name)
