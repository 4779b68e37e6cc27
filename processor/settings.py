"""Runtime configuration read from environment variables."""
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIME_ZONE = 'America/Los_Angeles'
DEFAULT_URL_SCHEME = 'http://'

# Used when no blacklist file is configured
DEFAULT_BLACKLIST = [
    r'\bcialis\b',
    r'\bviagra\b',
    r'\bonline casino\b',
]


@dataclass
class Settings:
    """Configuration shared by the normalizer, predicates and pipeline."""
    time_zone: ZoneInfo = field(default_factory=lambda: ZoneInfo(DEFAULT_TIME_ZONE))
    default_url_scheme: str = DEFAULT_URL_SCHEME
    blacklist: List[str] = field(default_factory=lambda: list(DEFAULT_BLACKLIST))
    table_name: str = 'community-events'
    log_level: str = 'INFO'
    timeout_seconds: int = 30


def load_blacklist(path: Optional[str]) -> List[str]:
    """
    Read blacklist patterns, one regular expression per line.

    Blank lines and lines starting with '#' are ignored.

    Args:
        path: Path to the blacklist file, or None for the defaults

    Returns:
        List of pattern strings
    """
    if not path:
        return list(DEFAULT_BLACKLIST)

    with open(path, encoding='utf-8') as handle:
        patterns = [
            line.strip() for line in handle
            if line.strip() and not line.strip().startswith('#')
        ]

    logger.info(f"Loaded {len(patterns)} blacklist patterns from {path}")
    return patterns


def load_settings() -> Settings:
    """
    Build Settings from the process environment.

    Returns:
        Settings instance
    """
    tz_name = os.environ.get('EVENTS_TIME_ZONE', DEFAULT_TIME_ZONE)
    try:
        time_zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(
            f"Invalid time zone '{tz_name}', falling back to {DEFAULT_TIME_ZONE}: {e}"
        )
        time_zone = ZoneInfo(DEFAULT_TIME_ZONE)

    return Settings(
        time_zone=time_zone,
        default_url_scheme=os.environ.get('DEFAULT_URL_SCHEME', DEFAULT_URL_SCHEME),
        blacklist=load_blacklist(os.environ.get('BLACKLIST_FILE')),
        table_name=os.environ.get('TABLE_NAME', 'community-events'),
        log_level=os.environ.get('LOG_LEVEL', 'INFO'),
        timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30')),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return load_settings()
