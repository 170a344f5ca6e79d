"""
Query-string parsing shared by the API blueprints.

Every parser raises ValueError with a message fit for a 400 response.
"""

import time
from datetime import datetime, timezone
from typing import Optional

from skyhex.config import config
from skyhex.geo.bbox import BoundingBox

# Window used when a caller gives no start time
DEFAULT_WINDOW_SECONDS = 3600


def parse_bbox(value: Optional[str]) -> BoundingBox:
    """'minLat,minLon,maxLat,maxLon', or the tracking bounds when absent."""
    if value is None or value == '':
        return config.ingestion.tracking_bounds
    return BoundingBox.parse(value)


def parse_timestamp(value: Optional[str], name: str, default: int) -> int:
    """
    Unix seconds or an ISO-8601 datetime.

    Naive datetimes are taken as UTC.
    """
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise ValueError(f'Invalid {name}: expected unix seconds or ISO-8601, got {value!r}')
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def parse_resolution(value: Optional[str]) -> int:
    if value is None or value == '':
        raise ValueError('resolution is required')
    try:
        return int(value)
    except ValueError:
        raise ValueError(f'Invalid resolution: {value!r}')


def parse_flag(value: Optional[str]) -> bool:
    return (value or 'false').lower() in ('1', 'true', 'yes')


def window_defaults() -> tuple:
    """(from, to) for the last DEFAULT_WINDOW_SECONDS."""
    now = int(time.time())
    return now - DEFAULT_WINDOW_SECONDS, now
