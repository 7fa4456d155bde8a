"""
Time utility functions for hour bucketing in a civil timezone.
Handles daylight-saving transitions by working on absolute instants.
"""

from datetime import datetime, timedelta

import pytz

from src.exceptions import BucketingError, ConfigurationError

BUCKET_WIDTH = timedelta(hours=1)


def get_timezone(name: str) -> pytz.BaseTzInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ConfigurationError: If the name is not a known timezone.
    """
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ConfigurationError(f"Unknown timezone '{name}'")


def bucket_of(instant: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """
    Truncate an instant to the start of its civil hour in the given timezone.

    The result keeps the UTC offset in effect for that hour, so the two
    repeated local hours of a fall-back transition stay distinct buckets.

    Args:
        instant: Timezone-aware datetime
        tz: pytz timezone defining the civil calendar

    Returns:
        Timezone-aware datetime at minute, second and microsecond zero

    Raises:
        BucketingError: If the instant is naive or cannot be converted
    """
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise BucketingError(f"Cannot bucket naive timestamp {instant.isoformat()}")

    try:
        local = instant.astimezone(tz)
        start = local.replace(minute=0, second=0, microsecond=0)
        return tz.normalize(start)
    except (OverflowError, ValueError) as e:
        raise BucketingError(f"Cannot bucket timestamp {instant.isoformat()}: {e}")


def current_bucket(now: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Bucket containing the given 'now'."""
    return bucket_of(now, tz)


def localize_wall_clock(naive: datetime, tz: pytz.BaseTzInfo, occurrence: int = 0) -> datetime:
    """
    Attach a timezone to a naive local wall-clock label.

    During a fall-back transition a label like 03:00 appears twice; the first
    occurrence is the daylight-saving instant, any later one standard time.

    Raises:
        BucketingError: If the label falls in a spring-forward gap or out of range
    """
    try:
        return tz.localize(naive, is_dst=None)
    except pytz.AmbiguousTimeError:
        return tz.localize(naive, is_dst=occurrence == 0)
    except pytz.NonExistentTimeError:
        raise BucketingError(f"Local time {naive.isoformat()} does not exist in {tz.zone}")
    except (OverflowError, ValueError) as e:
        raise BucketingError(f"Cannot localize {naive.isoformat()}: {e}")
