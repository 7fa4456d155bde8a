"""
Upstream body parsers.

Each parser turns a decoded JSON body into a list of ``(instant, price)``
observations with timezone-aware instants. Bucketing and de-duplication
happen afterwards in the price source, so parsers only deal with the
upstream schema.
"""

from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Protocol, Tuple

import pytz

from src.exceptions import BucketingError, ConfigurationError, ParseError
from src.utils.time_utils import localize_wall_clock

Observation = Tuple[datetime, Decimal]


class PriceParser(Protocol):
    """Protocol for upstream body parsers."""

    def parse(self, payload: Any, tz: pytz.BaseTzInfo) -> List[Observation]:
        """Return the observations contained in ``payload``."""
        ...  # pragma: no cover


def _parse_price(value: Any) -> Decimal:
    """Parse a numeric price, accepting decimal commas ('1,09')."""
    if isinstance(value, bool) or value is None:
        raise ParseError(f"Invalid price value {value!r}")
    try:
        price = Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        raise ParseError(f"Invalid price value {value!r}")
    if not price.is_finite():
        raise ParseError(f"Invalid price value {value!r}")
    return price


class _WallClockResolver:
    """Localizes naive labels, counting repeats to split fall-back hours."""

    def __init__(self, tz: pytz.BaseTzInfo):
        self.tz = tz
        self._seen = Counter()

    def resolve(self, naive: datetime) -> datetime:
        occurrence = self._seen[naive]
        self._seen[naive] += 1
        return localize_wall_clock(naive, self.tz, occurrence)


def _parse_iso(value: str, resolver: _WallClockResolver) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ParseError(f"Invalid timestamp {value!r}")
    if parsed.tzinfo is None:
        return resolver.resolve(parsed)
    return parsed


class VattenfallParser:
    """
    Parser for the Vattenfall spot price API.

    Body format:
        [{"TimeStamp": "2025-10-26T03:00:00", "Value": 41.37, "PriceArea": "SN3",
          "Unit": "öre/kWh"}, ...]

    Timestamps are naive local times in the market timezone.
    """

    timestamp_key = "TimeStamp"
    price_key = "Value"

    def parse(self, payload: Any, tz: pytz.BaseTzInfo) -> List[Observation]:
        if not isinstance(payload, list):
            raise ParseError(f"Expected a JSON array, got {type(payload).__name__}")

        resolver = _WallClockResolver(tz)
        observations = []
        for row in payload:
            if not isinstance(row, dict):
                raise ParseError(f"Expected an object per price row, got {type(row).__name__}")
            try:
                raw_timestamp = row[self.timestamp_key]
                raw_price = row[self.price_key]
            except KeyError as e:
                raise ParseError(f"Missing field {e} in price row")
            if not isinstance(raw_timestamp, str):
                raise ParseError(f"Invalid timestamp {raw_timestamp!r}")

            observations.append((_parse_iso(raw_timestamp, resolver), _parse_price(raw_price)))

        return observations


class SeriesParser:
    """
    Parser for generic ``(timestamp, price)`` series.

    Accepts either a JSON array or an object holding the array under
    ``items_key``. Each item is a ``[timestamp, price]`` pair or an object
    with ``timestamp_key`` and ``price_key``. Timestamps may be ISO 8601
    strings (with or without offset) or epoch seconds.
    """

    def __init__(self, timestamp_key: str = "timestamp", price_key: str = "price",
                 items_key: Optional[str] = None):
        self.timestamp_key = timestamp_key
        self.price_key = price_key
        self.items_key = items_key

    def parse(self, payload: Any, tz: pytz.BaseTzInfo) -> List[Observation]:
        items = payload
        if self.items_key is not None:
            if not isinstance(payload, dict) or self.items_key not in payload:
                raise ParseError(f"Expected an object with key '{self.items_key}'")
            items = payload[self.items_key]
        if not isinstance(items, list):
            raise ParseError(f"Expected a JSON array, got {type(items).__name__}")

        resolver = _WallClockResolver(tz)
        observations = []
        for item in items:
            raw_timestamp, raw_price = self._split(item)
            observations.append((self._parse_timestamp(raw_timestamp, resolver), _parse_price(raw_price)))
        return observations

    def _split(self, item: Any) -> Tuple[Any, Any]:
        if isinstance(item, (list, tuple)):
            if len(item) != 2:
                raise ParseError(f"Expected a [timestamp, price] pair, got {len(item)} values")
            return item[0], item[1]
        if isinstance(item, dict):
            try:
                return item[self.timestamp_key], item[self.price_key]
            except KeyError as e:
                raise ParseError(f"Missing field {e} in series item")
        raise ParseError(f"Unexpected series item {type(item).__name__}")

    def _parse_timestamp(self, value: Any, resolver: _WallClockResolver) -> datetime:
        if isinstance(value, str):
            return _parse_iso(value, resolver)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return datetime.fromtimestamp(value, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                raise BucketingError(f"Epoch timestamp {value!r} is out of range")
        raise ParseError(f"Invalid timestamp {value!r}")


def build_parser(schema: str, timestamp_key: str = "timestamp", price_key: str = "price",
                 items_key: Optional[str] = None) -> PriceParser:
    """
    Create the parser for a configured upstream schema.

    Raises:
        ConfigurationError: If the schema name is unknown
    """
    if schema == "vattenfall":
        return VattenfallParser()
    if schema == "series":
        return SeriesParser(timestamp_key=timestamp_key, price_key=price_key, items_key=items_key)
    raise ConfigurationError(f"Unknown upstream schema '{schema}'")
