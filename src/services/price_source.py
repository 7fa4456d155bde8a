"""
Upstream price source - one HTTP request per region and fetch.
Downloads the region's price window, parses it and aligns it to hour buckets.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Optional

import httpx
import pytz

from src.exceptions import ParseError, TransportError, UpstreamStatusError
from src.logging_config import get_logger
from src.models.price import PricePoint, RegionPriceSet
from src.services.parsers import Observation, PriceParser
from src.utils.time_utils import bucket_of

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceSource:
    """
    Single-attempt transport adapter for the upstream pricing API.

    ``tz`` is the bucketing timezone. ``label_tz`` is the timezone the
    upstream writes naive labels and request dates in, defaulting to ``tz``.
    """

    def __init__(
        self,
        url_template: str,
        tz: pytz.BaseTzInfo,
        parser: PriceParser,
        timeout: float = 10.0,
        horizon_days: int = 1,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
        label_tz: Optional[pytz.BaseTzInfo] = None,
    ):
        self.url_template = url_template
        self.tz = tz
        self.label_tz = label_tz or tz
        self.parser = parser
        self.timeout = timeout
        self.horizon_days = horizon_days
        self._transport = transport
        self._clock = clock

    def fetch(self, region: str) -> RegionPriceSet:
        """
        Fetch and bucket the current price window for one region.

        Raises:
            TransportError: Network failure or timeout
            UpstreamStatusError: Non-success HTTP status
            ParseError: Malformed or unexpected body
            BucketingError: A timestamp that cannot be bucketed
        """
        url = self.build_url(region, self._clock().astimezone(self.label_tz).date())
        payload = self._get_json(url)
        price_set = self._to_price_set(region, self.parser.parse(payload, self.label_tz))

        logger.debug("Fetched region prices", region=region, points=len(price_set.points), url=url)
        return price_set

    def build_url(self, region: str, start_date: date) -> str:
        """Build the upstream URL for a region starting at a civil date."""
        end_date = start_date + timedelta(days=self.horizon_days)
        return self.url_template.format(
            region=region,
            start=start_date.isoformat(),
            end=end_date.isoformat(),
        )

    def _get_json(self, url: str):
        """Download and decode a JSON body."""
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}")

        if not response.is_success:
            raise UpstreamStatusError(
                f"Upstream returned HTTP {response.status_code} for {url}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Body is not valid JSON: {e}")

    def _to_price_set(self, region: str, observations: List[Observation]) -> RegionPriceSet:
        """Bucket observations; sub-hourly values in one bucket are averaged."""
        grouped = {}
        for instant, price in observations:
            grouped.setdefault(bucket_of(instant, self.tz), []).append(price)

        points = [
            PricePoint(bucket_start=bucket, price=sum(prices, Decimal(0)) / len(prices))
            for bucket, prices in sorted(grouped.items())
        ]
        return RegionPriceSet(region=region, points=points)
