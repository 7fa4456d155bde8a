"""
Forecast projection - known prices from the current hour onwards.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional

import pytz

from src.exceptions import UnknownRegionError
from src.models.price import ForecastEntry, ForecastResponse
from src.services.region_cache import RegionCache
from src.utils.time_utils import BUCKET_WIDTH, current_bucket


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ForecastProjector:
    """Builds forecast responses for the configured regions from the cache."""

    def __init__(
        self,
        cache: RegionCache,
        regions: List[str],
        tz: pytz.BaseTzInfo,
        unit: str = "",
        timeout: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cache = cache
        self.regions = list(regions)
        self.tz = tz
        self.unit = unit
        self.timeout = timeout
        self._clock = clock

    def forecast(self, regions: Optional[List[str]] = None) -> ForecastResponse:
        """
        Future prices for each requested region, starting with the current hour.

        Args:
            regions: Subset of the configured regions; all of them if omitted.

        Returns:
            ForecastResponse with one (possibly empty) list per region.

        Raises:
            UnknownRegionError: If a requested region is not configured.
        """
        requested = self._resolve(regions)
        now = self._clock()
        bucket = current_bucket(now, self.tz)
        prices = self.cache.get_many(requested, timeout=self.timeout)

        result = {}
        for region in requested:
            price_set = prices.get(region)
            points = price_set.from_bucket(bucket) if price_set is not None else []
            result[region] = [
                ForecastEntry(
                    start=point.bucket_start,
                    end=(point.bucket_start + BUCKET_WIDTH).astimezone(self.tz),
                    price=point.price,
                )
                for point in points
            ]

        return ForecastResponse(
            generated_at=now.astimezone(self.tz),
            timezone=self.tz.zone,
            unit=self.unit,
            regions=result,
        )

    def _resolve(self, regions: Optional[List[str]]) -> List[str]:
        if not regions:
            return list(self.regions)

        unknown = [region for region in regions if region not in self.regions]
        if unknown:
            raise UnknownRegionError(f"Unknown region(s): {', '.join(unknown)}")

        requested = []
        for region in regions:
            if region not in requested:
                requested.append(region)
        return requested
