"""
Prometheus collector exposing the current spot price per region.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, List

import pytz
from prometheus_client import CollectorRegistry
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric

from src.logging_config import get_logger
from src.services.region_cache import RegionCache
from src.utils.time_utils import current_bucket

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceCollector:
    """
    Custom collector registered into an explicitly passed registry.

    Every ``collect()`` looks up all configured regions concurrently and emits
    one price sample per region whose cache holds the current hour. Regions
    without such a point are left out of the pass.
    """

    def __init__(
        self,
        cache: RegionCache,
        regions: List[str],
        tz: pytz.BaseTzInfo,
        registry: CollectorRegistry,
        namespace: str = "electricity",
        unit: str = "",
        timeout: float = 10.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cache = cache
        self.regions = list(regions)
        self.tz = tz
        self.timeout = timeout
        self.unit = unit
        self._clock = clock
        self._price_name = f"{namespace}_spot_price"
        self._fetched_name = f"{namespace}_spot_price_last_fetch_timestamp_seconds"
        self._errors_name = f"{namespace}_spot_price_fetch_errors"
        registry.register(self)

    def describe(self) -> Iterable[Metric]:
        return self._families()

    def collect(self) -> Iterable[Metric]:
        price, fetched, errors = self._families()
        bucket = current_bucket(self._clock(), self.tz)
        prices = self.cache.get_many(self.regions, timeout=self.timeout)

        for region in self.regions:
            price_set = prices.get(region)
            point = price_set.at(bucket) if price_set is not None else None
            if point is None:
                logger.debug("No price for current hour", region=region, bucket=bucket.isoformat())
            else:
                price.add_metric([region], float(point.price))

            entry = self.cache.entry(region)
            if entry is not None and entry.fetched_at is not None:
                fetched.add_metric([region], entry.fetched_at.timestamp())

        for region, kind, count in self.cache.error_counts():
            errors.add_metric([region, kind], count)

        return [price, fetched, errors]

    def _families(self) -> List[Metric]:
        unit = f" in {self.unit}" if self.unit else ""
        return [
            GaugeMetricFamily(self._price_name, f"Spot price for the current hour{unit}.", labels=["region"]),
            GaugeMetricFamily(
                self._fetched_name,
                "Unix time of the last successful upstream fetch.",
                labels=["region"],
            ),
            CounterMetricFamily(
                self._errors_name,
                "Failed upstream fetch attempts by failure kind.",
                labels=["region", "kind"],
            ),
        ]
