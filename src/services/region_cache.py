"""
Per-region price cache with freshness, failure backoff and single-flight refresh.

Each region has at most one upstream fetch in flight; concurrent callers for
the same region wait for that fetch instead of starting their own. Entries are
replaced wholesale after every attempt, and a failed refresh keeps the last
good prices.
"""

import threading
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.exceptions import FetchError
from src.logging_config import get_logger
from src.models.price import RegionPriceSet

logger = get_logger(__name__)

MAX_BACKOFF_EXPONENT = 32


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """Latest fetch outcome for one region."""

    region: str
    prices: RegionPriceSet
    fetched_at: Optional[datetime] = None
    error: Optional[FetchError] = None
    failed_at: Optional[datetime] = None
    failures: int = 0


class RegionCache:
    """Caches RegionPriceSet values per region in front of a price source."""

    def __init__(
        self,
        source,
        refresh_interval: float = 3600.0,
        retry_backoff_base: float = 30.0,
        retry_backoff_max: float = 900.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.source = source
        self.refresh_interval = timedelta(seconds=refresh_interval)
        self.retry_backoff_base = retry_backoff_base
        self.retry_backoff_max = retry_backoff_max
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, Future] = {}
        self._error_counts: Counter = Counter()

    def get(self, region: str) -> RegionPriceSet:
        """
        Return the prices for a region, refreshing them first when stale.

        Never raises fetch errors; a failed refresh yields the previous
        (possibly empty) prices and records the error on the entry.
        """
        with self._lock:
            entry = self._entries.get(region)
            if not self._needs_fetch(entry, self._clock()):
                logger.debug("Serving cached prices", region=region)
                return entry.prices

            flight = self._inflight.get(region)
            leader = flight is None
            if leader:
                flight = Future()
                self._inflight[region] = flight

        if leader:
            self._refresh(region, flight)
        return flight.result()

    def get_many(self, regions: Iterable[str], timeout: Optional[float] = None) -> Dict[str, RegionPriceSet]:
        """
        Look up several regions concurrently, one worker per region.

        Regions still loading when ``timeout`` elapses are left out of the
        result; their fetches keep running and still update the cache.
        """
        regions = list(regions)
        if not regions:
            return {}

        pool = ThreadPoolExecutor(max_workers=len(regions), thread_name_prefix="region-cache")
        try:
            futures = {pool.submit(self.get, region): region for region in regions}
            done, not_done = wait(futures, timeout=timeout)
        finally:
            pool.shutdown(wait=False)

        results = {}
        for future in done:
            region = futures[future]
            try:
                results[region] = future.result()
            except Exception:
                logger.exception("Region lookup crashed", region=region)
        for future in not_done:
            logger.warning("Region lookup abandoned after deadline", region=futures[future], timeout=timeout)
        return results

    def entry(self, region: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(region)

    def entries(self) -> Dict[str, CacheEntry]:
        with self._lock:
            return dict(self._entries)

    def last_error(self, region: str) -> Optional[FetchError]:
        entry = self.entry(region)
        return entry.error if entry else None

    def error_counts(self) -> List[Tuple[str, str, int]]:
        """Failed fetch attempts as ``(region, kind, count)`` triples."""
        with self._lock:
            return [(region, kind, count) for (region, kind), count in sorted(self._error_counts.items())]

    def _needs_fetch(self, entry: Optional[CacheEntry], now: datetime) -> bool:
        if entry is None:
            return True
        if entry.fetched_at is not None and now - entry.fetched_at < self.refresh_interval:
            return False
        if entry.failures and now < self._retry_at(entry):
            return False
        return True

    def _retry_at(self, entry: CacheEntry) -> datetime:
        # Exponent clamped so long outages cannot overflow the float delay.
        exponent = min(entry.failures - 1, MAX_BACKOFF_EXPONENT)
        delay = min(self.retry_backoff_base * 2 ** exponent, self.retry_backoff_max)
        return entry.failed_at + timedelta(seconds=delay)

    def _refresh(self, region: str, flight: Future) -> None:
        """Run one upstream fetch and publish the outcome to all waiters."""
        try:
            try:
                prices = self.source.fetch(region)
            except FetchError as e:
                entry = self._record_failure(region, e)
            else:
                entry = CacheEntry(region=region, prices=prices, fetched_at=self._clock())
                with self._lock:
                    self._entries[region] = entry
                logger.info("Refreshed region prices", region=region, points=len(prices.points))
        except BaseException as e:
            with self._lock:
                self._inflight.pop(region, None)
            flight.set_exception(e)
            raise

        with self._lock:
            self._inflight.pop(region, None)
        flight.set_result(entry.prices)

    def _record_failure(self, region: str, error: FetchError) -> CacheEntry:
        now = self._clock()
        with self._lock:
            previous = self._entries.get(region)
            if previous is None:
                previous = CacheEntry(region=region, prices=RegionPriceSet.empty(region))
            entry = replace(previous, error=error, failed_at=now, failures=previous.failures + 1)
            self._entries[region] = entry
            self._error_counts[(region, error.kind)] += 1

        logger.warning(
            "Failed to refresh region prices",
            region=region,
            kind=error.kind,
            error=str(error),
            failures=entry.failures,
            stale_points=len(entry.prices.points),
            retry_at=self._retry_at(entry).isoformat(),
        )
        return entry
