"""
Component wiring for the Spot Price Exporter.
Builds the price source, cache, collector and projector from settings.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
import pytz
from prometheus_client import CollectorRegistry, Counter, GCCollector, PlatformCollector, ProcessCollector

from src.config import Settings
from src.services.forecast import ForecastProjector
from src.services.parsers import build_parser
from src.services.price_collector import PriceCollector
from src.services.price_source import PriceSource
from src.services.region_cache import RegionCache
from src.utils.time_utils import get_timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Exporter:
    """All long-lived components of one exporter process."""

    settings: Settings
    tz: pytz.BaseTzInfo
    source: PriceSource
    cache: RegionCache
    collector: PriceCollector
    projector: ForecastProjector
    price_registry: CollectorRegistry
    runtime_registry: CollectorRegistry
    http_requests: Counter


def build_exporter(
    config: Settings,
    transport: Optional[httpx.BaseTransport] = None,
    clock: Callable[[], datetime] = _utcnow,
    source: Optional[PriceSource] = None,
) -> Exporter:
    """
    Create the exporter components for the given settings.

    Price metrics and process/runtime metrics live in two separate
    registries so a price scrape never pays for runtime collectors and
    vice versa.
    """
    tz = get_timezone(config.timezone)
    regions = config.region_list

    if source is None:
        source = PriceSource(
            url_template=config.upstream_url_template,
            tz=tz,
            parser=build_parser(
                config.upstream_schema,
                timestamp_key=config.upstream_timestamp_key,
                price_key=config.upstream_price_key,
                items_key=config.upstream_items_key,
            ),
            timeout=config.request_timeout,
            horizon_days=config.forecast_horizon_days,
            transport=transport,
            clock=clock,
            label_tz=get_timezone(config.upstream_timezone),
        )

    cache = RegionCache(
        source,
        refresh_interval=config.refresh_interval,
        retry_backoff_base=config.retry_backoff_base,
        retry_backoff_max=config.retry_backoff_max,
        clock=clock,
    )

    price_registry = CollectorRegistry()
    collector = PriceCollector(
        cache,
        regions,
        tz,
        registry=price_registry,
        namespace=config.metric_namespace,
        unit=config.price_unit,
        timeout=config.request_timeout,
        clock=clock,
    )
    projector = ForecastProjector(
        cache,
        regions,
        tz,
        unit=config.price_unit,
        timeout=config.request_timeout,
        clock=clock,
    )

    runtime_registry = CollectorRegistry()
    ProcessCollector(registry=runtime_registry)
    PlatformCollector(registry=runtime_registry)
    GCCollector(registry=runtime_registry)
    http_requests = Counter(
        "exporter_http_requests",
        "HTTP requests served by the exporter, by handler and status code.",
        ["handler", "code"],
        registry=runtime_registry,
    )

    return Exporter(
        settings=config,
        tz=tz,
        source=source,
        cache=cache,
        collector=collector,
        projector=projector,
        price_registry=price_registry,
        runtime_registry=runtime_registry,
        http_requests=http_requests,
    )
