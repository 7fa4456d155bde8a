"""
Services package for the Spot Price Exporter.
Contains the price source, region cache, metrics collector and forecast projector.
"""

from .forecast import ForecastProjector
from .parsers import SeriesParser, VattenfallParser, build_parser
from .price_collector import PriceCollector
from .price_source import PriceSource
from .region_cache import CacheEntry, RegionCache

__all__ = [
    "PriceSource",
    "VattenfallParser",
    "SeriesParser",
    "build_parser",
    "RegionCache",
    "CacheEntry",
    "PriceCollector",
    "ForecastProjector",
]
