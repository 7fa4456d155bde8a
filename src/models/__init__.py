"""
Data models package for the Spot Price Exporter.
Contains Pydantic models for price data and API responses.
"""

from .price import ForecastEntry, ForecastResponse, HealthResponse, PricePoint, RegionPriceSet

__all__ = [
    "PricePoint",
    "RegionPriceSet",
    "ForecastEntry",
    "ForecastResponse",
    "HealthResponse",
]
