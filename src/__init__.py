"""
Spot Price Exporter - electricity spot prices as Prometheus metrics

Fetches hourly spot prices per grid region from an upstream pricing API,
caches them and exposes the current price as a gauge plus a JSON forecast.

Main components:
- Price source with pluggable upstream parsers
- Region cache with single-flight refresh and failure backoff
- Prometheus collector and forecast projector
- Domain exceptions for clear error handling
"""

__version__ = "1.0.0"
