"""
API package for the Spot Price Exporter.
Contains FastAPI route handlers for metrics, forecast and health endpoints.
"""

from .routes import router

__all__ = [
    "router",
]
