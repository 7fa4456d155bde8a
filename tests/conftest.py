"""
Test configuration and fixtures for the Spot Price Exporter tests.
Contains shared fixtures and test doubles for the upstream and the clock.
"""

import threading
from collections import Counter
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List

import pytest
import pytz
from fastapi.testclient import TestClient

from src.config import Settings
from src.exporter import build_exporter
from src.main import create_app
from src.models.price import PricePoint, RegionPriceSet

HELSINKI = pytz.timezone("Europe/Helsinki")


class FakeClock:
    """Controllable replacement for datetime.now(timezone.utc)."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeSource:
    """
    Instrumented price source.

    ``results`` maps a region to a RegionPriceSet to return or an exception
    to raise. A region listed in ``gates`` blocks until its event is set.
    """

    def __init__(self, results: Dict[str, object] = None):
        self.results = dict(results or {})
        self.gates: Dict[str, threading.Event] = {}
        self.entered = threading.Event()
        self.calls = Counter()
        self._lock = threading.Lock()

    def fetch(self, region: str) -> RegionPriceSet:
        with self._lock:
            self.calls[region] += 1
        self.entered.set()

        gate = self.gates.get(region)
        if gate is not None:
            gate.wait(5)

        result = self.results.get(region)
        if isinstance(result, BaseException):
            raise result
        if result is None:
            return RegionPriceSet.empty(region)
        return result


def local_hour(year: int, month: int, day: int, hour: int, tz=HELSINKI) -> datetime:
    """Aware start of an unambiguous local hour."""
    return tz.localize(datetime(year, month, day, hour), is_dst=None)


def make_price_set(region: str, start: datetime, prices: List[str], tz=HELSINKI) -> RegionPriceSet:
    """Consecutive hourly points beginning at ``start``."""
    points = [
        PricePoint(bucket_start=tz.normalize(start + timedelta(hours=offset)), price=Decimal(price))
        for offset, price in enumerate(prices)
    ]
    return RegionPriceSet(region=region, points=points)


@pytest.fixture
def tz():
    return HELSINKI


@pytest.fixture
def clock():
    """Clock at 2025-08-07 10:20 local Helsinki time (07:20 UTC)."""
    return FakeClock(datetime(2025, 8, 7, 7, 20, tzinfo=timezone.utc))


@pytest.fixture
def sample_price_set():
    """Region A priced 09:00-11:00 local on 2025-08-07."""
    return make_price_set("A", local_hour(2025, 8, 7, 9), ["38.50", "41.37", "-0.05"])


@pytest.fixture
def fake_source(sample_price_set):
    return FakeSource({"A": sample_price_set})


@pytest.fixture
def test_settings():
    return Settings(
        regions="A,B",
        timezone="Europe/Helsinki",
        price_unit="öre/kWh",
        metric_namespace="electricity",
        request_timeout=2.0,
    )


@pytest.fixture
def exporter(test_settings, fake_source, clock):
    return build_exporter(test_settings, clock=clock, source=fake_source)


@pytest.fixture
def test_app(test_settings, exporter):
    """
    Create a test instance of the FastAPI application.
    """
    return create_app(test_settings, exporter)


@pytest.fixture
def test_client(test_app):
    """
    Create a test client for the FastAPI application.
    """
    return TestClient(test_app)
