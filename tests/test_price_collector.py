"""
Unit tests for the Prometheus price collector.
"""

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from src.exceptions import TransportError, UpstreamStatusError
from src.services.price_collector import PriceCollector
from src.services.region_cache import RegionCache

from conftest import FakeSource, local_hour, make_price_set


def _collector(source, clock, tz, regions=("A", "B")):
    registry = CollectorRegistry()
    cache = RegionCache(source, clock=clock)
    collector = PriceCollector(
        cache,
        list(regions),
        tz,
        registry=registry,
        namespace="electricity",
        unit="öre/kWh",
        timeout=5,
        clock=clock,
    )
    return collector, registry


def _samples(collector, name):
    families = {family.name: family for family in collector.collect()}
    return {
        tuple(sorted(sample.labels.items())): sample.value
        for sample in families[name].samples
        if sample.name in (name, f"{name}_total")
    }


class TestDescribe:
    """Tests for registration metadata."""

    def test_registration_does_not_fetch(self, fake_source, clock, tz):
        _collector(fake_source, clock, tz)
        assert sum(fake_source.calls.values()) == 0

    def test_describe_lists_families(self, fake_source, clock, tz):
        collector, _ = _collector(fake_source, clock, tz)
        names = [family.name for family in collector.describe()]

        assert names == [
            "electricity_spot_price",
            "electricity_spot_price_last_fetch_timestamp_seconds",
            "electricity_spot_price_fetch_errors",
        ]


class TestCollect:
    """Tests for the per-scrape collection pass."""

    def test_emits_price_for_current_hour(self, fake_source, clock, tz):
        collector, registry = _collector(fake_source, clock, tz, regions=["A"])

        value = registry.get_sample_value("electricity_spot_price", {"region": "A"})
        assert value == pytest.approx(41.37)

    def test_failed_region_is_omitted(self, sample_price_set, clock, tz):
        source = FakeSource({"A": sample_price_set, "B": TransportError("down")})
        collector, _ = _collector(source, clock, tz)

        prices = _samples(collector, "electricity_spot_price")

        assert prices == {(("region", "A"),): pytest.approx(41.37)}

    def test_region_outside_cached_window_is_omitted(self, sample_price_set, clock, tz):
        later = make_price_set("B", local_hour(2025, 8, 8, 0), ["1.00", "2.00"])
        source = FakeSource({"A": sample_price_set, "B": later})
        collector, _ = _collector(source, clock, tz)

        prices = _samples(collector, "electricity_spot_price")

        assert list(prices) == [(("region", "A"),)]

    def test_negative_price_is_exported(self, sample_price_set, clock, tz):
        clock.advance(3600)
        collector, registry = _collector(FakeSource({"A": sample_price_set}), clock, tz, regions=["A"])

        assert registry.get_sample_value("electricity_spot_price", {"region": "A"}) == pytest.approx(-0.05)

    def test_no_regions_with_data_yields_empty_gauge(self, clock, tz):
        source = FakeSource({"A": TransportError("down"), "B": UpstreamStatusError("HTTP 500", 500)})
        collector, _ = _collector(source, clock, tz)

        assert _samples(collector, "electricity_spot_price") == {}

    def test_error_counter(self, sample_price_set, clock, tz):
        source = FakeSource({"A": sample_price_set, "B": UpstreamStatusError("HTTP 500", 500)})
        collector, registry = _collector(source, clock, tz)

        value = registry.get_sample_value(
            "electricity_spot_price_fetch_errors_total", {"region": "B", "kind": "status"}
        )
        assert value == 1.0

    def test_last_fetch_timestamp(self, sample_price_set, clock, tz):
        source = FakeSource({"A": sample_price_set, "B": TransportError("down")})
        collector, _ = _collector(source, clock, tz)

        fetched = _samples(collector, "electricity_spot_price_last_fetch_timestamp_seconds")

        assert fetched == {(("region", "A"),): clock.now.timestamp()}

    def test_stale_data_still_exported_after_failure(self, sample_price_set, clock, tz):
        source = FakeSource({"A": sample_price_set})
        collector, registry = _collector(source, clock, tz, regions=["A"])
        registry.get_sample_value("electricity_spot_price", {"region": "A"})

        source.results["A"] = TransportError("down")
        clock.advance(3600)

        assert registry.get_sample_value("electricity_spot_price", {"region": "A"}) == pytest.approx(-0.05)
        assert source.calls["A"] == 2

    def test_exposition_text(self, fake_source, clock, tz):
        _, registry = _collector(fake_source, clock, tz, regions=["A"])

        text = generate_latest(registry).decode("utf-8")

        assert "# TYPE electricity_spot_price gauge" in text
        assert 'electricity_spot_price{region="A"} 41.37' in text
