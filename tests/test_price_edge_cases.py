"""
Tests for price data edge cases including negative prices and currency precision.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytz
from pydantic import ValidationError

from src.exceptions import ParseError
from src.models.price import PricePoint, RegionPriceSet
from src.services.parsers import VattenfallParser

HELSINKI = pytz.timezone("Europe/Helsinki")


def _hour(hour: int) -> datetime:
    return HELSINKI.localize(datetime(2025, 8, 7, hour))


class TestNegativePrices:
    """Test handling of negative spot prices."""

    def test_negative_price_validation(self):
        """Negative spot prices occur in real markets and must be accepted."""
        point = PricePoint(bucket_start=_hour(3), price=Decimal("-0.05"))
        assert point.price == Decimal("-0.05")

    def test_negative_price_parsed_from_upstream(self):
        observations = VattenfallParser().parse(
            [{"TimeStamp": "2025-08-07T03:00:00", "Value": "-0,05"}], HELSINKI
        )
        assert observations[0][1] == Decimal("-0.05")


class TestCurrencyPrecision:
    """Test that prices keep decimal precision."""

    def test_decimal_comma_prices(self):
        upstream = ["1,09", "1,25", "2,34", "-0,05", "0,01"]
        expected = [Decimal("1.09"), Decimal("1.25"), Decimal("2.34"), Decimal("-0.05"), Decimal("0.01")]

        rows = [
            {"TimeStamp": f"2025-08-07T{hour:02d}:00:00", "Value": value}
            for hour, value in enumerate(upstream)
        ]
        prices = [price for _, price in VattenfallParser().parse(rows, HELSINKI)]

        assert prices == expected

    def test_float_values_keep_their_text(self):
        observations = VattenfallParser().parse([{"TimeStamp": "2025-08-07T00:00:00", "Value": 0.1}], HELSINKI)
        assert observations[0][1] == Decimal("0.1")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", None, True, ""])
    def test_non_numeric_prices_rejected(self, value):
        with pytest.raises(ParseError):
            VattenfallParser().parse([{"TimeStamp": "2025-08-07T00:00:00", "Value": value}], HELSINKI)


class TestRegionPriceSet:
    """Test ordering invariants and lookups of price sets."""

    def test_duplicate_buckets_rejected(self):
        point = PricePoint(bucket_start=_hour(1), price=Decimal("1"))
        with pytest.raises(ValidationError, match="strictly ascending"):
            RegionPriceSet(region="A", points=[point, point])

    def test_descending_points_rejected(self):
        with pytest.raises(ValidationError):
            RegionPriceSet(region="A", points=[
                PricePoint(bucket_start=_hour(2), price=Decimal("1")),
                PricePoint(bucket_start=_hour(1), price=Decimal("1")),
            ])

    def test_lookup_by_bucket(self):
        price_set = RegionPriceSet(region="A", points=[
            PricePoint(bucket_start=_hour(hour), price=Decimal(hour)) for hour in (9, 10, 11)
        ])

        assert price_set.at(_hour(10)).price == Decimal(10)
        assert price_set.at(_hour(12)) is None
        assert price_set.at(_hour(8)) is None
        assert [p.price for p in price_set.from_bucket(_hour(10))] == [Decimal(10), Decimal(11)]
        assert price_set.from_bucket(_hour(12)) == []

    def test_lookup_with_other_timezone_instant(self):
        price_set = RegionPriceSet(region="A", points=[PricePoint(bucket_start=_hour(10), price=Decimal("5"))])
        same_instant = datetime(2025, 8, 7, 7, 0, tzinfo=timezone.utc)

        assert price_set.at(same_instant).price == Decimal("5")
        assert price_set.at(same_instant + timedelta(hours=1)) is None

    def test_price_set_is_immutable(self):
        price_set = RegionPriceSet.empty("A")
        with pytest.raises(ValidationError):
            price_set.region = "B"
