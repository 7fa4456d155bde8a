"""
Pydantic data models for price data and API responses.
Defines hourly price points, per-region price sets and response formats.
"""

from bisect import bisect_left
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator


class PricePoint(BaseModel):
    """
    Price for one civil hour in one region.

    The unit is fixed per deployment (see Settings.price_unit) and not
    repeated on every point.
    """
    model_config = ConfigDict(frozen=True)

    bucket_start: datetime = Field(
        description="Start of the hour bucket, timezone-aware in the configured timezone"
    )
    price: Decimal = Field(
        description="Spot price for the hour - can be negative in some markets"
    )


class RegionPriceSet(BaseModel):
    """
    Most recently fetched prices for one region, ascending by bucket start.
    """
    model_config = ConfigDict(frozen=True)

    region: str = Field(description="Price region identifier")
    points: List[PricePoint] = Field(default_factory=list, description="Hourly points, ascending")

    @model_validator(mode="after")
    def _check_ordering(self) -> "RegionPriceSet":
        for previous, current in zip(self.points, self.points[1:]):
            if previous.bucket_start >= current.bucket_start:
                raise ValueError(
                    f"Points must be strictly ascending, got {previous.bucket_start.isoformat()} "
                    f"before {current.bucket_start.isoformat()}"
                )
        return self

    @classmethod
    def empty(cls, region: str) -> "RegionPriceSet":
        return cls(region=region, points=[])

    def __len__(self) -> int:
        return len(self.points)

    def _index_of(self, bucket: datetime) -> int:
        return bisect_left([point.bucket_start for point in self.points], bucket)

    def at(self, bucket: datetime) -> Optional[PricePoint]:
        """Point whose bucket starts exactly at the given bucket, if known."""
        index = self._index_of(bucket)
        if index < len(self.points) and self.points[index].bucket_start == bucket:
            return self.points[index]
        return None

    def from_bucket(self, bucket: datetime) -> List[PricePoint]:
        """Points starting at or after the given bucket, in ascending order."""
        return list(self.points[self._index_of(bucket):])


class ForecastEntry(BaseModel):
    """
    One hour of the forecast feed.
    """
    start: datetime = Field(description="Start of the hour")
    end: datetime = Field(description="End of the hour (exclusive)")
    price: Decimal = Field(description="Spot price for the hour - can be negative in some markets")

    @field_serializer("price", when_used="json")
    def _price_as_number(self, price: Decimal) -> float:
        return float(price)


class ForecastResponse(BaseModel):
    """
    API response for the forecast endpoint.
    Holds the known prices from the current hour onwards for each region.
    """
    generated_at: datetime = Field(description="Time the forecast was assembled")
    timezone: str = Field(description="Timezone of the hour buckets")
    unit: str = Field(description="Unit of all prices")
    regions: Dict[str, List[ForecastEntry]] = Field(
        description="Future prices per region, empty when nothing is known"
    )


class HealthResponse(BaseModel):
    """
    Health check response model.
    """
    status: str = Field(description="Health status")
    timestamp: datetime = Field(description="Health check timestamp")
    details: Optional[dict] = Field(default=None, description="Additional health details")
