"""
FastAPI route handlers for the exporter endpoints.
Serves price metrics, runtime metrics, the forecast feed and a health check.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.exceptions import SpotPriceError, UnknownRegionError
from src.exporter import Exporter
from src.logging_config import get_logger
from src.models.price import ForecastResponse, HealthResponse

logger = get_logger(__name__)

router = APIRouter()


def get_exporter(request: Request) -> Exporter:
    """Exporter components attached to the running application."""
    return request.app.state.exporter


@router.get("/prices")
def price_metrics(exporter: Exporter = Depends(get_exporter)):
    """
    Current spot price per region in the Prometheus text format.

    Regions without a price for the current hour are left out.
    """
    return Response(generate_latest(exporter.price_registry), media_type=CONTENT_TYPE_LATEST)


@router.get("/metrics")
def runtime_metrics(exporter: Exporter = Depends(get_exporter)):
    """Process, platform and request metrics of the exporter itself."""
    return Response(generate_latest(exporter.runtime_registry), media_type=CONTENT_TYPE_LATEST)


@router.get("/forecast", response_model=ForecastResponse)
def get_forecast(
    region: Optional[List[str]] = Query(
        default=None,
        description="Regions to include, may be repeated. Defaults to all configured regions."
    ),
    exporter: Exporter = Depends(get_exporter),
):
    """
    Known prices from the current hour onwards for each region.

    A region without future data returns an empty list rather than an error.

    Raises:
        HTTPException: 400 for unknown regions, 500 for server errors.
    """
    try:
        return exporter.projector.forecast(region)

    except UnknownRegionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SpotPriceError as e:
        logger.error("Forecast error", error=str(e), regions=region)
        raise HTTPException(status_code=500, detail="Internal server error")
    except Exception as e:
        logger.error("Unexpected error", error=str(e), regions=region)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/health", response_model=HealthResponse)
def health_check(exporter: Exporter = Depends(get_exporter)):
    """
    Health check endpoint for monitoring and load balancers.

    Reports per-region cache state without contacting the upstream. The
    status is "degraded" while any region has no prices at all.
    """
    now = datetime.now(timezone.utc)
    entries = exporter.cache.entries()

    regions = {}
    for region in exporter.settings.region_list:
        entry = entries.get(region)
        if entry is None:
            regions[region] = {"points": 0, "last_fetch": None, "data_age_hours": None,
                               "error": None, "failures": 0}
            continue

        data_age_hours = None
        if entry.fetched_at is not None:
            data_age_hours = round((now - entry.fetched_at).total_seconds() / 3600, 1)

        regions[region] = {
            "points": len(entry.prices.points),
            "last_fetch": entry.fetched_at.isoformat() if entry.fetched_at else None,
            "data_age_hours": data_age_hours,
            "error": str(entry.error) if entry.error else None,
            "failures": entry.failures,
        }

    healthy = all(details["points"] > 0 for details in regions.values())
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=now,
        details={"service": "spot-price-exporter", "regions": regions},
    )
