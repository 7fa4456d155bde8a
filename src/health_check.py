"""
Health check module for Docker health checks and monitoring.
Verifies that the upstream pricing API answers for every configured region.
"""

import sys

from src.config import settings
from src.exceptions import SpotPriceError
from src.exporter import build_exporter
from src.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def health_check(source, regions) -> bool:
    """
    Fetch every region once, bypassing the cache.
    """
    healthy = True
    for region in regions:
        try:
            price_set = source.fetch(region)
            logger.info("Upstream reachable", region=region, points=len(price_set.points))
        except SpotPriceError as e:
            logger.error("Upstream check failed", region=region, error=str(e))
            healthy = False
    return healthy


def main():
    """
    Main health check entry point for command line usage.
    """
    setup_logging()
    try:
        exporter = build_exporter(settings)
    except SpotPriceError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(1)

    if health_check(exporter.source, settings.region_list):
        logger.info("Health check passed")
        sys.exit(0)
    else:
        logger.error("Health check failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
