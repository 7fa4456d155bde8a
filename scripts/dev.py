#!/usr/bin/env python3
"""
Development helper scripts for the Spot Price Exporter.
Provides utilities for manual fetching, forecast inspection and config checks.
"""

import sys
from pathlib import Path

# Add project root to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from prometheus_client import generate_latest

from src.config import settings, validate_settings
from src.exceptions import SpotPriceError
from src.exporter import build_exporter
from src.logging_config import setup_logging


def show_prices(region: str):
    """Fetch one region straight from the upstream and print its hours."""
    print(f"Fetching prices for {region}...")
    setup_logging()
    exporter = build_exporter(settings)

    try:
        price_set = exporter.source.fetch(region)
    except SpotPriceError as e:
        print(f"Fetch failed: {e}")
        return

    if not price_set.points:
        print("Upstream returned no prices")
        return

    print(f"\nFound {len(price_set.points)} hourly prices:")
    print("-" * 50)
    print(f"{'Hour start':<28} {'Price':>12}")
    print("-" * 50)
    for point in price_set.points:
        print(f"{point.bucket_start.isoformat():<28} {point.price:>12.3f} {settings.price_unit}")


def show_metrics():
    """Run one collection pass and print the exposition text."""
    setup_logging()
    exporter = build_exporter(settings)
    print(generate_latest(exporter.price_registry).decode("utf-8"))


def show_forecast():
    """Print the forecast JSON for all configured regions."""
    setup_logging()
    exporter = build_exporter(settings)
    print(exporter.projector.forecast().model_dump_json(indent=2))


def show_config():
    """Display current configuration settings."""
    print("Current Configuration:")
    print("-" * 40)
    print(f"Regions: {', '.join(settings.region_list)}")
    print(f"Timezone: {settings.timezone}")
    print(f"Upstream: {settings.upstream_url_template} ({settings.upstream_schema})")
    print(f"Upstream Timezone: {settings.upstream_timezone}")
    print(f"Request Timeout: {settings.request_timeout}s")
    print(f"Refresh Interval: {settings.refresh_interval}s")
    print(f"Retry Backoff: {settings.retry_backoff_base}s up to {settings.retry_backoff_max}s")
    print(f"Price Unit: {settings.price_unit}")
    print(f"Log Level: {settings.log_level}")

    try:
        validate_settings(settings)
        print("\nConfiguration is valid")
    except SpotPriceError as e:
        print(f"\nConfiguration error: {e}")


def main():
    """Main script entry point with command selection."""
    if len(sys.argv) < 2:
        print("Spot Price Exporter Development Scripts")
        print("Usage: python scripts/dev.py <command> [region]")
        print("\nAvailable commands:")
        print("  show-prices REGION - Fetch and display one region's prices")
        print("  show-metrics       - Print one metrics collection")
        print("  show-forecast      - Print the forecast JSON")
        print("  show-config        - Display and validate current configuration")
        return

    command = sys.argv[1]

    if command == "show-prices":
        region = sys.argv[2] if len(sys.argv) > 2 else settings.region_list[0]
        show_prices(region)
    elif command == "show-metrics":
        show_metrics()
    elif command == "show-forecast":
        show_forecast()
    elif command == "show-config":
        show_config()
    else:
        print(f"Unknown command: {command}")
        print("Run without arguments to see available commands")


if __name__ == "__main__":
    main()
