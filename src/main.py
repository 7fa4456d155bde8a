"""
Main application entry point for the Spot Price Exporter.
Builds the exporter and either dumps metrics once, writes a textfile,
or serves the HTTP endpoints.
"""

import argparse
import json
import sys
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Request
from prometheus_client import generate_latest, write_to_textfile

from src import __version__
from src.api.routes import router as api_router
from src.config import Settings, parse_listen_address, settings, validate_settings
from src.exceptions import ConfigurationError
from src.exporter import Exporter, build_exporter
from src.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

KNOWN_HANDLERS = ("/prices", "/metrics", "/forecast", "/health")


def create_app(config: Settings = None, exporter: Exporter = None) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    config = config or settings
    exporter = exporter or build_exporter(config)

    app = FastAPI(
        title="Spot Price Exporter",
        description="Electricity spot prices as Prometheus metrics and a JSON forecast",
        version=__version__,
        docs_url="/docs" if config.api_debug else None,
        redoc_url="/redoc" if config.api_debug else None,
    )
    app.state.exporter = exporter

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        response = await call_next(request)
        handler = request.url.path if request.url.path in KNOWN_HANDLERS else "other"
        exporter.http_requests.labels(handler=handler, code=str(response.status_code)).inc()
        return response

    app.include_router(api_router)

    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export electricity spot prices as Prometheus metrics")
    parser.add_argument("--region", action="append", default=[],
                        help="region to query for, can be passed multiple times")
    parser.add_argument("--output.file", dest="output_file",
                        help="write metrics to specified file (must have .prom extension)")
    parser.add_argument("--output.http", dest="output_http",
                        help="host:port to listen on for HTTP scrapes")
    parser.add_argument("--version", action="store_true", help="show version and exit")
    return parser.parse_args(argv)


def apply_args(config: Settings, args: argparse.Namespace) -> Settings:
    """Command line flags override environment settings."""
    overrides = {}
    if args.region:
        overrides["regions"] = ",".join(args.region)
    if args.output_file:
        overrides["output_file"] = args.output_file
    if args.output_http:
        overrides["output_http"] = args.output_http
    return config.model_copy(update=overrides)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.version:
        print(json.dumps({"version": __version__, "commit": settings.build_commit, "date": settings.build_date}))
        return 0

    config = apply_args(settings, args)
    setup_logging(config.log_level, config.log_format)

    try:
        validate_settings(config)
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    exporter = build_exporter(config)

    if not config.output_file and not config.output_http:
        sys.stdout.write(generate_latest(exporter.price_registry).decode("utf-8"))
        return 0

    if config.output_file:
        write_to_textfile(config.output_file, exporter.price_registry)
        logger.info("Wrote metrics textfile", path=config.output_file)
        return 0

    host, port = parse_listen_address(config.output_http)
    logger.info("Exporter listening", host=host, port=port, regions=config.region_list)
    uvicorn.run(
        create_app(config, exporter),
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )
    logger.info("Exporter shutdown completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
