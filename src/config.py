"""
Application configuration management using Pydantic Settings.
Handles environment variables, default values and startup validation.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from src.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # Region Configuration
    regions: str = Field(
        default="SN3",
        description="Comma separated list of price regions to export (e.g. 'SN1,SN3')"
    )
    timezone: str = Field(
        default="Europe/Helsinki",
        description="Civil timezone used for hour buckets"
    )

    # Upstream Configuration
    upstream_url_template: str = Field(
        default="https://www.vattenfall.se/api/price/spot/pricearea/{start}/{end}/{region}",
        description="Upstream URL with {region}, {start} and {end} placeholders"
    )
    upstream_timezone: str = Field(
        default="Europe/Stockholm",
        description="Timezone of naive upstream labels and request dates"
    )
    upstream_schema: str = Field(
        default="vattenfall",
        description="Upstream body format (vattenfall/series)"
    )
    upstream_items_key: Optional[str] = Field(
        default=None,
        description="Key holding the observation list when the body is an object (series schema)"
    )
    upstream_timestamp_key: str = Field(default="timestamp", description="Timestamp field (series schema)")
    upstream_price_key: str = Field(default="price", description="Price field (series schema)")
    forecast_horizon_days: int = Field(default=1, ge=0, description="Days after today to request")
    request_timeout: float = Field(default=10.0, gt=0, description="Upstream request timeout in seconds")

    # Cache Configuration
    refresh_interval: float = Field(default=3600.0, gt=0, description="Seconds before cached prices go stale")
    retry_backoff_base: float = Field(default=30.0, gt=0, description="First retry delay after a failed fetch")
    retry_backoff_max: float = Field(default=900.0, gt=0, description="Upper bound for the retry delay")

    # Metrics Configuration
    price_unit: str = Field(default="öre/kWh", description="Unit of the upstream prices")
    metric_namespace: str = Field(default="electricity", description="Prefix for exported metric names")

    # Output Configuration
    output_file: Optional[str] = Field(default=None, description="Write metrics to this .prom file and exit")
    output_http: Optional[str] = Field(default=None, description="host:port to listen on for HTTP scrapes")
    api_debug: bool = Field(default=False, description="Enable debug mode")

    # Build Information
    build_commit: str = Field(default="unknown", description="VCS commit the build was made from")
    build_date: str = Field(default="unknown", description="Build timestamp reported by --version")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json/text)")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def region_list(self) -> List[str]:
        """Configured regions, stripped and de-duplicated in declaration order."""
        seen = []
        for region in self.regions.split(","):
            region = region.strip()
            if region and region not in seen:
                seen.append(region)
        return seen


def parse_listen_address(address: str) -> tuple:
    """Split 'host:port' into its parts; an empty host listens on all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigurationError(f"Invalid listen address '{address}', expected host:port")
    return host or "0.0.0.0", int(port)


def validate_settings(config: Settings) -> None:
    """
    Check the settings that make the exporter unusable.

    Raises:
        ConfigurationError: On the first problem found.
    """
    from src.utils.time_utils import get_timezone

    if not config.region_list:
        raise ConfigurationError("Need at least one region")

    get_timezone(config.timezone)
    get_timezone(config.upstream_timezone)

    if config.upstream_schema not in ("vattenfall", "series"):
        raise ConfigurationError(f"Unknown upstream schema '{config.upstream_schema}'")

    if config.retry_backoff_max >= config.refresh_interval:
        raise ConfigurationError("retry_backoff_max must be shorter than refresh_interval")

    if config.output_file and config.output_file.split(".")[-1] != "prom":
        raise ConfigurationError(f"Filename must end with .prom extension: {config.output_file}")

    if config.output_http:
        parse_listen_address(config.output_http)


# Global settings instance
settings = Settings()
