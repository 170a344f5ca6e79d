"""
Configuration management for SkyHex.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase. Invalid values raise ConfigError at import time,
so a misconfigured process never starts serving.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

from skyhex.exceptions import ConfigError
from skyhex.geo.bbox import BoundingBox

load_dotenv()


def parse_bounds(value: str) -> BoundingBox:
    """Parse 'minLat,minLon,maxLat,maxLon' into a non-degenerate box."""
    try:
        bbox = BoundingBox.parse(value)
    except ValueError as e:
        raise ConfigError(f'Invalid bounding box {value!r}: {e}') from e
    if bbox.min_lat >= bbox.max_lat or bbox.min_lon >= bbox.max_lon:
        raise ConfigError(f'Invalid bounding box {value!r}: min must be less than max')
    return bbox


def _parse_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f'{name} must be an integer, got {raw!r}') from e


def parse_resolutions(value: str) -> Tuple[int, ...]:
    """Parse '0-6' or '0,1,2' into a tuple of resolutions."""
    try:
        if '-' in value:
            low, high = value.split('-')
            return tuple(range(int(low), int(high) + 1))
        return tuple(int(part) for part in value.split(',') if part.strip())
    except ValueError as e:
        raise ConfigError(f'Invalid resolution list {value!r}') from e


@dataclass(frozen=True)
class OpenSkyConfig:
    """OpenSky API configuration."""
    username: Optional[str] = os.getenv('OPENSKY_USERNAME') or None
    password: Optional[str] = os.getenv('OPENSKY_PASSWORD') or None
    base_url: str = os.getenv('OPENSKY_BASE_URL', 'https://opensky-network.org/api')

    @property
    def is_authenticated(self) -> bool:
        return bool(self.username and self.password)

    @property
    def rate_limit_seconds(self) -> int:
        # Authenticated users can poll more frequently
        return 5 if self.is_authenticated else 10


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///skyhex.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class IngestionConfig:
    """Data ingestion settings."""
    poll_interval: int = 60
    tracking_bounds: BoundingBox = field(default_factory=BoundingBox.world)


@dataclass(frozen=True)
class IndexConfig:
    """H3 indexing settings."""
    # Finest resolution the aggregator reads from the event log.
    # Coarser grids are derived from it by walking cell parents.
    finest_resolution: int = 8


@dataclass(frozen=True)
class PolyfillConfig:
    """Static hex grid settings."""
    output_dir: str = os.getenv('POLYFILL_DIR', 'data/polyfill')
    # r8+ covers millions of cells for country-sized regions
    resolutions: Tuple[int, ...] = tuple(range(0, 11))
    generate_on_startup: bool = os.getenv('GENERATE_POLYFILL_ON_STARTUP', '0') == '1'


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    opensky: OpenSkyConfig
    database: DatabaseConfig
    ingestion: IngestionConfig
    index: IndexConfig
    polyfill: PolyfillConfig

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    poll_interval = _parse_int('POLL_INTERVAL_SECONDS', '60')
    if poll_interval <= 0:
        raise ConfigError('POLL_INTERVAL_SECONDS must be positive')

    finest = _parse_int('FINEST_RESOLUTION', '8')
    if not 0 <= finest <= 10:
        raise ConfigError(f'FINEST_RESOLUTION must be between 0 and 10, got {finest}')

    resolutions = parse_resolutions(os.getenv('POLYFILL_RESOLUTIONS', '0-10'))
    if any(not 0 <= r <= 10 for r in resolutions):
        raise ConfigError(f'POLYFILL_RESOLUTIONS must be within 0-10, got {resolutions}')

    return AppConfig(
        opensky=OpenSkyConfig(),
        database=DatabaseConfig(),
        ingestion=IngestionConfig(
            poll_interval=poll_interval,
            # Default: Finland area (approximately)
            tracking_bounds=parse_bounds(os.getenv('TRACKING_BOUNDS', '59.5,19.0,70.1,31.5')),
        ),
        index=IndexConfig(finest_resolution=finest),
        polyfill=PolyfillConfig(resolutions=resolutions),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
