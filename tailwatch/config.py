"""
Configuration management for TailWatch.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _parse_date(value: str) -> datetime:
    """Parse 'YYYY-MM-DD' into a UTC datetime, falling back to Jan 1 of last year."""
    try:
        return datetime.strptime(value.strip(), '%Y-%m-%d').replace(tzinfo=timezone.utc)
    except (ValueError, AttributeError):
        return datetime(datetime.now(timezone.utc).year - 1, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class FlightAwareConfig:
    """FlightAware AeroAPI configuration."""
    api_key: Optional[str] = os.getenv('FLIGHTAWARE_API_KEY') or None
    base_url: str = 'https://aeroapi.flightaware.com/aeroapi'
    timeout_seconds: float = float(os.getenv('FLIGHTAWARE_TIMEOUT_SECONDS', '15'))

    # History window used for the flight list and analytics
    history_start: datetime = _parse_date(os.getenv('FLIGHT_HISTORY_START', '2024-01-01'))
    max_pages: int = int(os.getenv('FLIGHT_HISTORY_MAX_PAGES', '100'))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class OpenAIConfig:
    """Chat completion configuration."""
    api_key: Optional[str] = os.getenv('OPENAI_API_KEY') or None
    model: str = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
    max_tokens: int = int(os.getenv('OPENAI_MAX_TOKENS', '500'))
    temperature: float = float(os.getenv('OPENAI_TEMPERATURE', '0.7'))
    history_window: int = 10  # Trailing chat turns sent upstream
    context_max_pages: int = 10

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Cache database configuration. No URL means no cache."""
    url: Optional[str] = os.getenv('CACHE_DATABASE_URL') or None

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    @property
    def is_sqlite(self) -> bool:
        return bool(self.url) and self.url.startswith('sqlite')


@dataclass(frozen=True)
class CacheConfig:
    """Freshness windows for the read-through cache."""
    flights_max_age_minutes: int = int(os.getenv('CACHE_FLIGHTS_MAX_AGE_MINUTES', '30'))
    fallback_max_age_minutes: int = int(os.getenv('CACHE_FALLBACK_MAX_AGE_MINUTES', '120'))
    # Positions go stale fast
    position_max_age_minutes: int = int(os.getenv('CACHE_POSITION_MAX_AGE_MINUTES', '5'))
    purge_hours: int = int(os.getenv('CACHE_PURGE_HOURS', '24'))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    flightaware: FlightAwareConfig
    openai: OpenAIConfig
    database: DatabaseConfig
    cache: CacheConfig

    # The aircraft this dashboard follows
    aircraft_ident: str

    # Flask settings
    secret_key: str
    debug: bool
    environment: str


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        flightaware=FlightAwareConfig(),
        openai=OpenAIConfig(),
        database=DatabaseConfig(),
        cache=CacheConfig(),
        aircraft_ident=os.getenv('AIRCRAFT_TAIL_NUMBER', 'N424BB').strip().upper(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        environment=os.getenv('FLASK_ENV', 'production'),
    )


# Singleton instance
config = load_config()
