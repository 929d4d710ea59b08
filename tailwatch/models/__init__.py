"""
Database models for TailWatch.

The only table is a read-through cache of upstream flight data:
one row per identifier, overwritten on every successful fetch.
"""

from tailwatch.models.base import Base, engine, SessionLocal, init_db, build_engine, build_session_factory
from tailwatch.models.flight_data_cache import FlightDataCache

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'build_engine',
    'build_session_factory',
    'FlightDataCache',
]
