"""
TailWatch Backend Package.

Personal aircraft-tracking dashboard API built with Flask, SQLAlchemy,
requests and the OpenAI SDK.

Modules:
    api/         REST endpoints for flights, position, stats, chat and diagnostics
    models/      SQLAlchemy ORM model for the flight data cache table
    services/    FlightAware client, read-through access layer, chat bridge
    analytics/   NumPy-based yearly flight statistics
    cache.py     Database-backed snapshot cache with freshness windows
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
