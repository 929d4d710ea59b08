"""
API module for TailWatch.

Provides REST endpoints for:
- Flight data (recent flights, position, refresh, yearly stats)
- AI chat about the aircraft
- FlightAware diagnostics
"""

from tailwatch.api.flights import flights_bp
from tailwatch.api.chat import chat_bp
from tailwatch.api.debug import debug_bp

__all__ = ['flights_bp', 'chat_bp', 'debug_bp']
