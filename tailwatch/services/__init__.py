"""
External integration services.

- flightaware   FlightAware AeroAPI client and flight/position records
- flight_data   Read-through cache orchestration over the client
- chat          OpenAI chat bridge with flight context

Only the client is re-exported here; flight_data and chat depend on the
analytics package, which itself depends on the client records.
"""

from tailwatch.services.flightaware import (
    FlightAwareClient,
    FlightAwareError,
    FlightAwareConfigError,
    FlightRecord,
    PositionSample,
    flightaware_client,
)

__all__ = [
    'FlightAwareClient',
    'FlightAwareError',
    'FlightAwareConfigError',
    'FlightRecord',
    'PositionSample',
    'flightaware_client',
]
