"""
Flight history analytics using NumPy.

Summarises an aircraft's flights for the dashboard and the chat context:
- Calendar-year filtering based on departure time
- Total and average route distance
- Angel Flight (charity medical transport) classification and totals
- Active-flight selection and display ordering

Distances are FlightAware route distances in nautical miles; flights
without one count as zero.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import numpy as np

from tailwatch.services.flightaware import FlightRecord

logger = logging.getLogger(__name__)

# Angel Flight missions are filed under Air Charity Network's ICAO code
ANGEL_FLIGHT_OPERATOR_CODES = frozenset({'NGF'})
ANGEL_FLIGHT_OPERATOR_NAMES = ('angel flight', 'air charity network')

ACTIVE_STATUSES = ('En Route', 'Active', 'Scheduled')

# Departure time precedence: wheels-off first, then gate-out
_DATE_FIELDS = ('actual_off', 'scheduled_off', 'actual_out', 'scheduled_out')


@dataclass
class YearSummary:
    """Aggregate statistics for one calendar year."""
    year: int
    flight_count: int
    total_miles: int
    angel_flight_count: int
    angel_flight_miles: int
    average_distance: int

    def to_dict(self) -> dict:
        return {
            'year': self.year,
            'flight_count': self.flight_count,
            'total_miles': self.total_miles,
            'angel_flight_count': self.angel_flight_count,
            'angel_flight_miles': self.angel_flight_miles,
            'average_distance': self.average_distance,
        }


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a provider ISO-8601 timestamp into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def flight_date(flight: FlightRecord) -> Optional[datetime]:
    """Best available departure time for a flight, or None."""
    for name in _DATE_FIELDS:
        parsed = parse_timestamp(flight.time(name))
        if parsed:
            return parsed
    return None


def flights_in_year(flights: Iterable[FlightRecord], year: int) -> List[FlightRecord]:
    """Flights whose departure falls in the given calendar year (UTC)."""
    result = []
    for flight in flights:
        when = flight_date(flight)
        if when and when.year == year:
            result.append(flight)
    return result


def is_angel_flight(flight: FlightRecord) -> bool:
    """
    Heuristic Angel Flight classification by operator.

    Matches the NGF operator code exactly, or an operator name containing
    "angel flight" / "air charity network" (case-insensitive).
    """
    for code in (flight.operator, flight.operator_icao):
        if code and code.strip().upper() in ANGEL_FLIGHT_OPERATOR_CODES:
            return True

    if not flight.operator:
        return False
    operator = flight.operator.lower()
    return any(name in operator for name in ANGEL_FLIGHT_OPERATOR_NAMES)


def _distances(flights: List[FlightRecord]) -> np.ndarray:
    return np.array([f.route_distance or 0 for f in flights], dtype=np.float64)


def summarize_year(flights: Iterable[FlightRecord], year: Optional[int] = None) -> YearSummary:
    """
    Compute flight count, miles and Angel Flight totals for a calendar year.

    Defaults to the current UTC year.
    """
    if year is None:
        year = datetime.now(timezone.utc).year

    year_flights = flights_in_year(flights, year)
    distances = _distances(year_flights)
    angel_mask = np.array([is_angel_flight(f) for f in year_flights], dtype=bool)

    total = float(distances.sum()) if distances.size else 0.0
    angel_total = float(distances[angel_mask].sum()) if angel_mask.any() else 0.0
    average = float(distances.mean()) if distances.size else 0.0

    return YearSummary(
        year=year,
        flight_count=len(year_flights),
        total_miles=int(round(total)),
        angel_flight_count=int(angel_mask.sum()),
        angel_flight_miles=int(round(angel_total)),
        average_distance=int(round(average)),
    )


def active_flights(flights: Iterable[FlightRecord]) -> List[FlightRecord]:
    """Flights that are en route, active or scheduled."""
    return [f for f in flights if f.status in ACTIVE_STATUSES]


def sort_flights(flights: Iterable[FlightRecord], by: str = 'date') -> List[FlightRecord]:
    """
    Order flights for display.

    by='date': most recent departure first, undated flights last
    by='route': alphabetical by "ORIGIN-DESTINATION"
    """
    flights = list(flights)

    if by == 'route':
        def route_key(f: FlightRecord) -> str:
            origin = f.origin.code if f.origin and f.origin.code else ''
            destination = f.destination.code if f.destination and f.destination.code else ''
            return f'{origin}-{destination}'
        return sorted(flights, key=route_key)

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(flights, key=lambda f: flight_date(f) or epoch, reverse=True)
