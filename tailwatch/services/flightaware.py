"""
FlightAware AeroAPI client.

Handles communication with the AeroAPI REST service, including:
- API key header authentication
- Flight listing by identifier with optional time window and page cap
- Per-flight track (position history) lookups
- Translating HTTP and network failures into FlightAwareError

Documentation: https://flightaware.com/commercial/aeroapi/

There are no retries and no backoff: each call is a single request and
either returns parsed records or raises.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, List, Any, Dict
from urllib.parse import quote

import requests

from tailwatch.config import config

logger = logging.getLogger(__name__)

# Statuses FlightAware reports for an aircraft that is currently flying
IN_FLIGHT_STATUSES = ('En Route', 'Active')

_TIME_FIELDS = (
    'scheduled_out', 'estimated_out', 'actual_out',
    'scheduled_off', 'estimated_off', 'actual_off',
    'scheduled_on', 'estimated_on', 'actual_on',
    'scheduled_in', 'estimated_in', 'actual_in',
)


class FlightAwareError(Exception):
    """
    Failure talking to FlightAware.

    Attributes:
        message: Human-readable description
        status: HTTP status code, or None for network/configuration errors
        code: Machine-readable code from the provider, if any
    """

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def to_dict(self) -> dict:
        return {
            'error': self.message,
            'code': self.code,
            'status': self.status,
        }


class FlightAwareConfigError(FlightAwareError):
    """Raised before any network call when no API key is configured."""

    def __init__(self, message: str = 'FlightAware API key not configured'):
        super().__init__(message, status=503, code='not_configured')


@dataclass(frozen=True)
class Airport:
    """Origin or destination airport as reported by FlightAware."""
    code: Optional[str] = None
    code_icao: Optional[str] = None
    code_iata: Optional[str] = None
    name: Optional[str] = None
    city: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['Airport']:
        if not isinstance(data, dict) or not data:
            return None
        return cls(
            code=data.get('code'),
            code_icao=data.get('code_icao'),
            code_iata=data.get('code_iata'),
            name=data.get('name'),
            city=data.get('city'),
        )


@dataclass(frozen=True)
class FlightRecord:
    """
    A single flight leg for an aircraft.

    Parsed from the AeroAPI flight object; to_dict() emits the same shape
    so cached snapshots and live responses look identical to clients.
    Timestamps are kept as the provider's ISO-8601 strings.
    """
    ident: str
    fa_flight_id: Optional[str] = None
    status: Optional[str] = None
    operator: Optional[str] = None
    operator_icao: Optional[str] = None
    registration: Optional[str] = None
    aircraft_type: Optional[str] = None
    route_distance: Optional[int] = None
    cancelled: bool = False
    diverted: bool = False
    origin: Optional[Airport] = None
    destination: Optional[Airport] = None
    times: Dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlightRecord':
        return cls(
            ident=data.get('ident') or '',
            fa_flight_id=data.get('fa_flight_id'),
            status=data.get('status'),
            operator=data.get('operator'),
            operator_icao=data.get('operator_icao'),
            registration=data.get('registration'),
            aircraft_type=data.get('aircraft_type'),
            route_distance=data.get('route_distance'),
            cancelled=bool(data.get('cancelled')),
            diverted=bool(data.get('diverted')),
            origin=Airport.from_dict(data.get('origin')),
            destination=Airport.from_dict(data.get('destination')),
            times={name: data.get(name) for name in _TIME_FIELDS},
        )

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses and caching."""
        result = {
            'ident': self.ident,
            'fa_flight_id': self.fa_flight_id,
            'status': self.status,
            'operator': self.operator,
            'operator_icao': self.operator_icao,
            'registration': self.registration,
            'aircraft_type': self.aircraft_type,
            'route_distance': self.route_distance,
            'cancelled': self.cancelled,
            'diverted': self.diverted,
            'origin': asdict(self.origin) if self.origin else None,
            'destination': asdict(self.destination) if self.destination else None,
        }
        for name in _TIME_FIELDS:
            result[name] = self.times.get(name)
        return result

    def time(self, name: str) -> Optional[str]:
        """Get one of the out/off/on/in timestamps by field name."""
        return self.times.get(name)

    @property
    def is_in_flight(self) -> bool:
        return self.status in IN_FLIGHT_STATUSES


@dataclass(frozen=True)
class PositionSample:
    """A single point-in-time telemetry reading from a flight track."""
    latitude: float
    longitude: float
    altitude: Optional[int] = None  # Hundreds of feet, as reported
    heading: Optional[int] = None
    groundspeed: Optional[int] = None  # Knots
    timestamp: Optional[str] = None
    altitude_change: Optional[str] = None  # 'C' climbing, 'D' descending, '-' level
    fa_flight_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['PositionSample']:
        """Returns None if the sample has no coordinates."""
        if data.get('latitude') is None or data.get('longitude') is None:
            return None
        return cls(
            latitude=data['latitude'],
            longitude=data['longitude'],
            altitude=data.get('altitude'),
            heading=data.get('heading'),
            groundspeed=data.get('groundspeed'),
            timestamp=data.get('timestamp'),
            altitude_change=data.get('altitude_change'),
            fa_flight_id=data.get('fa_flight_id'),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TrackedPosition:
    """Latest track sample plus the flight leg it belongs to."""
    sample: PositionSample
    flight: FlightRecord

    @property
    def in_flight(self) -> bool:
        return self.flight.is_in_flight


@dataclass
class FlightPage:
    """One (possibly multi-page) listing response."""
    flights: List[FlightRecord]
    num_pages: int = 0
    next_link: Optional[str] = None


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with a Z suffix, as AeroAPI expects."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


class FlightAwareClient:
    """
    Client for the FlightAware AeroAPI.

    Handles:
    - GET /flights/{ident} with optional start/end and max_pages
    - GET /flights/{fa_flight_id}/track
    - Error translation into FlightAwareError
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = 'https://aeroapi.flightaware.com/aeroapi',
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.api_key:
            logger.warning('FlightAware API key not configured - flight lookups disabled')

    @classmethod
    def from_config(cls) -> 'FlightAwareClient':
        """Create client from application configuration."""
        return cls(
            api_key=config.flightaware.api_key,
            base_url=config.flightaware.base_url,
            timeout=config.flightaware.timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request(self, path: str, params: Optional[dict] = None) -> dict:
        """
        Perform a GET against AeroAPI and return the decoded JSON body.

        Raises:
            FlightAwareConfigError if no API key is configured
            FlightAwareError on HTTP or network failures
        """
        if not self.api_key:
            raise FlightAwareConfigError()

        url = f'{self.base_url}{path}'
        logger.debug(f'FlightAware request: {url} params={params}')

        try:
            response = self.session.get(
                url,
                params=params,
                headers={
                    'x-apikey': self.api_key,
                    'Accept': 'application/json',
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f'FlightAware request failed: {e}')
            raise FlightAwareError(f'Network error: {e}') from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}

            message = (
                body.get('detail')
                or body.get('message')
                or f'HTTP {response.status_code}: {response.reason}'
            )
            if response.status_code == 429:
                logger.warning('FlightAware rate limit exceeded')
            else:
                logger.error(f'FlightAware API error: {response.status_code} {message}')
            raise FlightAwareError(message, status=response.status_code, code=body.get('code'))

        try:
            body = response.json()
        except ValueError as e:
            raise FlightAwareError('Invalid JSON in FlightAware response', status=502) from e

        if not isinstance(body, dict):
            logger.error(f'Unexpected FlightAware response body: {type(body).__name__}')
            raise FlightAwareError('Unexpected FlightAware response', status=502)
        return body

    def get_flights_by_ident(
        self,
        ident: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        max_pages: int = 100,
    ) -> FlightPage:
        """
        Fetch flights for a tail number or flight identifier.

        Args:
            ident: Aircraft identifier (e.g., 'N424BB')
            start: Optional earliest flight time
            end: Optional latest flight time
            max_pages: Upper bound on pages AeroAPI aggregates

        Returns:
            FlightPage, most recent flight first (provider ordering)
        """
        params = {}
        if start:
            params['start'] = format_timestamp(start)
        if end:
            params['end'] = format_timestamp(end)
        params['max_pages'] = max_pages

        data = self._request(f'/flights/{quote(ident, safe="")}', params)

        flights = _parse_flights(data)
        links = data.get('links')
        if not isinstance(links, dict):
            links = {}

        logger.info(f'Received {len(flights)} flights from FlightAware for {ident}')

        return FlightPage(
            flights=flights,
            num_pages=data.get('num_pages') or 0,
            next_link=links.get('next'),
        )

    def get_flight_track(self, fa_flight_id: str) -> List[PositionSample]:
        """Fetch the ordered position history (oldest first) for one flight."""
        data = self._request(f'/flights/{quote(fa_flight_id, safe="")}/track')

        samples = []
        for raw in _list_of_dicts(data.get('positions')):
            sample = PositionSample.from_dict(raw)
            if sample:
                samples.append(sample)
        return samples

    def get_current_flights(self, ident: str) -> List[FlightRecord]:
        """Fetch the identifier's current flight set with no date filter."""
        data = self._request(f'/flights/{quote(ident, safe="")}')
        return _parse_flights(data)

    def get_current_position(self, ident: str) -> Optional[TrackedPosition]:
        """
        Get the most recent position of the aircraft.

        Picks the first in-flight leg (falling back to the most recent leg)
        and returns the last sample of its track together with that leg,
        or None if there is nothing to track. Callers check in_flight
        before treating the sample as a live position.
        """
        flights = self.get_current_flights(ident)
        if not flights:
            return None

        active = next((f for f in flights if f.is_in_flight), flights[0])
        if not active.fa_flight_id:
            return None

        positions = self.get_flight_track(active.fa_flight_id)
        if not positions:
            return None
        return TrackedPosition(sample=positions[-1], flight=active)


def _list_of_dicts(value: Any) -> List[Dict[str, Any]]:
    """Entries of a JSON array that are objects; anything else is dropped."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _parse_flights(data: Dict[str, Any]) -> List[FlightRecord]:
    return [FlightRecord.from_dict(f) for f in _list_of_dicts(data.get('flights'))]


# Singleton instance
flightaware_client = FlightAwareClient.from_config()
