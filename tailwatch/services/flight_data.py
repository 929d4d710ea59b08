"""
Flight data access layer - read-through cache in front of FlightAware.

Flight list policy (stale-while-error, no background refresh):
1. Serve a cache entry younger than the short window.
2. Otherwise call FlightAware and write the result back (best effort).
3. If FlightAware fails, serve a cache entry younger than the wider
   fallback window, marked as cache-sourced and stale.
4. If there is nothing to fall back on, re-raise the provider error.

Positions use a much tighter window and are only cached while the
chosen leg is in flight. Not finding an active flight is a
normal outcome, so position lookups never raise.

Concurrent requests for the same ident are not coalesced; both may miss
and both may call the provider.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Tuple

from tailwatch.cache import CacheStore, flight_cache, utc_now
from tailwatch.config import config
from tailwatch.services.flightaware import (
    FlightAwareClient,
    FlightAwareError,
    FlightRecord,
    PositionSample,
    flightaware_client,
)

logger = logging.getLogger(__name__)

NO_ACTIVE_FLIGHT = 'No active flights found'

# Coordinates for airports this aircraft frequents, used to place it on
# the map after landing when there is no live track.
KNOWN_AIRPORTS = {
    'KPSM': (43.0778, -70.8233, 'Portsmouth International'),
    'KBED': (42.4700, -71.2889, 'Laurence G Hanscom Field'),
    'KBGR': (44.8073, -68.8281, 'Bangor International'),
    'KFRG': (40.7289, -73.4133, 'Republic Airport'),
    'KGHG': (42.1056, -70.6719, 'Marshfield Municipal'),
    'KBTV': (44.4719, -73.1533, 'Burlington International'),
    'KFAY': (35.0428, -78.8803, 'Fayetteville Regional'),
    'KTDF': (36.2833, -78.9833, 'Person County'),
}


class DataSource(str, Enum):
    """Where a result came from."""
    CACHE = 'cache'
    LIVE = 'live'
    ESTIMATED = 'estimated'
    NONE = 'none'


@dataclass
class FlightDataResult:
    """Flight list for an identifier plus provenance."""
    ident: str
    flights: List[FlightRecord]
    source: DataSource
    stale: bool = False
    cached_at: Optional[str] = None
    cache_written: Optional[bool] = None

    @property
    def count(self) -> int:
        return len(self.flights)


@dataclass
class PositionResult:
    """Latest position for an identifier, or None when not flying."""
    ident: str
    position: Optional[PositionSample]
    status: str
    source: DataSource
    estimated: bool = False


def position_cache_key(ident: str) -> str:
    """Positions live in their own row so they can expire independently."""
    return f'{ident}:position'


class FlightDataService:
    """
    Orchestrates cache reads, provider calls and cache writes.

    Windows default to the configured values and can be overridden for
    testing.
    """

    def __init__(
        self,
        client: FlightAwareClient,
        cache: CacheStore,
        flights_max_age_minutes: Optional[int] = None,
        fallback_max_age_minutes: Optional[int] = None,
        position_max_age_minutes: Optional[int] = None,
        purge_hours: Optional[int] = None,
        history_start: Optional[datetime] = None,
        max_pages: Optional[int] = None,
    ):
        self.client = client
        self.cache = cache

        windows = config.cache
        self.flights_max_age_minutes = (
            windows.flights_max_age_minutes if flights_max_age_minutes is None else flights_max_age_minutes
        )
        self.fallback_max_age_minutes = (
            windows.fallback_max_age_minutes if fallback_max_age_minutes is None else fallback_max_age_minutes
        )
        self.position_max_age_minutes = (
            windows.position_max_age_minutes if position_max_age_minutes is None else position_max_age_minutes
        )
        self.purge_hours = windows.purge_hours if purge_hours is None else purge_hours
        self.history_start = config.flightaware.history_start if history_start is None else history_start
        self.max_pages = config.flightaware.max_pages if max_pages is None else max_pages

    # -------------------------------------------------------------------------
    # Flight list
    # -------------------------------------------------------------------------

    def get_current_flights(self, ident: str) -> FlightDataResult:
        """
        Get recent flights for ident, preferring a fresh cache entry.

        Raises:
            FlightAwareError if the provider fails and no fallback exists
        """
        cached = self.cache.get(ident, self.flights_max_age_minutes)
        if cached is not None:
            return self._from_payload(ident, cached, stale=False)

        try:
            flights = self._fetch_flights(ident)
        except FlightAwareError as e:
            fallback = self.cache.get(ident, self.fallback_max_age_minutes)
            if fallback is None:
                raise
            logger.warning(f'FlightAware failed for {ident} ({e.message}), serving stale cache')
            return self._from_payload(ident, fallback, stale=True)

        written = self.cache.set(ident, self._to_payload(flights, 'FlightAware API'))
        if not written:
            logger.debug(f'Flight data for {ident} not cached')

        return FlightDataResult(
            ident=ident,
            flights=flights,
            source=DataSource.LIVE,
            cache_written=written,
        )

    def refresh_flights(self, ident: str) -> FlightDataResult:
        """
        Bypass the cache, fetch from FlightAware and overwrite the cache.

        Also purges entries older than the purge horizon. Provider errors
        propagate.
        """
        logger.info(f'Force refreshing flight data for {ident}')

        flights = self._fetch_flights(ident)
        written = self.cache.set(ident, self._to_payload(flights, 'FlightAware API (force refresh)'))
        logger.info(f'Force cached flight data for {ident}: {"success" if written else "failed"}')

        self.cache.purge_older_than(self.purge_hours)

        return FlightDataResult(
            ident=ident,
            flights=flights,
            source=DataSource.LIVE,
            cache_written=written,
        )

    def _fetch_flights(self, ident: str) -> List[FlightRecord]:
        page = self.client.get_flights_by_ident(
            ident,
            start=self.history_start,
            end=datetime.now(timezone.utc),
            max_pages=self.max_pages,
        )
        return page.flights

    @staticmethod
    def _to_payload(flights: List[FlightRecord], source: str) -> dict:
        return {
            'flights': [f.to_dict() for f in flights],
            'timestamp': utc_now().isoformat(),
            'source': source,
        }

    @staticmethod
    def _from_payload(ident: str, payload: dict, stale: bool) -> FlightDataResult:
        flights = [FlightRecord.from_dict(f) for f in payload.get('flights') or []]
        return FlightDataResult(
            ident=ident,
            flights=flights,
            source=DataSource.CACHE,
            stale=stale,
            cached_at=payload.get('timestamp'),
        )

    # -------------------------------------------------------------------------
    # Position
    # -------------------------------------------------------------------------

    def get_position(self, ident: str) -> PositionResult:
        """
        Get the latest in-flight position for ident.

        Returns a PositionResult with position=None (or an estimated
        on-ground position) when the aircraft is not flying or FlightAware
        is unavailable.
        """
        key = position_cache_key(ident)

        cached = self.cache.get(key, self.position_max_age_minutes)
        if cached and cached.get('in_flight') and isinstance(cached.get('position'), dict):
            sample = PositionSample.from_dict(cached['position'])
            if sample:
                return PositionResult(ident, sample, 'Active', DataSource.CACHE)

        try:
            tracked = self.client.get_current_position(ident)
        except FlightAwareError as e:
            logger.warning(f'Error getting current position for {ident}: {e.message}')
            tracked = None

        # The last point of a landed leg is not a live position
        if tracked and tracked.in_flight:
            self.cache.set(key, {
                'position': tracked.sample.to_dict(),
                'in_flight': True,
                'timestamp': utc_now().isoformat(),
            })
            return PositionResult(ident, tracked.sample, 'Active', DataSource.LIVE)

        estimate = self._last_known_location(ident)
        if estimate:
            sample, status = estimate
            return PositionResult(ident, sample, status, DataSource.ESTIMATED, estimated=True)

        return PositionResult(ident, None, NO_ACTIVE_FLIGHT, DataSource.NONE)

    def _last_known_location(self, ident: str) -> Optional[Tuple[PositionSample, str]]:
        """
        Place the aircraft at the destination of its most recent flight.

        Only used when that flight has arrived at a known airport. Reads
        the flight cache only; no provider call is made.
        """
        payload = self.cache.get(ident, self.fallback_max_age_minutes)
        if not payload or not payload.get('flights'):
            return None

        latest = FlightRecord.from_dict(payload['flights'][0])
        if latest.status != 'Arrived' or not latest.destination:
            return None

        airport = KNOWN_AIRPORTS.get(latest.destination.code or '')
        if not airport:
            return None

        latitude, longitude, name = airport
        sample = PositionSample(
            latitude=latitude,
            longitude=longitude,
            altitude=0,
            heading=0,
            groundspeed=0,
            timestamp=latest.time('actual_in') or latest.time('estimated_in'),
            altitude_change='',
            fa_flight_id=latest.fa_flight_id,
        )
        return sample, f'On Ground at {name}'


# Singleton instance
flight_data_service = FlightDataService(flightaware_client, flight_cache)
