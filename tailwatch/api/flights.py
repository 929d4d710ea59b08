"""
Flight data API endpoints.

Provides endpoints for:
- GET /api/flights/current?ident= - Recent flights (cached, stale on provider error)
- GET /api/flights/position?ident= - Latest position, or none when not flying
- POST /api/flights/refresh?ident= - Bypass the cache and refetch
- GET /api/flights/stats?ident=&year= - Calendar-year flight statistics

FlightAwareError raised here is turned into a JSON error by the
application's error handlers.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from flask import Blueprint, jsonify, request

from tailwatch.analytics import summarize_year, active_flights, sort_flights
from tailwatch.services.flight_data import flight_data_service

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')

IDENT_REQUIRED = 'Aircraft identifier (ident) is required'


def get_ident() -> Optional[str]:
    """Normalised ident query parameter, or None if missing/blank."""
    ident = (request.args.get('ident') or '').strip().upper()
    return ident or None


def ident_required():
    return jsonify({'error': IDENT_REQUIRED}), 400


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


@flights_bp.route('/current', methods=['GET'])
def current_flights():
    """
    List recent flights for an aircraft.

    Query parameters:
    - ident: aircraft identifier (required)
    - sort: 'date' (default, most recent first) or 'route'

    Served from cache when fresh; falls back to an older cache entry if
    FlightAware is failing.
    """
    start_time = time.perf_counter()

    ident = get_ident()
    if not ident:
        return ident_required()

    result = flight_data_service.get_current_flights(ident)

    flights = result.flights
    sort_by = request.args.get('sort')
    if sort_by in ('date', 'route'):
        flights = sort_flights(flights, by=sort_by)

    return jsonify({
        'ident': ident,
        'flights': [f.to_dict() for f in flights],
        'count': len(flights),
        'source': result.source.value,
        'stale': result.stale,
        'cached_at': result.cached_at,
        'timestamp': utc_timestamp(),
        'query_time_ms': _elapsed_ms(start_time),
    })


@flights_bp.route('/position', methods=['GET'])
def current_position():
    """
    Get the aircraft's latest position.

    Returns position=null with a status message when there is no active
    flight. When the aircraft has landed at a known airport the position
    is estimated from the destination and flagged as such.
    """
    start_time = time.perf_counter()

    ident = get_ident()
    if not ident:
        return ident_required()

    result = flight_data_service.get_position(ident)

    return jsonify({
        'ident': ident,
        'position': result.position.to_dict() if result.position else None,
        'status': result.status,
        'estimated': result.estimated,
        'source': result.source.value,
        'timestamp': utc_timestamp(),
        'query_time_ms': _elapsed_ms(start_time),
    })


@flights_bp.route('/refresh', methods=['POST'])
def refresh_flights():
    """Force a FlightAware fetch, overwrite the cache and purge old entries."""
    start_time = time.perf_counter()

    ident = get_ident()
    if not ident:
        return ident_required()

    result = flight_data_service.refresh_flights(ident)

    return jsonify({
        'ident': ident,
        'flights': [f.to_dict() for f in result.flights],
        'count': result.count,
        'refreshed': True,
        'cached': bool(result.cache_written),
        'message': 'Flight data refreshed successfully',
        'timestamp': utc_timestamp(),
        'query_time_ms': _elapsed_ms(start_time),
    })


@flights_bp.route('/stats', methods=['GET'])
def flight_stats():
    """
    Calendar-year statistics for the dashboard cards.

    Query parameters:
    - ident: aircraft identifier (required)
    - year: calendar year (default current UTC year)
    """
    start_time = time.perf_counter()

    ident = get_ident()
    if not ident:
        return ident_required()

    year = datetime.now(timezone.utc).year
    if request.args.get('year'):
        try:
            year = int(request.args['year'])
        except ValueError:
            return jsonify({'error': 'year must be an integer'}), 400

    result = flight_data_service.get_current_flights(ident)
    summary = summarize_year(result.flights, year)

    return jsonify({
        'ident': ident,
        'stats': summary.to_dict(),
        'active_flights': len(active_flights(result.flights)),
        'source': result.source.value,
        'stale': result.stale,
        'timestamp': utc_timestamp(),
        'query_time_ms': _elapsed_ms(start_time),
    })
