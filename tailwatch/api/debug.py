"""
Diagnostics endpoint for the FlightAware integration.

GET /api/debug/flights?ident= - Raw page metadata and current-year
filtering for an ident (defaults to the configured aircraft). Always
calls FlightAware directly, bypassing the cache.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from tailwatch.analytics import flights_in_year, flight_date
from tailwatch.api.flights import utc_timestamp
from tailwatch.config import config
from tailwatch.services.flightaware import flightaware_client

logger = logging.getLogger(__name__)

debug_bp = Blueprint('debug', __name__, url_prefix='/api/debug')


@debug_bp.route('/flights', methods=['GET'])
def debug_flights():
    ident = (request.args.get('ident') or config.aircraft_ident).strip().upper()
    start = config.flightaware.history_start
    end = datetime.now(timezone.utc)

    logger.info(f'DEBUG: fetching flights for {ident}')

    page = flightaware_client.get_flights_by_ident(
        ident, start=start, end=end, max_pages=config.flightaware.max_pages
    )
    current_year = end.year
    this_year = flights_in_year(page.flights, current_year)

    for flight in page.flights:
        when = flight_date(flight)
        logger.debug(
            f'Flight {flight.fa_flight_id}: {when.isoformat() if when else None} '
            f'-> match={bool(when and when.year == current_year)}'
        )

    return jsonify({
        'debug': True,
        'ident': ident,
        'currentYear': current_year,
        'totalFlights': len(page.flights),
        'thisYearFlights': len(this_year),
        'rawResponse': {
            'flights': [f.to_dict() for f in page.flights[:3]],
            'num_pages': page.num_pages,
            'has_next': bool(page.next_link),
        },
        'filteredFlights': [f.to_dict() for f in this_year[:3]],
        'window': {
            'start': start.isoformat(),
            'end': end.isoformat(),
            'max_pages': config.flightaware.max_pages,
        },
        'timestamp': utc_timestamp(),
    })
