"""
Analytics module for TailWatch.

Summarises flight history with NumPy:
- Calendar-year filtering
- Distance totals and averages
- Angel Flight classification
"""

from tailwatch.analytics.flight_stats import (
    YearSummary,
    summarize_year,
    flights_in_year,
    is_angel_flight,
    active_flights,
    sort_flights,
    flight_date,
)

__all__ = [
    'YearSummary',
    'summarize_year',
    'flights_in_year',
    'is_angel_flight',
    'active_flights',
    'sort_flights',
    'flight_date',
]
