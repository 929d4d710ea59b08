"""
Read-through cache store for upstream flight data.

Stores one snapshot per identifier in the flight_data_cache table and
judges freshness on read by comparing last_updated against a caller
supplied maximum age.

The store never raises. A missing database configuration, or any
database error, degrades to "no cache available": reads miss, writes
report False and purges do nothing. Callers treat all of these exactly
like a cache miss.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tailwatch.models import FlightDataCache
from tailwatch.models.base import SessionLocal

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheStore:
    """
    Per-identifier snapshot cache backed by a relational table.

    Thread-safe for statistics; row-level consistency is left to the
    database's native upsert.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._clock = clock

        # Statistics
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._write_failures = 0

        if not self.enabled:
            logger.warning('Cache database not configured - caching disabled')

    @classmethod
    def from_config(cls) -> 'CacheStore':
        """Create a store bound to the configured cache database, if any."""
        return cls(session_factory=SessionLocal)

    @property
    def enabled(self) -> bool:
        return self._session_factory is not None

    def get(self, ident: str, max_age_minutes: float) -> Optional[Any]:
        """
        Get the cached payload for ident if it is no older than max_age_minutes.

        Returns None if not cached, expired, or the store is unavailable.
        """
        if not self.enabled:
            return None

        cutoff = self._clock() - timedelta(minutes=max_age_minutes)

        try:
            with self._session_factory() as session:
                row = session.execute(
                    select(FlightDataCache).where(
                        FlightDataCache.ident == ident,
                        FlightDataCache.last_updated >= cutoff,
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f'Error fetching cached flight data for {ident}: {e}')
            self._record(hit=False)
            return None

        if row is None:
            logger.debug(f'Cache miss for {ident} (max age {max_age_minutes} min)')
            self._record(hit=False)
            return None

        logger.debug(f'Cache hit for {ident} (max age {max_age_minutes} min)')
        self._record(hit=True)
        return row.data

    def set(self, ident: str, payload: Any) -> bool:
        """
        Store payload for ident, replacing any previous snapshot.

        Returns True on success, False if the store is unavailable or the
        write failed.
        """
        if not self.enabled:
            return False

        now = self._clock()

        try:
            with self._session_factory() as session:
                self._upsert(session, ident, payload, now)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f'Error storing cached flight data for {ident}: {e}')
            with self._lock:
                self._write_failures += 1
            return False

        return True

    def purge_older_than(self, hours: float) -> int:
        """
        Delete snapshots not updated within the last `hours`.

        Returns count of rows deleted (0 when unavailable).
        """
        if not self.enabled:
            return 0

        cutoff = self._clock() - timedelta(hours=hours)

        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(FlightDataCache).where(
                        FlightDataCache.last_updated < cutoff
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f'Error clearing old cache: {e}')
            return 0

        deleted = result.rowcount or 0
        if deleted:
            logger.info(f'Cache cleanup: removed {deleted} entries older than {hours}h')
        return deleted

    def _upsert(self, session: Session, ident: str, payload: Any, now: datetime) -> None:
        """INSERT ... ON CONFLICT for SQLite/PostgreSQL, ORM merge elsewhere."""
        dialect = session.get_bind().dialect.name

        if dialect in ('sqlite', 'postgresql'):
            insert = sqlite_insert if dialect == 'sqlite' else postgresql_insert
            stmt = insert(FlightDataCache).values(
                ident=ident,
                data=payload,
                last_updated=now,
                created_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=['ident'],
                set_={
                    'data': stmt.excluded.data,
                    'last_updated': stmt.excluded.last_updated,
                },
            )
            session.execute(stmt)
        else:
            session.merge(FlightDataCache(
                ident=ident,
                data=payload,
                last_updated=now,
            ))

    def _record(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                'enabled': self.enabled,
                'hits': self._hits,
                'misses': self._misses,
                'write_failures': self._write_failures,
                'hit_rate': self._hits / total if total > 0 else 0,
            }


# Singleton instance
flight_cache = CacheStore.from_config()
