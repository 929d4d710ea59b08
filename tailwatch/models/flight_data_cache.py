"""
FlightDataCache model - short-lived snapshots of upstream flight data.

One row per cache key (upsert pattern). The payload is opaque JSON; only
last_updated is ever inspected, to judge freshness and for purging.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from tailwatch.models.base import Base


class FlightDataCache(Base):
    """
    Cached provider response keyed by aircraft identifier.

    Fields:
        ident: Cache key, normally a tail number (e.g., 'N424BB')
        data: JSON snapshot, e.g. {"flights": [...], "timestamp": ..., "source": ...}
        last_updated: When the snapshot was written (UTC)
        created_at: When the row was first inserted (UTC)
    """

    __tablename__ = 'flight_data_cache'

    ident: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment='Aircraft identifier or derived cache key'
    )

    data: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        comment='Opaque JSON payload'
    )

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment='Last write time, used for freshness and purging'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        comment='Record creation timestamp'
    )

    def __repr__(self) -> str:
        return f'<FlightDataCache {self.ident} @ {self.last_updated}>'
