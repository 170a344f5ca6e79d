"""
FlightEvent model - append-only observation log.

Every accepted observation is recorded here exactly as ingested, with
its H3 cell at every resolution 0..10 precomputed at write time. Rows are
never updated or deleted. The hex aggregator reads this table directly;
the latest-state view is a compaction of it.

Schema optimized for:
- Fast batch inserts (append-only pattern)
- Time-window + bbox scans for grid queries
- Grouping by a single resolution column
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Float, Integer, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from skyhex.geo.indexer import check_resolution
from skyhex.models.base import Base
from skyhex.models.observation import Observation


class FlightEvent(Base):
    """
    One row per (aircraft, observation).

    Duplicate deliveries of the same observation are stored as separate
    rows; readers that count aircraft must count distinct icao24 values.
    """

    __tablename__ = 'flight_events'

    # Surrogate primary key for efficient inserts
    # Using Integer for SQLite compatibility (autoincrement only works with INTEGER)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Not a foreign key to avoid insert overhead
    icao24: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment='ICAO24 hex address'
    )

    timestamp: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment='Unix timestamp of observation'
    )

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    altitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Altitude in meters (geometric, falling back to barometric)'
    )
    heading: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='True track in degrees (0=north)'
    )
    ground_speed: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Ground speed in m/s'
    )
    vertical_rate: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Vertical rate in m/s (positive=climb)'
    )

    source: Mapped[str] = mapped_column(String(16), nullable=False, default='unknown')

    # H3 ladder, coarsest to finest
    h3_res0: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res1: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res2: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res3: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res4: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res5: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res6: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res7: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res8: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res9: Mapped[str] = mapped_column(String(16), nullable=False)
    h3_res10: Mapped[str] = mapped_column(String(16), nullable=False)

    # Ingestion time, distinct from the observation timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        # Grid queries: time window first, then bbox
        Index('ix_flight_events_time_location', 'timestamp', 'latitude', 'longitude'),
        Index('ix_flight_events_icao_time', 'icao24', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<FlightEvent {self.icao24} @ {self.timestamp}>'

    @classmethod
    def cell_column(cls, resolution: int):
        """Column holding cells at the given resolution."""
        return getattr(cls, f'h3_res{check_resolution(resolution)}')

    @staticmethod
    def row_from_observation(observation: Observation) -> dict:
        """Insert parameters for one observation."""
        row = {
            'icao24': observation.icao24,
            'timestamp': observation.timestamp,
            'latitude': observation.latitude,
            'longitude': observation.longitude,
            'altitude': observation.altitude,
            'heading': observation.heading,
            'ground_speed': observation.ground_speed,
            'vertical_rate': observation.vertical_rate,
            'source': observation.source.value,
            'created_at': datetime.now(timezone.utc),
        }
        for resolution, cell_id in enumerate(observation.cells):
            row[f'h3_res{resolution}'] = cell_id
        return row
