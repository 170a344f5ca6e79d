"""
LatestPosition model - most recent known state of each aircraft.

This table is the durable half of the latest-state store: one row per
icao24, replaced only by an observation with an equal or newer
timestamp. It is a compaction of flight_events, not a separate source of
truth; it exists so the in-memory view can be rebuilt on restart without
scanning the whole event log.

Design notes:
- One row per aircraft (upsert pattern with a timestamp guard)
- Indexed for bbox lookups
- Stores the full H3 ladder and source details of the winning observation
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, String, Float, Integer, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from skyhex.models.base import Base
from skyhex.models.flight_details import SourceKind, flight_details_from_dict
from skyhex.models.observation import Observation


class LatestPosition(Base):
    """Latest observation per aircraft."""

    __tablename__ = 'latest_positions'

    icao24: Mapped[str] = mapped_column(
        String(16),
        primary_key=True,
        comment='ICAO24 hex address'
    )

    # Timestamp of the winning observation (a.k.a. last seen)
    timestamp: Mapped[int] = mapped_column(Integer, nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ground_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vertical_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default='unknown')

    cells: Mapped[list] = mapped_column(JSON, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index('ix_latest_positions_location', 'latitude', 'longitude'),
        Index('ix_latest_positions_timestamp', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<LatestPosition {self.icao24} @ {self.timestamp}>'

    # Columns overwritten when a newer observation wins the upsert
    UPSERT_COLUMNS = (
        'timestamp', 'latitude', 'longitude', 'altitude', 'heading',
        'ground_speed', 'vertical_rate', 'source', 'cells', 'details', 'updated_at',
    )

    @staticmethod
    def row_from_observation(observation: Observation) -> dict:
        return {
            'icao24': observation.icao24,
            'timestamp': observation.timestamp,
            'latitude': observation.latitude,
            'longitude': observation.longitude,
            'altitude': observation.altitude,
            'heading': observation.heading,
            'ground_speed': observation.ground_speed,
            'vertical_rate': observation.vertical_rate,
            'source': observation.source.value,
            'cells': list(observation.cells),
            'details': observation.details.to_dict() if observation.details else None,
            'updated_at': datetime.now(timezone.utc),
        }

    def to_observation(self) -> Observation:
        return Observation(
            icao24=self.icao24,
            timestamp=self.timestamp,
            latitude=self.latitude,
            longitude=self.longitude,
            altitude=self.altitude,
            heading=self.heading,
            ground_speed=self.ground_speed,
            vertical_rate=self.vertical_rate,
            source=SourceKind.parse(self.source),
            cells=tuple(self.cells),
            details=flight_details_from_dict(self.details) if self.details else None,
        )
