"""
Observation - one aircraft's state at one instant.

Observations are created once at ingestion, carry their full H3 ladder
(resolution 0..10), and are never modified afterwards. The same value
is appended to the event log and offered to the latest-state store.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from skyhex.geo.indexer import cell_ladder, check_resolution
from skyhex.models.flight_details import FlightDetails, SourceKind


@dataclass(frozen=True)
class Observation:
    """
    Normalized position report.

    Units are SI regardless of provider: meters, m/s, degrees.
    cells[r] is the H3 cell at resolution r.
    """
    icao24: str
    timestamp: int
    latitude: float
    longitude: float
    altitude: Optional[float]
    heading: Optional[float]
    ground_speed: Optional[float]
    vertical_rate: Optional[float]
    source: SourceKind
    cells: Tuple[str, ...]
    details: Optional[FlightDetails] = field(default=None, compare=False)

    @classmethod
    def create(
        cls,
        icao24: str,
        timestamp: int,
        latitude: float,
        longitude: float,
        altitude: Optional[float] = None,
        heading: Optional[float] = None,
        ground_speed: Optional[float] = None,
        vertical_rate: Optional[float] = None,
        source: SourceKind = SourceKind.UNKNOWN,
        details: Optional[FlightDetails] = None,
    ) -> 'Observation':
        """
        Build an observation and compute its H3 ladder.

        Raises ValueError if coordinates are out of range.
        """
        latitude = float(latitude)
        longitude = float(longitude)
        return cls(
            icao24=icao24.lower(),
            timestamp=int(timestamp),
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            heading=heading,
            ground_speed=ground_speed,
            vertical_rate=vertical_rate,
            source=source,
            cells=cell_ladder(latitude, longitude),
            details=details,
        )

    def cell(self, resolution: int) -> str:
        return self.cells[check_resolution(resolution)]
