"""
Axis-aligned geographic bounding box.

Wire order everywhere in SkyHex is [minLat, minLon, maxLat, maxLon],
the same order OpenSky's lamin/lomin/lamax/lomax parameters use.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    Geographic bounding box (WGS84, decimal degrees).

    Edges are inclusive: a point exactly on the boundary is inside.
    """
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def __post_init__(self):
        if not (-90 <= self.min_lat <= 90 and -90 <= self.max_lat <= 90):
            raise ValueError('Latitude must be between -90 and 90')
        if not (-180 <= self.min_lon <= 180 and -180 <= self.max_lon <= 180):
            raise ValueError('Longitude must be between -180 and 180')
        if self.min_lat > self.max_lat or self.min_lon > self.max_lon:
            raise ValueError('Invalid bounding box: min must not exceed max')

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> 'BoundingBox':
        """Build from [minLat, minLon, maxLat, maxLon]."""
        if len(values) != 4:
            raise ValueError(
                f'Bounding box needs 4 values (minLat,minLon,maxLat,maxLon), got {len(values)}'
            )
        try:
            min_lat, min_lon, max_lat, max_lon = (float(v) for v in values)
        except (TypeError, ValueError):
            raise ValueError(f'Bounding box values must be numbers: {values!r}')
        return cls(min_lat, min_lon, max_lat, max_lon)

    @classmethod
    def parse(cls, value: str) -> 'BoundingBox':
        """Parse 'minLat,minLon,maxLat,maxLon'."""
        if not value:
            raise ValueError('Bounding box is empty')
        return cls.from_sequence([part.strip() for part in value.split(',')])

    @classmethod
    def world(cls) -> 'BoundingBox':
        return cls(-90.0, -180.0, 90.0, 180.0)

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_lat <= latitude <= self.max_lat and
            self.min_lon <= longitude <= self.max_lon
        )

    def to_list(self) -> List[float]:
        return [self.min_lat, self.min_lon, self.max_lat, self.max_lon]

    def to_params(self) -> dict:
        """Convert to OpenSky API query parameters."""
        return {
            'lamin': self.min_lat,
            'lomin': self.min_lon,
            'lamax': self.max_lat,
            'lomax': self.max_lon,
        }

    def to_polygon(self) -> List[Tuple[float, float]]:
        """Corner vertices as (lat, lon), counter-clockwise from south-west."""
        return [
            (self.min_lat, self.min_lon),
            (self.min_lat, self.max_lon),
            (self.max_lat, self.max_lon),
            (self.max_lat, self.min_lon),
        ]
