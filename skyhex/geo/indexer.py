"""
H3 hex indexer.

Maps coordinates to H3 cell identifiers and walks the cell hierarchy.
Resolution 0 is the coarsest (~1100km cells), resolution 10 the finest
we index (~70m cells).

Every observation gets its full resolution ladder computed once at
ingestion time (cell_ladder), so downstream components never touch
geometry again: they only compare and walk identifiers.

Hierarchy invariant (relied on by the aggregator):
    parent(index(lat, lon, fine), coarse) == index(lat, lon, coarse)

H3 children only approximately tile their parent, so calling
latlng_to_cell independently per resolution can break this near cell
edges. Every resolution is therefore derived from the finest cell by
walking parents.
"""

from dataclasses import dataclass
from typing import Tuple

import h3

from skyhex.exceptions import InvalidCellError, UnsupportedResolutionError

MIN_RESOLUTION = 0
MAX_RESOLUTION = 10
RESOLUTIONS = range(MIN_RESOLUTION, MAX_RESOLUTION + 1)

# Placeholder values seen in the event log that must never be treated as cells
SENTINEL_CELLS = frozenset({'', '0', 'test'})


@dataclass(frozen=True)
class HexCell:
    """A cell identifier plus its centroid, cached for rendering."""
    cell_id: str
    resolution: int
    center_lat: float
    center_lon: float

    def to_dict(self) -> dict:
        """Static grid file representation."""
        return {
            'cellId': self.cell_id,
            'resolution': self.resolution,
            'centerLat': self.center_lat,
            'centerLon': self.center_lon,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'HexCell':
        return cls(
            cell_id=data['cellId'],
            resolution=int(data['resolution']),
            center_lat=float(data['centerLat']),
            center_lon=float(data['centerLon']),
        )


def check_resolution(resolution: int) -> int:
    """Return resolution if it is inside the indexed range, else raise."""
    if isinstance(resolution, bool) or not isinstance(resolution, int):
        raise UnsupportedResolutionError(
            f'Resolution must be an integer, got {resolution!r}', resolution
        )
    if not MIN_RESOLUTION <= resolution <= MAX_RESOLUTION:
        raise UnsupportedResolutionError(
            f'Resolution {resolution} outside supported range '
            f'{MIN_RESOLUTION}-{MAX_RESOLUTION}',
            resolution,
        )
    return resolution


def is_valid_cell(value) -> bool:
    """False for non-strings, sentinels, and anything H3 rejects."""
    if not isinstance(value, str) or value in SENTINEL_CELLS:
        return False
    return h3.is_valid_cell(value)


def index(latitude: float, longitude: float, resolution: int) -> str:
    """
    Cell containing (latitude, longitude) at the given resolution.

    Deterministic: the same input always yields the same identifier.
    """
    check_resolution(resolution)
    if not -90 <= latitude <= 90:
        raise ValueError(f'Latitude must be between -90 and 90, got {latitude}')
    if not -180 <= longitude <= 180:
        raise ValueError(f'Longitude must be between -180 and 180, got {longitude}')
    finest = h3.latlng_to_cell(latitude, longitude, MAX_RESOLUTION)
    if resolution == MAX_RESOLUTION:
        return finest
    return h3.cell_to_parent(finest, resolution)


def cell_ladder(latitude: float, longitude: float) -> Tuple[str, ...]:
    """Cells for every supported resolution; position in the tuple = resolution."""
    finest = index(latitude, longitude, MAX_RESOLUTION)
    return tuple(h3.cell_to_parent(finest, res) for res in range(MAX_RESOLUTION)) + (finest,)


def cell_resolution(cell_id: str) -> int:
    if not is_valid_cell(cell_id):
        raise InvalidCellError(f'Invalid cell identifier: {cell_id!r}', cell_id)
    return h3.get_resolution(cell_id)


def parent(cell_id: str, target_resolution: int) -> str:
    """
    Ancestor of cell_id at a strictly coarser resolution.

    Raises:
        InvalidCellError: cell_id is malformed
        UnsupportedResolutionError: target is out of range, or not coarser
            than the cell's own resolution
    """
    own_resolution = cell_resolution(cell_id)
    check_resolution(target_resolution)
    if target_resolution >= own_resolution:
        raise UnsupportedResolutionError(
            f'Parent resolution {target_resolution} must be coarser than '
            f'cell resolution {own_resolution}',
            target_resolution,
        )
    return h3.cell_to_parent(cell_id, target_resolution)


def cell_center(cell_id: str) -> HexCell:
    resolution = cell_resolution(cell_id)
    lat, lon = h3.cell_to_latlng(cell_id)
    return HexCell(
        cell_id=cell_id,
        resolution=resolution,
        center_lat=lat,
        center_lon=lon,
    )
