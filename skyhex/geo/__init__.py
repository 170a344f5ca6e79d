"""
Geospatial primitives for SkyHex.

Bounding boxes, the H3 hex indexer, and the region polyfill generator.
"""

from skyhex.geo.bbox import BoundingBox
from skyhex.geo.indexer import (
    HexCell,
    MAX_RESOLUTION,
    MIN_RESOLUTION,
    RESOLUTIONS,
    cell_center,
    cell_ladder,
    cell_resolution,
    index,
    is_valid_cell,
    parent,
)

__all__ = [
    'BoundingBox',
    'HexCell',
    'MAX_RESOLUTION',
    'MIN_RESOLUTION',
    'RESOLUTIONS',
    'cell_center',
    'cell_ladder',
    'cell_resolution',
    'index',
    'is_valid_cell',
    'parent',
]
