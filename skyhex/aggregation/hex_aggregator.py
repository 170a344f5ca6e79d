"""
Hex aggregator - distinct aircraft per H3 cell.

Answers grid queries at any resolution up to the finest one stored in the
event log (F, default 8). Coarser grids are derived by walking each
F-cell up to its ancestor, never by re-querying another column.

Counting rule: we keep the *set* of aircraft per cell, not a count. When
several F-cells merge into one coarser ancestor the sets are unioned
before taking their size. Summing per-cell counts would count an
aircraft twice if it crossed between two F-cells under the same ancestor
during the query window.

Requests finer than F are rejected outright; there is no data to answer
them correctly.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

import h3
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from skyhex.config import config
from skyhex.exceptions import UnsupportedResolutionError
from skyhex.geo.bbox import BoundingBox
from skyhex.geo.indexer import check_resolution, is_valid_cell, parent
from skyhex.models import FlightEvent
from skyhex.models.base import SessionLocal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellCount:
    """Distinct aircraft seen in one cell during the query window."""
    cell_id: str
    count: int

    def to_dict(self) -> dict:
        return {'cellId': self.cell_id, 'count': self.count}


def check_aggregation_resolution(resolution: int, finest_resolution: int) -> int:
    """Reject resolutions outside 0..10 or finer than what is stored."""
    check_resolution(resolution)
    if resolution > finest_resolution:
        raise UnsupportedResolutionError(
            f'Unsupported resolution {resolution}: finest stored resolution is {finest_resolution}',
            resolution,
        )
    return resolution


def _is_stored_cell(cell_id, finest_resolution: int) -> bool:
    """Valid H3 id at exactly the stored resolution."""
    return is_valid_cell(cell_id) and h3.get_resolution(cell_id) == finest_resolution


def aggregate_rows(
    rows: Iterable[Tuple[str, str]],
    resolution: int,
    finest_resolution: int,
) -> List[CellCount]:
    """
    Aggregate (icao24, finest_cell) pairs into per-cell distinct counts.

    Rows with empty, placeholder, or malformed cell ids are discarded.
    Cells with no aircraft are omitted. Result is sorted by cell id.
    """
    check_resolution(finest_resolution)
    check_aggregation_resolution(resolution, finest_resolution)

    buckets: Dict[str, Set[str]] = defaultdict(set)
    discarded = 0
    for icao24, cell_id in rows:
        if not icao24 or not _is_stored_cell(cell_id, finest_resolution):
            discarded += 1
            continue
        buckets[cell_id].add(icao24)

    if discarded:
        logger.debug(f'Discarded {discarded} rows with invalid cell ids')

    if resolution < finest_resolution:
        merged: Dict[str, Set[str]] = defaultdict(set)
        for cell_id, aircraft in buckets.items():
            merged[parent(cell_id, resolution)] |= aircraft
        buckets = merged

    return [
        CellCount(cell_id=cell_id, count=len(aircraft))
        for cell_id, aircraft in sorted(buckets.items())
        if aircraft
    ]


class HexAggregator:
    """
    Grid queries over the flight_events log.

    Read-only and stateless between calls; safe to share across request
    threads.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        finest_resolution: Optional[int] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        if finest_resolution is None:
            finest_resolution = config.index.finest_resolution
        self.finest_resolution = check_resolution(finest_resolution)

    def aggregate(
        self,
        resolution: int,
        bbox: BoundingBox,
        from_ts: int,
        to_ts: int,
    ) -> List[CellCount]:
        """
        Distinct aircraft per cell at `resolution`, for observations inside
        bbox with from_ts <= timestamp <= to_ts.

        Raises:
            UnsupportedResolutionError: resolution out of range or finer
                than the stored resolution
            ValueError: from_ts is after to_ts
        """
        check_aggregation_resolution(resolution, self.finest_resolution)
        if from_ts > to_ts:
            raise ValueError(f'Invalid time window: from {from_ts} is after to {to_ts}')

        start_time = time.perf_counter()

        cell_column = FlightEvent.cell_column(self.finest_resolution)
        stmt = (
            select(FlightEvent.icao24, cell_column)
            .where(
                FlightEvent.timestamp >= from_ts,
                FlightEvent.timestamp <= to_ts,
                FlightEvent.latitude >= bbox.min_lat,
                FlightEvent.latitude <= bbox.max_lat,
                FlightEvent.longitude >= bbox.min_lon,
                FlightEvent.longitude <= bbox.max_lon,
            )
            .distinct()
        )

        with self._session_factory() as session:
            rows = session.execute(stmt).all()

        result = aggregate_rows(rows, resolution, self.finest_resolution)

        query_time_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f'Hex grid r{resolution} from r{self.finest_resolution}: '
            f'{len(rows)} pairs -> {len(result)} cells in {query_time_ms:.1f}ms'
        )
        return result
