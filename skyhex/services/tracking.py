"""
Tracking service - the query surface of SkyHex.

Exposes three read operations:
- latest_positions: newest known position of each aircraft in a bbox
- hex_grid: distinct aircraft per H3 cell over a time window
- stats: size of the event log

Results are plain dicts in the wire shape (camelCase keys) so any
transport can serialize them directly.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from skyhex.aggregation.hex_aggregator import HexAggregator
from skyhex.geo.bbox import BoundingBox
from skyhex.models import FlightEvent, Observation
from skyhex.models.base import SessionLocal
from skyhex.state.store import LatestStateStore

logger = logging.getLogger(__name__)


def position_to_dict(observation: Observation, include_details: bool = False) -> dict:
    """Latest-position wire format."""
    result = {
        'entityId': observation.icao24,
        'lat': observation.latitude,
        'lon': observation.longitude,
        'altitude': observation.altitude,
        'lastSeen': observation.timestamp,
    }
    if include_details:
        result['details'] = observation.details.to_dict() if observation.details else None
    return result


class TrackingService:
    """
    Read operations over the latest-state store and the event log.

    Holds no mutable state of its own; safe to share across request threads.
    """

    def __init__(
        self,
        store: LatestStateStore,
        aggregator: Optional[HexAggregator] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        self.store = store
        self.aggregator = aggregator or HexAggregator(session_factory=self._session_factory)

    def latest_positions(
        self,
        bbox: BoundingBox,
        since: int = 0,
        include_details: bool = False,
    ) -> List[dict]:
        """
        One entry per aircraft whose latest observation is inside bbox and
        no older than since. Newest first.
        """
        return [
            position_to_dict(obs, include_details)
            for obs in self.store.query(bbox, since)
        ]

    def hex_grid(
        self,
        resolution: int,
        bbox: BoundingBox,
        from_ts: int,
        to_ts: int,
    ) -> List[dict]:
        """
        Distinct aircraft per cell at `resolution`.

        Raises UnsupportedResolutionError for resolutions the aggregator
        cannot answer, ValueError for an inverted time window.
        """
        cells = self.aggregator.aggregate(resolution, bbox, from_ts, to_ts)
        return [cell.to_dict() for cell in cells]

    def stats(self) -> dict:
        """Total events logged and distinct aircraft ever seen."""
        stmt = select(
            func.count(FlightEvent.id),
            func.count(func.distinct(FlightEvent.icao24)),
        )
        with self._session_factory() as session:
            total, unique = session.execute(stmt).one()

        return {
            'totalEvents': total or 0,
            'uniqueEntities': unique or 0,
        }
