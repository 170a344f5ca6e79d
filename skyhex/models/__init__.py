"""
Data model for SkyHex.

Two tables, one log and one compaction of it:
1. flight_events: append-only observations with their H3 ladder
2. latest_positions: newest observation per aircraft

Plus the in-memory value types shared by ingestion, the latest-state
store, and the query layer.
"""

from skyhex.models.base import Base, engine, SessionLocal, init_db, get_session
from skyhex.models.flight_details import (
    FlightDetails,
    Fr24FlightDetails,
    OpenSkyFlightDetails,
    SourceKind,
    flight_details_from_dict,
)
from skyhex.models.observation import Observation
from skyhex.models.flight_event import FlightEvent
from skyhex.models.latest_position import LatestPosition

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'get_session',
    'FlightDetails',
    'Fr24FlightDetails',
    'OpenSkyFlightDetails',
    'SourceKind',
    'flight_details_from_dict',
    'Observation',
    'FlightEvent',
    'LatestPosition',
]
