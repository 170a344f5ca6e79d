"""
Ingestion pipeline - orchestrates data flow from OpenSky to the store.

Pipeline stages, one cycle per poll interval:
1. Fetch: Poll OpenSky API for state vectors inside the tracking bbox
2. Index: Normalize each state into an Observation with its H3 ladder
3. Append: Add every observation to the flight_events log
4. Upsert: Stage the latest-state update in the same transaction
5. Publish: After commit, make the new latest states visible to readers

Cycles never overlap. A failed fetch or database error aborts that
cycle only; it is logged and the next cycle runs on schedule. Records
missing an id, timestamp, or position are dropped individually.
"""

import logging
import threading
import time
from typing import Optional, List, Callable

import requests
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from skyhex.config import config
from skyhex.geo.bbox import BoundingBox
from skyhex.models import FlightEvent, Observation, OpenSkyFlightDetails, SourceKind
from skyhex.models.base import SessionLocal
from skyhex.ingestion.opensky_client import OpenSkyClient, StateVector
from skyhex.state.store import LatestStateStore

logger = logging.getLogger(__name__)


def observation_from_state(sv: StateVector) -> Optional[Observation]:
    """
    Convert an OpenSky state vector into an indexed Observation.

    Returns None if the record lacks a position or timestamp, or if its
    coordinates are out of range.
    """
    if not sv.is_complete():
        return None

    details = OpenSkyFlightDetails(
        icao24=sv.icao24,
        callsign=sv.callsign,
        on_ground=sv.on_ground,
        squawk=sv.squawk,
        spi=sv.spi,
        position_source=sv.position_source,
    )
    try:
        return Observation.create(
            icao24=sv.icao24,
            timestamp=sv.timestamp,
            latitude=sv.latitude,
            longitude=sv.longitude,
            altitude=sv.altitude,
            heading=sv.true_track,
            ground_speed=sv.velocity,
            vertical_rate=sv.vertical_rate,
            source=SourceKind.OPENSKY,
            details=details,
        )
    except (TypeError, ValueError) as e:
        logger.debug(f'Dropping state for {sv.icao24}: {e}')
        return None


class IngestionPipeline:
    """
    Manages the data ingestion lifecycle.

    Coordinates fetching from OpenSky, indexing, and database operations.
    Can run as a background thread for continuous polling.
    """

    def __init__(
        self,
        store: LatestStateStore,
        client: Optional[OpenSkyClient] = None,
        bbox: Optional[BoundingBox] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            store: Latest-state store updated by every cycle
            client: OpenSky API client (created from config if None)
            bbox: Area to poll (tracking bounds from config if None)
            session_factory: Database sessions (SessionLocal if None)
        """
        self.store = store
        self.client = client or OpenSkyClient.from_config()
        self.bbox = bbox or config.ingestion.tracking_bounds
        self._session_factory = session_factory or SessionLocal

        # State tracking
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._cycle_lock = threading.Lock()
        self._last_fetch_time: float = 0
        self._fetch_count: int = 0
        self._error_count: int = 0
        self._dropped_count: int = 0
        self._events_written: int = 0

        # Callbacks for external integration
        self._on_update_callbacks: List[Callable[[int], None]] = []

    def add_update_callback(self, callback: Callable[[int], None]) -> None:
        """
        Register callback to be invoked after each successful ingestion.

        Callback receives the count of observations ingested.
        """
        self._on_update_callbacks.append(callback)

    def _append_events(self, observations: List[Observation], session: Session) -> int:
        """
        Batch insert into the event log.

        Append-only: events are never updated or deleted.
        """
        if not observations:
            return 0
        session.execute(
            insert(FlightEvent),
            [FlightEvent.row_from_observation(obs) for obs in observations],
        )
        return len(observations)

    def fetch_and_process(self) -> int:
        """
        Execute one ingestion cycle.

        Returns count of observations ingested, or -1 if the cycle was
        aborted (fetch failure, database failure, or a cycle already running).
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning('Previous ingestion cycle still running, skipping')
            return -1
        try:
            return self._run_cycle()
        finally:
            self._cycle_lock.release()

    def _run_cycle(self) -> int:
        # Stage 1: Fetch from OpenSky
        try:
            api_time, states, malformed = self.client.get_states(self.bbox)
        except (requests.RequestException, ValueError) as e:
            self._error_count += 1
            logger.error(f'Fetch failed, skipping cycle: {e}')
            return -1

        self._last_fetch_time = time.time()
        self._fetch_count += 1

        # Stage 2: Index
        observations = []
        for sv in states:
            obs = observation_from_state(sv)
            if obs is None:
                malformed += 1
            else:
                observations.append(obs)

        self._dropped_count += malformed
        if malformed:
            logger.info(f'Dropped {malformed} incomplete records')

        if not observations:
            logger.debug('No aircraft in range')
            return 0

        # Stages 3-4: one transaction for the whole cycle
        try:
            with self._session_factory() as session:
                written = self._append_events(observations, session)
                accepted = self.store.write(observations, session)
                session.commit()
        except SQLAlchemyError as e:
            self._error_count += 1
            logger.error(f'Database error, cycle aborted: {e}')
            return -1

        # Stage 5: visible only after commit
        published = self.store.publish(accepted)
        self._events_written += written

        logger.info(
            f'Ingested {written} observations at {api_time}, '
            f'{published} latest positions updated'
        )

        # Notify callbacks
        for callback in self._on_update_callbacks:
            try:
                callback(written)
            except Exception as e:
                logger.error(f'Update callback error: {e}')

        return written

    def run_continuous(self, interval: Optional[float] = None) -> None:
        """
        Run ingestion loop continuously.

        This method blocks - use start_background() for non-blocking.
        A cycle starts every `interval` seconds, or right after the previous
        one if it overran.
        """
        interval = interval or config.ingestion.poll_interval
        self._running = True
        self._stop_event.clear()

        logger.info(f'Starting continuous ingestion (interval={interval}s)')

        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.fetch_and_process()
            except Exception:
                # Keep the loop alive whatever a single cycle does
                self._error_count += 1
                logger.exception('Unexpected ingestion error')
            elapsed = time.monotonic() - started
            self._stop_event.wait(max(0.0, interval - elapsed))

        self._running = False
        logger.info('Ingestion stopped')

    def start_background(self, interval: Optional[float] = None) -> None:
        """Start ingestion in background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Ingestion already running')
            return

        self._thread = threading.Thread(
            target=self.run_continuous,
            args=(interval,),
            daemon=True,
            name='skyhex-ingestion',
        )
        self._thread.start()
        logger.info('Background ingestion started')

    def stop(self) -> None:
        """Stop background ingestion."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        self._running = False

    @property
    def stats(self) -> dict:
        """Get ingestion statistics."""
        return {
            'fetch_count': self._fetch_count,
            'error_count': self._error_count,
            'dropped_count': self._dropped_count,
            'events_written': self._events_written,
            'last_fetch_time': self._last_fetch_time,
            'running': self._running,
        }
