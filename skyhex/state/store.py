"""
Latest-state store - newest known observation per aircraft.

Provides the "latest row per key" view the query layer reads:
- Exactly one observation per aircraft, the one with the greatest timestamp
- Idempotent under duplicate and out-of-order delivery
- Thread-safe: concurrent readers, writers serialized per aircraft

Design rationale:
The view has two halves. The latest_positions table is the durable copy,
written with a timestamp-guarded upsert so the database itself never
regresses. The in-memory map is what readers see; an observation is
published there only after its database write has committed, so a reader
never observes a half-applied update.

Ordering rule: an observation replaces the stored one when its timestamp
is greater than or equal to it. Older observations are dropped; on a tie
the later-arriving observation wins.
"""

import logging
import threading
import time
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, sessionmaker

from skyhex.geo.bbox import BoundingBox
from skyhex.models import LatestPosition, Observation
from skyhex.models.base import SessionLocal, get_session

logger = logging.getLogger(__name__)


def supersedes(incoming: Observation, current: Optional[Observation]) -> bool:
    """True if incoming should replace current (newer, or a later-arriving tie)."""
    return current is None or incoming.timestamp >= current.timestamp


def collapse_batch(observations: Iterable[Observation]) -> Dict[str, Observation]:
    """Reduce a batch to one observation per aircraft, applying the ordering rule."""
    winners: Dict[str, Observation] = {}
    for obs in observations:
        if supersedes(obs, winners.get(obs.icao24)):
            winners[obs.icao24] = obs
    return winners


class LatestStateStore:
    """
    Latest observation per aircraft, durable in the database and served
    from memory.

    Writes for different aircraft take different locks and never wait on
    each other; writes for the same aircraft are serialized.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or SessionLocal

        self._latest: Dict[str, Observation] = {}
        # Guards the dict itself (and the lock registry), held only briefly
        self._index_lock = threading.Lock()
        self._entity_locks: Dict[str, threading.Lock] = {}

        self._last_load: float = 0
        self._applied = 0
        self._rejected = 0

    def _lock_for(self, icao24: str) -> threading.Lock:
        with self._index_lock:
            lock = self._entity_locks.get(icao24)
            if lock is None:
                lock = self._entity_locks[icao24] = threading.Lock()
            return lock

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _write_row(self, session: Session, observation: Observation) -> bool:
        """
        Timestamp-guarded upsert of one row.

        Returns False when the database already holds a newer observation.
        """
        if session.get_bind().dialect.name == 'postgresql':
            insert = postgresql_insert
        else:
            insert = sqlite_insert

        stmt = insert(LatestPosition).values(**LatestPosition.row_from_observation(observation))
        stmt = stmt.on_conflict_do_update(
            index_elements=['icao24'],
            set_={col: stmt.excluded[col] for col in LatestPosition.UPSERT_COLUMNS},
            where=stmt.excluded.timestamp >= LatestPosition.timestamp,
        )
        result = session.execute(stmt)
        return result.rowcount != 0

    def upsert(self, observation: Observation) -> bool:
        """
        Apply a single observation in its own transaction.

        Returns True if it became the aircraft's latest state.
        """
        with self._lock_for(observation.icao24):
            if not supersedes(observation, self._latest.get(observation.icao24)):
                self._rejected += 1
                return False

            with get_session(self._session_factory) as session:
                written = self._write_row(session, observation)

            if not written:
                self._rejected += 1
                logger.debug(f'Upsert for {observation.icao24} rejected by database guard')
                return False

            if not self._set(observation):
                self._rejected += 1
                return False
            self._applied += 1
            return True

    def write(self, observations: Iterable[Observation], session: Session) -> List[Observation]:
        """
        Stage a batch inside the caller's transaction.

        Nothing becomes visible until the caller commits and passes the
        returned observations to publish().
        """
        accepted = []
        for obs in collapse_batch(observations).values():
            if not supersedes(obs, self._latest.get(obs.icao24)):
                self._rejected += 1
                continue
            if self._write_row(session, obs):
                accepted.append(obs)
            else:
                self._rejected += 1
        return accepted

    def publish(self, observations: Iterable[Observation]) -> int:
        """
        Make committed observations visible to readers.

        Re-checks ordering under each aircraft's lock, since a concurrent
        upsert may have landed something newer in the meantime.

        Returns count published.
        """
        published = 0
        for obs in observations:
            with self._lock_for(obs.icao24):
                if self._set(obs):
                    published += 1
        self._applied += published
        return published

    def _set(self, observation: Observation) -> bool:
        # Checked again under the index lock: a reload may have swapped the
        # entity lock, so two writers can briefly hold different locks
        with self._index_lock:
            if not supersedes(observation, self._latest.get(observation.icao24)):
                return False
            self._latest[observation.icao24] = observation
            return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, icao24: str) -> Optional[Observation]:
        return self._latest.get(icao24.lower())

    def query(self, bbox: BoundingBox, since: int = 0) -> List[Observation]:
        """
        Latest observation of every aircraft inside bbox seen at or after since.

        Returns list sorted by timestamp, newest first.
        """
        with self._index_lock:
            snapshot = list(self._latest.values())

        result = [
            obs for obs in snapshot
            if obs.timestamp >= since and bbox.contains(obs.latitude, obs.longitude)
        ]
        result.sort(key=lambda obs: obs.timestamp, reverse=True)
        return result

    def load_from_database(self) -> int:
        """
        Rebuild the in-memory view from latest_positions.

        Replaces the whole map atomically and drops per-aircraft locks for
        aircraft the database does not know. Returns count loaded.
        """
        with self._session_factory() as session:
            rows = session.scalars(select(LatestPosition)).all()
            loaded = {row.icao24: row.to_observation() for row in rows}

        with self._index_lock:
            self._latest = loaded
            self._entity_locks = {
                icao24: lock for icao24, lock in self._entity_locks.items() if icao24 in loaded
            }
            self._last_load = time.time()

        logger.info(f'Latest-state store loaded {len(loaded)} aircraft from database')
        return len(loaded)

    def __len__(self) -> int:
        return len(self._latest)

    @property
    def stats(self) -> dict:
        """Get store statistics."""
        return {
            'entries': len(self._latest),
            'applied': self._applied,
            'rejected': self._rejected,
            'last_load': self._last_load,
        }
