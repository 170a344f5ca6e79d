import os

# Configuration is read at import time; pin it before anything imports skyhex
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['TRACKING_BOUNDS'] = '59.5,19.0,70.1,31.5'
os.environ['FINEST_RESOLUTION'] = '8'
os.environ['POLL_INTERVAL_SECONDS'] = '60'
os.environ['GENERATE_POLYFILL_ON_STARTUP'] = '0'
os.environ.pop('OPENSKY_USERNAME', None)
os.environ.pop('OPENSKY_PASSWORD', None)

import pytest  # noqa: E402
from sqlalchemy import insert  # noqa: E402

from skyhex.aggregation import HexAggregator  # noqa: E402
from skyhex.models import FlightEvent, Observation, SourceKind, init_db  # noqa: E402
from skyhex.models.base import build_engine, build_session_factory  # noqa: E402
from skyhex.state import LatestStateStore  # noqa: E402

HELSINKI = (60.1699, 24.9384)


@pytest.fixture
def engine():
    eng = build_engine('sqlite://')
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return LatestStateStore(session_factory=session_factory)


@pytest.fixture
def aggregator(session_factory):
    return HexAggregator(session_factory=session_factory, finest_resolution=8)


@pytest.fixture
def make_observation():
    def _make(icao24='abc123', timestamp=1_700_000_000, lat=HELSINKI[0], lon=HELSINKI[1], **kwargs):
        kwargs.setdefault('source', SourceKind.OPENSKY)
        return Observation.create(
            icao24=icao24,
            timestamp=timestamp,
            latitude=lat,
            longitude=lon,
            **kwargs,
        )
    return _make


@pytest.fixture
def record_events(session_factory):
    """Append observations straight to flight_events."""
    def _record(observations):
        with session_factory() as session:
            session.execute(
                insert(FlightEvent),
                [FlightEvent.row_from_observation(obs) for obs in observations],
            )
            session.commit()
    return _record
