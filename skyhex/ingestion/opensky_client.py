"""
OpenSky Network API client.

Handles communication with the OpenSky REST API, including:
- Authentication (optional but recommended for higher rate limits)
- Bounding box queries for geographic filtering
- Rate limiting compliance

OpenSky state vector format (array indices):
0: icao24          - ICAO24 hex address
1: callsign        - Callsign (8 chars max)
2: origin_country  - Country of registration
3: time_position   - Unix timestamp of last position update
4: last_contact    - Unix timestamp of last message
5: longitude       - WGS84 longitude
6: latitude        - WGS84 latitude
7: baro_altitude   - Barometric altitude (meters)
8: on_ground       - Boolean
9: velocity        - Ground speed (m/s)
10: true_track     - Track angle (degrees, 0=north)
11: vertical_rate  - Vertical rate (m/s)
12: sensors        - Sensor IDs (array)
13: geo_altitude   - Geometric altitude (meters)
14: squawk         - Transponder code
15: spi            - Special position indicator
16: position_source - 0=ADS-B, 1=ASTERIX, 2=MLAT, 3=FLARM
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, List, Tuple, Any

import requests
from requests.auth import HTTPBasicAuth

from skyhex.config import config
from skyhex.geo.bbox import BoundingBox

logger = logging.getLogger(__name__)


@dataclass
class StateVector:
    """
    Parsed state vector from OpenSky API.

    Normalizes the raw array format into a typed dataclass.
    All values may be None if not reported by the aircraft.
    """
    icao24: str
    callsign: Optional[str]
    origin_country: Optional[str]
    time_position: Optional[int]
    last_contact: Optional[int]
    longitude: Optional[float]
    latitude: Optional[float]
    baro_altitude: Optional[float]
    on_ground: bool
    velocity: Optional[float]
    true_track: Optional[float]
    vertical_rate: Optional[float]
    geo_altitude: Optional[float]
    squawk: Optional[str]
    spi: bool
    position_source: Optional[int]

    @classmethod
    def from_array(cls, arr: List[Any]) -> Optional['StateVector']:
        """
        Parse OpenSky state vector array into StateVector object.

        Returns None if the array is malformed or has no icao24.
        Position and timestamp may still be missing; see is_complete().
        """
        if not isinstance(arr, (list, tuple)) or len(arr) < 17:
            return None

        icao24 = arr[0]
        if not icao24 or not isinstance(icao24, str):
            return None

        # Normalize callsign (strip whitespace, handle None)
        callsign = arr[1]
        if callsign is not None and not isinstance(callsign, str):
            return None
        if callsign:
            callsign = callsign.strip() or None

        return cls(
            icao24=icao24.strip().lower(),  # Normalize to lowercase
            callsign=callsign,
            origin_country=arr[2],
            time_position=arr[3],
            last_contact=arr[4],
            longitude=arr[5],
            latitude=arr[6],
            baro_altitude=arr[7],
            on_ground=bool(arr[8]),
            velocity=arr[9],
            true_track=arr[10],
            vertical_rate=arr[11],
            geo_altitude=arr[13],
            squawk=arr[14],
            spi=bool(arr[15]),
            position_source=arr[16],
        )

    @property
    def timestamp(self) -> Optional[int]:
        """Position time, falling back to last contact."""
        return self.time_position if self.time_position is not None else self.last_contact

    @property
    def altitude(self) -> Optional[float]:
        """Geometric altitude, falling back to barometric."""
        return self.geo_altitude if self.geo_altitude is not None else self.baro_altitude

    def has_position(self) -> bool:
        """Check if this state has valid position data."""
        return self.latitude is not None and self.longitude is not None

    def is_complete(self) -> bool:
        """Has the minimum needed to index: position and a timestamp."""
        return self.has_position() and self.timestamp is not None


class OpenSkyClient:
    """
    Client for OpenSky Network API.

    Handles:
    - GET requests to /states/all endpoint
    - Optional authentication for higher rate limits
    - Bounding box filtering
    - Rate limiting (internal tracking)
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        base_url: str = 'https://opensky-network.org/api',
        timeout: float = 30,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.auth = None
        if username and password:
            self.auth = HTTPBasicAuth(username, password)
            logger.info('OpenSky client initialized with authentication')
        else:
            logger.warning('OpenSky client running without authentication (lower rate limits)')

        self.session = requests.Session()
        self.last_request_time: float = 0
        self._min_interval = 5.0 if self.auth else 10.0

    @classmethod
    def from_config(cls) -> 'OpenSkyClient':
        """Create client from application configuration."""
        return cls(
            username=config.opensky.username,
            password=config.opensky.password,
            base_url=config.opensky.base_url,
        )

    def _wait_for_rate_limit(self) -> None:
        """
        Enforce minimum interval between requests.

        OpenSky rate limits:
        - Anonymous: ~10 seconds between requests
        - Authenticated: ~5 seconds between requests
        """
        elapsed = time.time() - self.last_request_time
        if elapsed < self._min_interval:
            sleep_time = self._min_interval - elapsed
            logger.debug(f'Rate limiting: sleeping {sleep_time:.1f}s')
            time.sleep(sleep_time)

    def get_states(self, bbox: Optional[BoundingBox] = None) -> Tuple[int, List[StateVector], int]:
        """
        Fetch current state vectors from OpenSky.

        Args:
            bbox: Optional bounding box to filter by geography

        Returns:
            Tuple of (api_timestamp, parsed state vectors, count of raw
            records that could not be parsed)

        Raises:
            requests.RequestException on network/API errors
            ValueError if the response body is not valid JSON
        """
        self._wait_for_rate_limit()

        url = f'{self.base_url}/states/all'
        params = bbox.to_params() if bbox else {}

        logger.debug(f'Fetching states: {url} params={params}')

        try:
            response = self.session.get(
                url,
                params=params,
                auth=self.auth,
                timeout=self.timeout,
            )
            self.last_request_time = time.time()

            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout:
            logger.error('OpenSky API timeout')
            raise
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 429:
                logger.warning('OpenSky rate limit exceeded')
            else:
                status = e.response.status_code if e.response is not None else '?'
                logger.error(f'OpenSky API error: {status}')
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f'OpenSky request failed: {e}')
            raise

        if not isinstance(data, dict):
            raise ValueError(f'Unexpected OpenSky response type: {type(data).__name__}')

        api_time = data.get('time') or int(time.time())
        states_raw = data.get('states') or []

        logger.info(f'Received {len(states_raw)} state vectors from OpenSky')

        states = []
        malformed = 0
        for arr in states_raw:
            try:
                sv = StateVector.from_array(arr)
            except (TypeError, AttributeError, ValueError) as e:
                logger.debug(f'Unparseable state vector {arr!r}: {e}')
                sv = None
            if sv is None:
                malformed += 1
            else:
                states.append(sv)

        if malformed:
            logger.debug(f'Skipped {malformed} malformed state vectors')

        return api_time, states, malformed
