from unittest import mock

import pytest
import requests

from skyhex.geo import BoundingBox
from skyhex.ingestion import IngestionPipeline, OpenSkyClient, StateVector

STATE = [
    '4ca7b5', 'RYR1AB  ', 'Ireland', 1_700_000_000, 1_700_000_001,
    24.95, 60.31, 3500.0, False, 180.5, 271.0, 5.2,
    None, 3600.0, '7000', False, 0,
]


def _response(payload, status=200):
    response = mock.Mock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def client():
    c = OpenSkyClient(base_url='https://opensky.test/api')
    c._min_interval = 0
    c.session = mock.Mock()
    return c


def test_state_vector_from_array() -> None:
    sv = StateVector.from_array(STATE)
    assert sv.icao24 == '4ca7b5'
    assert sv.callsign == 'RYR1AB'
    assert sv.timestamp == 1_700_000_000
    assert sv.altitude == 3600.0
    assert sv.is_complete()


def test_state_vector_altitude_falls_back_to_baro() -> None:
    arr = list(STATE)
    arr[13] = None
    assert StateVector.from_array(arr).altitude == 3500.0


@pytest.mark.parametrize('arr', [None, 'abc', [], STATE[:16], [None] + STATE[1:], [''] + STATE[1:]])
def test_state_vector_rejects_malformed(arr) -> None:
    assert StateVector.from_array(arr) is None


def test_get_states_sends_bbox_params(client) -> None:
    client.session.get.return_value = _response({'time': 1_700_000_005, 'states': [STATE]})
    bbox = BoundingBox(59.5, 19.0, 70.1, 31.5)

    api_time, states, malformed = client.get_states(bbox)

    assert api_time == 1_700_000_005
    assert [sv.icao24 for sv in states] == ['4ca7b5']
    assert malformed == 0
    _, kwargs = client.session.get.call_args
    assert kwargs['params'] == {'lamin': 59.5, 'lomin': 19.0, 'lamax': 70.1, 'lomax': 31.5}
    assert client.session.get.call_args[0][0] == 'https://opensky.test/api/states/all'


def test_get_states_counts_malformed(client) -> None:
    client.session.get.return_value = _response({'time': 1, 'states': [STATE, ['bad'], None]})
    _, states, malformed = client.get_states()
    assert len(states) == 1
    assert malformed == 2


def test_state_vector_rejects_non_string_callsign() -> None:
    assert StateVector.from_array([STATE[0], 12345] + STATE[2:]) is None


def test_bad_record_does_not_sink_the_batch(client, store, session_factory) -> None:
    other = ['4ca7b6'] + STATE[1:]
    client.session.get.return_value = _response({
        'time': 1_700_000_005,
        'states': [STATE, [STATE[0], 12345] + STATE[2:], other],
    })

    _, states, malformed = client.get_states()
    assert [sv.icao24 for sv in states] == ['4ca7b5', '4ca7b6']
    assert malformed == 1

    pipeline = IngestionPipeline(
        store=store, client=client, bbox=BoundingBox.world(), session_factory=session_factory,
    )
    assert pipeline.fetch_and_process() == 2
    assert len(store) == 2
    assert pipeline.stats['dropped_count'] == 1


def test_get_states_handles_null_states(client) -> None:
    client.session.get.return_value = _response({'time': 1, 'states': None})
    assert client.get_states() == (1, [], 0)


def test_http_error_is_raised(client) -> None:
    client.session.get.return_value = _response({}, status=429)
    with pytest.raises(requests.HTTPError):
        client.get_states()


def test_timeout_is_raised(client) -> None:
    client.session.get.side_effect = requests.Timeout('slow')
    with pytest.raises(requests.RequestException):
        client.get_states()


def test_non_object_body_is_rejected(client) -> None:
    client.session.get.return_value = _response(['not', 'an', 'object'])
    with pytest.raises(ValueError):
        client.get_states()


def test_credentials_enable_basic_auth() -> None:
    authed = OpenSkyClient(username='user', password='secret')
    assert authed.auth is not None
    assert authed._min_interval == 5.0
    assert OpenSkyClient().auth is None
