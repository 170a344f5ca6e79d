import pytest

from skyhex.app import create_app
from skyhex.geo import index
from skyhex.geo.polyfill import write_polyfill_files
from skyhex.state import LatestStateStore

HELSINKI_BBOX = '59.5,19.0,70.1,31.5'


@pytest.fixture
def app(engine, tmp_path):
    app = create_app(start_ingestion=False, engine=engine, polyfill_dir=str(tmp_path))
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app, make_observation, record_events):
    """Two aircraft in the event log, both published to the live store."""
    observations = [
        make_observation(icao24='aaa001', timestamp=100, lat=60.17, lon=24.94),
        make_observation(icao24='aaa001', timestamp=200, lat=60.20, lon=24.90),
        make_observation(icao24='aaa002', timestamp=150, lat=65.01, lon=25.47),
    ]
    record_events(observations)
    store: LatestStateStore = app.config['TRACKING_SERVICE'].store
    for obs in observations:
        store.upsert(obs)
    return observations


def test_health(client) -> None:
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok'}


def test_latest_positions(client, seeded) -> None:
    response = client.get(f'/api/positions/latest?bbox={HELSINKI_BBOX}&since=0')
    assert response.status_code == 200
    body = response.get_json()
    assert body['count'] == 2
    first = body['positions'][0]
    assert first == {
        'entityId': 'aaa001',
        'lat': 60.20,
        'lon': 24.90,
        'altitude': None,
        'lastSeen': 200,
    }


def test_latest_positions_since_filters(client, seeded) -> None:
    body = client.get(f'/api/positions/latest?bbox={HELSINKI_BBOX}&since=190').get_json()
    assert [p['entityId'] for p in body['positions']] == ['aaa001']


def test_latest_positions_accepts_iso_since(client, seeded) -> None:
    body = client.get(
        f'/api/positions/latest?bbox={HELSINKI_BBOX}&since=1970-01-01T00:02:30Z'
    ).get_json()
    assert body['since'] == 150
    assert body['count'] == 2


def test_latest_positions_with_details(client, seeded) -> None:
    body = client.get(f'/api/positions/latest?bbox={HELSINKI_BBOX}&since=0&details=true').get_json()
    assert all('details' in p for p in body['positions'])


@pytest.mark.parametrize('query', ['bbox=1,2,3', 'bbox=a,b,c,d', 'bbox=61,20,60,30', 'since=yesterday'])
def test_latest_positions_bad_params(client, query) -> None:
    response = client.get(f'/api/positions/latest?{query}')
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_single_position(client, seeded) -> None:
    response = client.get('/api/positions/AAA002')
    assert response.status_code == 200
    body = response.get_json()
    assert body['lastSeen'] == 150
    assert len(body['cells']) == 11
    assert client.get('/api/positions/ffffff').status_code == 404


def test_hex_grid(client, seeded) -> None:
    response = client.get(f'/api/grid?resolution=4&bbox={HELSINKI_BBOX}&from=0&to=300')
    assert response.status_code == 200
    body = response.get_json()
    counts = {c['cellId']: c['count'] for c in body['cells']}
    helsinki = index(60.17, 24.94, 4)
    assert counts[helsinki] == 1
    assert counts[index(65.01, 25.47, 4)] == 1
    assert body['resolution'] == 4


@pytest.mark.parametrize('query', [
    'resolution=9',
    'resolution=-1',
    'resolution=abc',
    'bbox=1,2',
    'resolution=4&from=300&to=0',
    'resolution=4&from=soon',
])
def test_hex_grid_bad_params(client, query) -> None:
    response = client.get(f'/api/grid?{query}')
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_hex_grid_requires_resolution(client) -> None:
    assert client.get('/api/grid').status_code == 400


def test_polyfill_served_when_generated(client, app) -> None:
    write_polyfill_files([(60.0, 24.0), (60.0, 25.0), (60.5, 25.0), (60.5, 24.0)], app.config['POLYFILL_DIR'], [2])
    response = client.get('/api/grid/polyfill/2')
    assert response.status_code == 200
    cells = response.get_json()
    assert cells
    assert all(c['resolution'] == 2 for c in cells)


def test_polyfill_missing_is_404(client) -> None:
    response = client.get('/api/grid/polyfill/5')
    assert response.status_code == 404
    assert 'error' in response.get_json()


@pytest.mark.parametrize('resolution', ['11', 'abc'])
def test_polyfill_bad_resolution_is_400(client, resolution) -> None:
    assert client.get(f'/api/grid/polyfill/{resolution}').status_code == 400


def test_stats(client, seeded) -> None:
    body = client.get('/api/metrics/stats').get_json()
    assert body['totalEvents'] == 3
    assert body['uniqueEntities'] == 2


def test_status(client, seeded) -> None:
    body = client.get('/api/metrics/status').get_json()
    assert body['database']['connected'] is True
    assert body['ingestion'] == {'running': False}
    assert body['store']['entries'] == 2
    assert body['status'] == 'degraded'


def test_store_is_rebuilt_on_startup(engine, tmp_path, make_observation) -> None:
    from skyhex.models.base import build_session_factory

    LatestStateStore(session_factory=build_session_factory(engine)).upsert(
        make_observation(icao24='aaa009', timestamp=42)
    )
    app = create_app(start_ingestion=False, engine=engine, polyfill_dir=str(tmp_path))
    assert app.config['TRACKING_SERVICE'].store.get('aaa009').timestamp == 42


def test_cors_headers_on_api(client) -> None:
    response = client.get('/api/metrics/stats', headers={'Origin': 'http://example.com'})
    # flask-cors 6 echoes the request origin instead of '*'
    assert response.headers.get('Access-Control-Allow-Origin') in ('*', 'http://example.com')


def test_cors_headers_absent_outside_api(client) -> None:
    response = client.get('/health', headers={'Origin': 'http://example.com'})
    assert 'Access-Control-Allow-Origin' not in response.headers


def test_unknown_route_is_json_404(client) -> None:
    response = client.get('/nope')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}
