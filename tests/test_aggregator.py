import h3
import pytest

from skyhex.aggregation import CellCount, HexAggregator, aggregate_rows
from skyhex.exceptions import UnsupportedResolutionError
from skyhex.geo import BoundingBox, index, parent

WORLD = BoundingBox.world()
HELSINKI = (60.1699, 24.9384)


def _sibling_under(cell_id: str, ancestor_resolution: int) -> str:
    """A neighbouring cell at the same resolution sharing the given ancestor."""
    ancestor = parent(cell_id, ancestor_resolution)
    for candidate in sorted(h3.grid_disk(cell_id, 1)):
        if candidate != cell_id and parent(candidate, ancestor_resolution) == ancestor:
            return candidate
    raise AssertionError(f'No sibling of {cell_id} under r{ancestor_resolution}')


def test_no_double_count_when_merging_cells(aggregator, make_observation, record_events) -> None:
    x = index(*HELSINKI, 8)
    y = _sibling_under(x, 4)
    y_lat, y_lon = h3.cell_to_latlng(y)

    record_events([
        make_observation(icao24='a1', timestamp=100, lat=HELSINKI[0], lon=HELSINKI[1]),
        make_observation(icao24='a1', timestamp=200, lat=y_lat, lon=y_lon),
    ])

    result = aggregator.aggregate(4, WORLD, 0, 300)
    assert result == [CellCount(parent(x, 4), 1)]

    fine = aggregator.aggregate(8, WORLD, 0, 300)
    assert {c.cell_id: c.count for c in fine} == {x: 1, y: 1}


def test_finest_resolution_sum_equals_distinct_pairs(aggregator, make_observation, record_events) -> None:
    observations = [
        make_observation(icao24='aaa001', timestamp=10, lat=60.17, lon=24.94),
        make_observation(icao24='aaa001', timestamp=20, lat=60.17, lon=24.94),  # same pair again
        make_observation(icao24='aaa001', timestamp=30, lat=60.45, lon=22.27),
        make_observation(icao24='aaa002', timestamp=40, lat=60.17, lon=24.94),
        make_observation(icao24='aaa003', timestamp=50, lat=65.01, lon=25.47),
        make_observation(icao24='aaa004', timestamp=500, lat=65.01, lon=25.47),  # outside window
    ]
    record_events(observations)

    expected_pairs = {
        (obs.icao24, obs.cell(8)) for obs in observations if 0 <= obs.timestamp <= 100
    }
    result = aggregator.aggregate(8, WORLD, 0, 100)
    assert sum(c.count for c in result) == len(expected_pairs) == 4


def test_bbox_and_window_are_inclusive(aggregator, make_observation, record_events) -> None:
    record_events([
        make_observation(icao24='aaa001', timestamp=100, lat=60.0, lon=25.0),
        make_observation(icao24='aaa002', timestamp=200, lat=61.0, lon=26.0),
        make_observation(icao24='aaa003', timestamp=150, lat=20.0, lon=26.0),
    ])
    bbox = BoundingBox(60.0, 25.0, 61.0, 26.0)

    result = aggregator.aggregate(8, bbox, 100, 200)
    assert sum(c.count for c in result) == 2

    assert aggregator.aggregate(8, bbox, 101, 199) == []


def test_coarse_resolution_counts_distinct_aircraft(aggregator, make_observation, record_events) -> None:
    # Three aircraft criss-crossing southern Finland
    points = [(60.17, 24.94), (60.45, 22.27), (61.50, 23.76)]
    record_events([
        make_observation(icao24=icao24, timestamp=ts, lat=lat, lon=lon)
        for ts, (lat, lon) in enumerate(points)
        for icao24 in ('aaa001', 'aaa002', 'aaa003')
    ])

    result = aggregator.aggregate(0, WORLD, 0, 10)
    # Every aircraft visited every point, so each touched cell sees all three
    expected = {index(lat, lon, 0): 3 for lat, lon in points}
    assert {c.cell_id: c.count for c in result} == expected


def test_finer_than_stored_resolution_is_rejected(aggregator) -> None:
    with pytest.raises(UnsupportedResolutionError):
        aggregator.aggregate(9, WORLD, 0, 300)


@pytest.mark.parametrize('resolution', [-1, 11])
def test_out_of_range_resolution_is_rejected(aggregator, resolution) -> None:
    with pytest.raises(UnsupportedResolutionError):
        aggregator.aggregate(resolution, WORLD, 0, 300)


def test_inverted_window_is_rejected(aggregator) -> None:
    with pytest.raises(ValueError):
        aggregator.aggregate(4, WORLD, 300, 0)


def test_empty_window_returns_empty_grid(aggregator) -> None:
    assert aggregator.aggregate(6, WORLD, 0, 300) == []


def test_invalid_cell_ids_are_discarded() -> None:
    good = index(*HELSINKI, 8)
    rows = [
        ('aaa001', good),
        ('aaa002', ''),
        ('aaa003', '0'),
        ('aaa004', 'test'),
        ('aaa005', None),
        ('aaa006', 'zzzz'),
        ('aaa007', index(*HELSINKI, 7)),  # wrong resolution for this column
        ('', good),
    ]
    assert aggregate_rows(rows, 8, 8) == [CellCount(good, 1)]
    assert aggregate_rows(rows, 5, 8) == [CellCount(parent(good, 5), 1)]


def test_aggregate_rows_output_is_sorted() -> None:
    cells = sorted(h3.grid_disk(index(*HELSINKI, 8), 2))
    rows = [(f'a{i:05d}', cell_id) for i, cell_id in enumerate(reversed(cells))]
    result = aggregate_rows(rows, 8, 8)
    assert [c.cell_id for c in result] == cells
    assert all(c.count == 1 for c in result)


def test_lower_finest_resolution_reads_its_own_column(session_factory, make_observation, record_events) -> None:
    record_events([make_observation(icao24='aaa001', timestamp=1)])
    coarse = HexAggregator(session_factory=session_factory, finest_resolution=5)

    assert coarse.aggregate(5, WORLD, 0, 10) == [CellCount(index(*HELSINKI, 5), 1)]
    with pytest.raises(UnsupportedResolutionError):
        coarse.aggregate(6, WORLD, 0, 10)


def test_cell_count_wire_format() -> None:
    assert CellCount('8808866b01fffff', 3).to_dict() == {'cellId': '8808866b01fffff', 'count': 3}
