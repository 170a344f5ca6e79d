"""
Area polyfill generator.

Precomputes, for a fixed region and each resolution, the set of H3 cells
tiling that region. The frontend merges these static grids with live
hex counts so cells without traffic still render as "no data".

H3's polygon fill only returns cells whose centers fall inside the
polygon. At coarse resolutions (cells larger than the region) that can be
empty or miss the region's edges, so we add a deterministic minimum
cover: the cell containing the polygon centroid plus the cell of each
vertex.

Output: one hex_polyfill_r{res}.json per resolution, each a JSON array of
{cellId, resolution, centerLat, centerLon}. Files are generated once and
treated as immutable; existing files are never regenerated unless asked.

Usage:
    python -m skyhex.geo.polyfill --output-dir data/polyfill --resolutions 0-6
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

import h3
import numpy as np

from skyhex.exceptions import ConfigError, PolyfillMissingError, UnsupportedResolutionError
from skyhex.geo.indexer import HexCell, RESOLUTIONS, cell_center, check_resolution, index

logger = logging.getLogger(__name__)

# At or below this resolution the minimum cover is always added
COARSE_FALLBACK_RESOLUTION = 2

Polygon = Sequence[Tuple[float, float]]


def _open_ring(polygon: Polygon) -> List[Tuple[float, float]]:
    """Vertices as (lat, lon) floats, without a repeated closing vertex."""
    vertices = [(float(lat), float(lon)) for lat, lon in polygon]
    if len(vertices) > 1 and vertices[0] == vertices[-1]:
        vertices = vertices[:-1]
    if len(vertices) < 3:
        raise ValueError(f'Polygon needs at least 3 distinct vertices, got {len(vertices)}')
    return vertices


def polygon_centroid(polygon: Polygon) -> Tuple[float, float]:
    """
    Area centroid of a simple polygon as (lat, lon).

    Planar shoelace formula on lon/lat degrees, which is fine for the
    country-sized regions we tile. Degenerate (zero-area) polygons fall
    back to the vertex mean.
    """
    vertices = np.array(_open_ring(polygon), dtype=float)
    lat = vertices[:, 0]
    lon = vertices[:, 1]
    lat_next = np.roll(lat, -1)
    lon_next = np.roll(lon, -1)

    cross = lon * lat_next - lon_next * lat
    area = cross.sum() / 2.0
    if abs(area) < 1e-12:
        return float(lat.mean()), float(lon.mean())

    c_lon = ((lon + lon_next) * cross).sum() / (6.0 * area)
    c_lat = ((lat + lat_next) * cross).sum() / (6.0 * area)
    return float(c_lat), float(c_lon)


def minimum_cover(polygon: Polygon, resolution: int) -> Set[str]:
    """Cell of the centroid plus the cell of every vertex."""
    vertices = _open_ring(polygon)
    c_lat, c_lon = polygon_centroid(vertices)
    cells = {index(c_lat, c_lon, resolution)}
    for lat, lon in vertices:
        cells.add(index(lat, lon, resolution))
    return cells


def polyfill(polygon: Polygon, resolution: int) -> Set[str]:
    """
    Cells covering the polygon at one resolution.

    Idempotent: same polygon and resolution always give the same set.
    Never empty: the minimum cover kicks in whenever H3 returns nothing.
    """
    check_resolution(resolution)
    vertices = _open_ring(polygon)

    try:
        cells = set(h3.polygon_to_cells(h3.LatLngPoly(vertices), resolution))
    except (h3.H3BaseException, ValueError) as e:
        logger.warning(f'Polyfill failed at r{resolution}, using fallback: {e}')
        cells = set()

    if not cells or resolution <= COARSE_FALLBACK_RESOLUTION:
        if not cells:
            logger.info(f'Polyfill returned 0 cells for r{resolution}, using fallback')
        cells |= minimum_cover(vertices, resolution)

    return cells


def generate_grid(polygon: Polygon, resolution: int) -> List[HexCell]:
    """Polyfill plus cell centers, sorted by cell id for stable output."""
    return [cell_center(cell_id) for cell_id in sorted(polyfill(polygon, resolution))]


def polyfill_path(output_dir, resolution: int) -> Path:
    return Path(output_dir) / f'hex_polyfill_r{resolution}.json'


def write_polyfill_files(
    polygon: Polygon,
    output_dir,
    resolutions: Iterable[int] = RESOLUTIONS,
    overwrite: bool = False,
) -> Tuple[int, int]:
    """
    Generate the static grid file for each resolution.

    Existing files are skipped unless overwrite is set (r8+ files are
    large and slow to regenerate).

    Returns (generated_count, skipped_count).
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    generated = 0
    skipped = 0
    for resolution in resolutions:
        path = polyfill_path(output_dir, resolution)
        if path.exists() and not overwrite:
            logger.info(f'Resolution {resolution}: {path} already exists, skipping')
            skipped += 1
            continue

        cells = generate_grid(polygon, resolution)
        # Write-then-rename so readers never see a truncated file
        tmp_path = path.with_suffix('.json.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump([cell.to_dict() for cell in cells], f)
        tmp_path.replace(path)

        logger.info(f'Resolution {resolution}: wrote {len(cells)} cells to {path}')
        generated += 1

    return generated, skipped


def load_polyfill(output_dir, resolution: int) -> List[HexCell]:
    """
    Read a previously generated grid.

    Raises PolyfillMissingError if that resolution was never generated.
    """
    check_resolution(resolution)
    path = polyfill_path(output_dir, resolution)
    if not path.exists():
        raise PolyfillMissingError(
            f'No polyfill for resolution {resolution} at {path}; generate it before first use'
        )
    with open(path, 'r', encoding='utf-8') as f:
        return [HexCell.from_dict(item) for item in json.load(f)]


def _parse_args(argv: List[str]):
    parser = argparse.ArgumentParser(description='Generate static H3 polyfill grids')
    parser.add_argument('--output-dir', default=None, help='Directory for hex_polyfill_r*.json')
    parser.add_argument(
        '--resolutions', default=None,
        help="Resolutions to generate, e.g. '0-6' or '0,2,4' (default from config)",
    )
    parser.add_argument(
        '--bounds', default=None,
        help='Region as minLat,minLon,maxLat,maxLon (default TRACKING_BOUNDS)',
    )
    parser.add_argument('--overwrite', action='store_true', help='Regenerate existing files')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    # Validate everything before the first file is written
    try:
        from skyhex.config import parse_bounds, parse_resolutions, config

        bounds = parse_bounds(args.bounds) if args.bounds else config.ingestion.tracking_bounds
        resolutions = (
            parse_resolutions(args.resolutions) if args.resolutions else config.polyfill.resolutions
        )
        if not resolutions:
            raise ConfigError('No resolutions given')
        for resolution in resolutions:
            check_resolution(resolution)
    except (ConfigError, UnsupportedResolutionError) as e:
        logger.error(f'Invalid polyfill arguments: {e}')
        return 1

    output_dir = args.output_dir or config.polyfill.output_dir

    logger.info(f'Generating polyfill for {bounds.to_list()} at resolutions {list(resolutions)}')
    generated, skipped = write_polyfill_files(
        bounds.to_polygon(), output_dir, resolutions, overwrite=args.overwrite
    )
    logger.info(f'Polyfill generation complete: generated {generated}, skipped {skipped}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
