"""
Hex grid API endpoints.

Provides endpoints for:
- GET /api/grid - Distinct aircraft per H3 cell over a time window
- GET /api/grid/polyfill/<resolution> - Pre-generated static cell grid
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, current_app

from skyhex.api.params import parse_bbox, parse_resolution, parse_timestamp, window_defaults
from skyhex.exceptions import PolyfillMissingError
from skyhex.geo.polyfill import load_polyfill

logger = logging.getLogger(__name__)

grid_bp = Blueprint('grid', __name__, url_prefix='/api/grid')


@grid_bp.route('', methods=['GET'])
def hex_grid():
    """
    Aircraft density per hex cell.

    Query parameters:
    - resolution: int, H3 resolution (required, at most the stored resolution)
    - bbox: minLat,minLon,maxLat,maxLon (default tracking bounds)
    - from, to: unix seconds or ISO-8601 (default the last hour)

    Each aircraft counts once per cell however many times it was seen.
    """
    start_time = time.perf_counter()

    default_from, default_to = window_defaults()
    try:
        resolution = parse_resolution(request.args.get('resolution'))
        bbox = parse_bbox(request.args.get('bbox'))
        from_ts = parse_timestamp(request.args.get('from'), 'from', default_from)
        to_ts = parse_timestamp(request.args.get('to'), 'to', default_to)

        service = current_app.config['TRACKING_SERVICE']
        cells = service.hex_grid(resolution, bbox, from_ts, to_ts)
    except ValueError as e:
        # Includes UnsupportedResolutionError
        return jsonify({'error': str(e)}), 400

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'cells': cells,
        'count': len(cells),
        'resolution': resolution,
        'from': from_ts,
        'to': to_ts,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@grid_bp.route('/polyfill/<resolution>', methods=['GET'])
def polyfill_grid(resolution: str):
    """
    Serve the static polyfill for one resolution.

    Files are produced offline (python -m skyhex.geo.polyfill) or at
    startup; this endpoint never generates them.
    """
    try:
        cells = load_polyfill(current_app.config['POLYFILL_DIR'], parse_resolution(resolution))
    except PolyfillMissingError as e:
        logger.warning(str(e))
        return jsonify({'error': f'Polyfill for resolution {resolution} has not been generated'}), 404
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify([cell.to_dict() for cell in cells])
