"""
Latest position API endpoints.

Provides endpoints for:
- GET /api/positions/latest - Newest position of every aircraft in a bbox
- GET /api/positions/<icao24> - Newest position of one aircraft
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, request, current_app

from skyhex.api.params import parse_bbox, parse_flag, parse_timestamp, window_defaults
from skyhex.services.tracking import position_to_dict

logger = logging.getLogger(__name__)

positions_bp = Blueprint('positions', __name__, url_prefix='/api/positions')


@positions_bp.route('/latest', methods=['GET'])
def latest_positions():
    """
    List the latest position of each aircraft.

    Query parameters:
    - bbox: minLat,minLon,maxLat,maxLon (default tracking bounds)
    - since: unix seconds or ISO-8601, oldest lastSeen to include
      (default one hour ago)
    - details: boolean, include source-specific flight details (default false)

    Response includes query timing for latency awareness.
    """
    start_time = time.perf_counter()

    try:
        bbox = parse_bbox(request.args.get('bbox'))
        since = parse_timestamp(request.args.get('since'), 'since', window_defaults()[0])
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    include_details = parse_flag(request.args.get('details'))

    service = current_app.config['TRACKING_SERVICE']
    positions = service.latest_positions(bbox, since, include_details)

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'positions': positions,
        'count': len(positions),
        'bbox': bbox.to_list(),
        'since': since,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })


@positions_bp.route('/<icao24>', methods=['GET'])
def get_position(icao24: str):
    """Latest known position of a single aircraft, with details."""
    service = current_app.config['TRACKING_SERVICE']
    observation = service.store.get(icao24)
    if observation is None:
        return jsonify({'error': 'Aircraft not found'}), 404

    result = position_to_dict(observation, include_details=True)
    result['cells'] = list(observation.cells)
    return jsonify(result)
