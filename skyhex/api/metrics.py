"""
Metrics and status API endpoints.

Provides endpoints for:
- GET /api/metrics/stats - Event log totals
- GET /api/metrics/status - System status and health
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from skyhex.config import config

logger = logging.getLogger(__name__)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')


@metrics_bp.route('/stats', methods=['GET'])
def get_stats():
    """Total events logged and distinct aircraft seen."""
    start_time = time.perf_counter()

    service = current_app.config['TRACKING_SERVICE']
    result = service.stats()

    query_time_ms = (time.perf_counter() - start_time) * 1000
    result['query_time_ms'] = round(query_time_ms, 2)
    return jsonify(result)


@metrics_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Ingestion pipeline status
    - Database connectivity
    - Latest-state store statistics
    - Configuration info
    """
    start_time = time.perf_counter()

    # Get pipeline stats if available
    pipeline = current_app.config.get('INGESTION_PIPELINE')
    pipeline_stats = pipeline.stats if pipeline else {'running': False}

    service = current_app.config['TRACKING_SERVICE']

    # Check database connectivity
    db_ok = True
    try:
        with current_app.config['SESSION_FACTORY']() as session:
            session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db_ok = False
        logger.error(f'Database health check failed: {e}')

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'status': 'healthy' if (db_ok and pipeline_stats.get('running')) else 'degraded',
        'database': {
            'connected': db_ok,
            'type': 'sqlite' if config.database.is_sqlite else 'postgresql',
        },
        'ingestion': pipeline_stats,
        'store': service.store.stats,
        'config': {
            'poll_interval': config.ingestion.poll_interval,
            'tracking_bounds': config.ingestion.tracking_bounds.to_list(),
            'finest_resolution': service.aggregator.finest_resolution,
            'opensky_authenticated': config.opensky.is_authenticated,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })
