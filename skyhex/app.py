"""
SkyHex Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Latest-state store (rebuilt from the database)
- Static polyfill grids (optional, missing files only)
- Ingestion pipeline
- API routes

Usage:
    python -m skyhex

Or with gunicorn:
    gunicorn 'skyhex.app:create_app()'
"""

import logging
import os
import threading
from typing import Optional

from flask import Flask
from flask_cors import CORS
from sqlalchemy.engine import Engine

from skyhex.config import config
from skyhex.models import init_db
from skyhex.models.base import SessionLocal, build_session_factory, engine as default_engine
from skyhex.api import grid_bp, metrics_bp, positions_bp
from skyhex.aggregation import HexAggregator
from skyhex.geo.polyfill import write_polyfill_files
from skyhex.ingestion import IngestionPipeline, OpenSkyClient
from skyhex.services import TrackingService
from skyhex.state import LatestStateStore

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def _generate_missing_polyfills(output_dir: str) -> None:
    try:
        generated, skipped = write_polyfill_files(
            config.ingestion.tracking_bounds.to_polygon(),
            output_dir,
            config.polyfill.resolutions,
        )
        logger.info(f'Startup polyfill: generated {generated}, {skipped} already present')
    except OSError as e:
        logger.error(f'Startup polyfill generation failed: {e}')


def create_app(
    start_ingestion: bool = True,
    engine: Optional[Engine] = None,
    client: Optional[OpenSkyClient] = None,
    polyfill_dir: Optional[str] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_ingestion: Whether to start the background ingestion pipeline.
                        Set to False for testing.
        engine: Database engine (configured DATABASE_URL if None)
        client: OpenSky client for the pipeline (built from config if None)
        polyfill_dir: Where static grids live (POLYFILL_DIR if None)

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key
    app.config['POLYFILL_DIR'] = polyfill_dir or config.polyfill.output_dir

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Initialize database
    logger.info('Initializing database...')
    init_db(bind=engine or default_engine)
    session_factory = build_session_factory(engine) if engine is not None else SessionLocal
    app.config['SESSION_FACTORY'] = session_factory

    # Query side
    store = LatestStateStore(session_factory=session_factory)
    store.load_from_database()
    aggregator = HexAggregator(session_factory=session_factory)
    app.config['TRACKING_SERVICE'] = TrackingService(store, aggregator, session_factory)

    # Register API blueprints
    app.register_blueprint(positions_bp)
    app.register_blueprint(grid_bp)
    app.register_blueprint(metrics_bp)

    if config.polyfill.generate_on_startup:
        # r9-r10 over a country takes minutes; don't hold up startup
        threading.Thread(
            target=_generate_missing_polyfills,
            args=(app.config['POLYFILL_DIR'],),
            daemon=True,
            name='skyhex-polyfill',
        ).start()

    # Initialize ingestion pipeline
    if start_ingestion:
        pipeline = IngestionPipeline(
            store=store,
            client=client,
            session_factory=session_factory,
        )
        pipeline.start_background()
        app.config['INGESTION_PIPELINE'] = pipeline

        logger.info(
            f'Ingestion started for {config.ingestion.tracking_bounds.to_list()} '
            f'every {config.ingestion.poll_interval}s'
        )
    else:
        app.config['INGESTION_PIPELINE'] = None

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    # Get port from environment or default
    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting SkyHex on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Disable reloader to prevent duplicate pipeline threads
    )


if __name__ == '__main__':
    run_development_server()
