"""
SkyHex Backend Package.

Aircraft position tracking with hierarchical hexagonal (H3) indexing,
built with Flask, SQLAlchemy, and h3.

Modules:
    geo/          H3 indexing, bounding boxes, and region polyfill generation
    models/       SQLAlchemy models (FlightEvent, LatestPosition) and value types
    state/        Latest-state store (one row per aircraft, last write wins)
    aggregation/  Distinct-aircraft counts per hex cell at any resolution
    ingestion/    OpenSky Network polling pipeline
    services/     Core query operations consumed by the API layer
    api/          REST endpoints for positions, hex grids, and metrics
    config.py     Centralized configuration from environment variables
"""

__version__ = '1.0.0'
