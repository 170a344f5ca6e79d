"""
Data ingestion module for SkyHex.

Handles polling the OpenSky API, indexing state vectors into H3 cells,
and loading them into the event log and the latest-state store.
"""

from skyhex.ingestion.opensky_client import OpenSkyClient, StateVector
from skyhex.ingestion.pipeline import IngestionPipeline, observation_from_state

__all__ = ['OpenSkyClient', 'StateVector', 'IngestionPipeline', 'observation_from_state']
