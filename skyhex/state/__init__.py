"""
Latest-state view for SkyHex.

Compacts the observation stream into one record per aircraft.
"""

from skyhex.state.store import LatestStateStore, collapse_batch, supersedes

__all__ = ['LatestStateStore', 'collapse_batch', 'supersedes']
