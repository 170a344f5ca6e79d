"""
API module for SkyHex.

Provides REST endpoints for:
- Latest aircraft positions
- Hex grid density and static polyfill grids
- Metrics and system status
"""

from skyhex.api.grid import grid_bp
from skyhex.api.metrics import metrics_bp
from skyhex.api.positions import positions_bp

__all__ = ['grid_bp', 'metrics_bp', 'positions_bp']
