"""
Services module for SkyHex.

Query-side operations shared by the HTTP layer and any other caller.
"""

from skyhex.services.tracking import TrackingService

__all__ = ['TrackingService']
