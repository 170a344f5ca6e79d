"""
Grid aggregation for SkyHex.

Distinct-aircraft counts per H3 cell, derived from the finest stored
resolution by distinct-union up the cell hierarchy.
"""

from skyhex.aggregation.hex_aggregator import (
    CellCount,
    HexAggregator,
    aggregate_rows,
    check_aggregation_resolution,
)

__all__ = ['CellCount', 'HexAggregator', 'aggregate_rows', 'check_aggregation_resolution']
