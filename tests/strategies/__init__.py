"""Hypothesis strategies for roaringfuzz property-based testing.

Usage:
    from tests.strategies import clustered_values, half_open_bounds
"""

from .bitmaps import clustered_values, half_open_bounds, stepped_ranges, uint32

__all__ = [
    "clustered_values",
    "half_open_bounds",
    "stepped_ranges",
    "uint32",
]
