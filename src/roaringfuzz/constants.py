"""Shared constants for roaringfuzz.

Centralizes the default trial count and the per-form complexity bounds so
the harness, the configuration layer and the tests agree on one set of
numbers.

Constants are grouped by domain:
- Trial counts: how many generations a verify call attempts by default
- Complexity bounds: default ``max_keys`` per invariant form
- Value space: limits of the unsigned 32-bit element domain

Python 3.12+.
"""

import os

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Trial counts
    "ITERATIONS",
    "ITERATIONS_ENV_VAR",
    # Complexity bounds
    "VALUE_MAX_KEYS",
    "RANGE_MAX_KEYS",
    "DERIVED_MAX_KEYS",
    "PAIR_MAX_KEYS",
    "INDEX_MAX_KEYS",
    "ACTION_MAX_KEYS",
    # Value space
    "UINT32_LIMIT",
    "CONTAINER_SIZE",
    "MAX_HIGH_KEYS",
]

# ============================================================================
# TRIAL COUNTS
# ============================================================================

ITERATIONS_ENV_VAR: str = "ROARINGFUZZ_ITERATIONS"

# Read once at import. Every verify call without an explicit count attempts
# this many generations.
ITERATIONS: int = int(os.environ.get(ITERATIONS_ENV_VAR, "1000"))

# ============================================================================
# COMPLEXITY BOUNDS
# ============================================================================
#
# Forms that evaluate one check per subject get generous bounds. Forms that
# evaluate one check per element (index form) or run a whole reference
# comparison per subject (action form) get tiny bounds.

VALUE_MAX_KEYS: int = 1 << 9
RANGE_MAX_KEYS: int = 1 << 9
DERIVED_MAX_KEYS: int = 1 << 8
PAIR_MAX_KEYS: int = 1 << 8
INDEX_MAX_KEYS: int = 1 << 3
ACTION_MAX_KEYS: int = 1 << 3

# ============================================================================
# VALUE SPACE
# ============================================================================

# Exclusive upper bound of the element domain.
UINT32_LIMIT: int = 1 << 32

# Values per 16-bit container (low bits of an element).
CONTAINER_SIZE: int = 1 << 16

# Distinct high keys (high 16 bits of an element).
MAX_HIGH_KEYS: int = 1 << 16
