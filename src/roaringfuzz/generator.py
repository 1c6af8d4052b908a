"""Random subject provider.

Builds bitmaps whose containers cover all three Roaring container shapes,
so the algebra under test crosses array, bitset and run code paths.

A bitmap is a set of distinct 16-bit high keys; every key gets one region
of low values shifted into place. Two thresholds drawn per bitmap decide
the mix of region kinds::

    choice < rle_limit    -> run region
    choice < dense_limit  -> dense region
    otherwise             -> sparse region

Each call uses its own ``random.Random`` unless one is passed in, so the
provider is safe to call from many worker threads at once.

Python 3.12+.
"""

from __future__ import annotations

import random
from enum import StrEnum

from roaringfuzz.constants import CONTAINER_SIZE, MAX_HIGH_KEYS
from roaringfuzz.subject import RoaringSubject

__all__ = ["RegionKind", "random_bitmap"]

# Array containers hold fewer than this many values.
_ARRAY_LIMIT = 4096
_MAX_RUNS = 2048


class RegionKind(StrEnum):
    """Shape of the low values generated for one high key."""

    RUN = "run"
    """Sorted disjoint runs; stored as a run container."""

    DENSE = "dense"
    """More values than an array container holds; stored as a bitset."""

    SPARSE = "sparse"
    """Fewer than 4096 scattered values; stored as an array container."""


def _sorted_distinct(rng: random.Random, count: int, limit: int) -> list[int]:
    return sorted(rng.sample(range(limit), min(count, limit)))


def _run_region(rng: random.Random, base: int) -> list[tuple[int, int]]:
    boundaries = _sorted_distinct(rng, 2 * rng.randrange(1, _MAX_RUNS), CONTAINER_SIZE)
    # Pairs of boundaries delimit half-open runs [start, end).
    return [
        (base + start, base + end)
        for start, end in zip(boundaries[::2], boundaries[1::2], strict=False)
    ]


def _dense_region(rng: random.Random, base: int) -> list[int]:
    count = rng.randrange(_ARRAY_LIMIT, CONTAINER_SIZE // 2)
    return [base + low for low in rng.sample(range(CONTAINER_SIZE), count)]


def _sparse_region(rng: random.Random, base: int) -> list[int]:
    count = rng.randrange(1, _ARRAY_LIMIT)
    return [base + low for low in _sorted_distinct(rng, count, CONTAINER_SIZE)]


def _choose_region(rng: random.Random, rle_limit: float, dense_limit: float) -> RegionKind:
    choice = rng.random()
    if choice < rle_limit:
        return RegionKind.RUN
    if choice < dense_limit:
        return RegionKind.DENSE
    return RegionKind.SPARSE


def random_bitmap(max_keys: int, rng: random.Random | None = None) -> RoaringSubject:
    """Generate a random bitmap with fewer than ``max_keys`` high keys.

    ``max_keys`` loosely caps structural size (number of containers), not
    the element count. At least one key is always generated.

    Args:
        max_keys: Complexity bound, must be positive
        rng: Random source; a fresh ``random.Random()`` when omitted

    Raises:
        ValueError: If ``max_keys`` is not positive.
    """
    if max_keys <= 0:
        msg = f"max_keys must be positive, got {max_keys}"
        raise ValueError(msg)
    rng = rng or random.Random()
    rle_limit = rng.random()
    dense_limit = rng.uniform(rle_limit, 1.0)

    key_count = rng.randrange(1, max_keys) if max_keys > 1 else 1
    subject = RoaringSubject()
    values: list[int] = []
    for key in _sorted_distinct(rng, key_count, MAX_HIGH_KEYS):
        base = key * CONTAINER_SIZE
        match _choose_region(rng, rle_limit, dense_limit):
            case RegionKind.RUN:
                for lo, hi in _run_region(rng, base):
                    subject.add_range(lo, hi)
            case RegionKind.DENSE:
                values.extend(_dense_region(rng, base))
            case RegionKind.SPARSE:
                values.extend(_sparse_region(rng, base))
    if values:
        subject.bitmap.update(values)
    return subject
