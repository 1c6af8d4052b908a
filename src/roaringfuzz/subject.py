"""Subject under test: the Roaring bitmap capability contract.

The harness never looks inside a subject. Everything it (and the invariant
catalogue) needs is the ``Bitmap`` protocol below. ``RoaringSubject``
implements it on top of ``pyroaring.BitMap``; the C library does all the
set work and this module only maps contract names and edge-case semantics
onto it.

Semantics worth knowing:
    - Ranges are half-open ``[lo, hi)`` and clamped to ``[0, 2**32]``.
    - ``rank(x)`` counts elements ``<= x``; ``select(i)`` is 0-indexed.
    - ``previous_absent_value`` returns -1 when ``[0, x]`` is fully present,
      matching a reference bit set's ``previousClearBit``.
    - ``next_absent_value`` returns 2**32 when ``[x, 2**32 - 1]`` is fully
      present, matching ``nextClearBit``.

Python 3.12+.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

from pyroaring import BitMap

from roaringfuzz.constants import UINT32_LIMIT

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

__all__ = ["Bitmap", "RoaringSubject"]

_MAX_VALUE = UINT32_LIMIT - 1
_REPR_PREVIEW = 8


@runtime_checkable
class Bitmap(Protocol):
    """Operations the invariant catalogue relies on."""

    def clone(self) -> Self: ...
    def add_range(self, lo: int, hi: int) -> Self: ...
    def cardinality(self) -> int: ...
    def is_empty(self) -> bool: ...
    def __contains__(self, value: object) -> bool: ...
    def __iter__(self) -> Iterator[int]: ...
    def __len__(self) -> int: ...
    def contains_range(self, lo: int, hi: int) -> bool: ...
    def issuperset(self, other: Self) -> bool: ...
    def intersects_range(self, lo: int, hi: int) -> bool: ...
    def rank(self, value: int) -> int: ...
    def select(self, index: int) -> int: ...
    def first(self) -> int: ...
    def last(self) -> int: ...
    def limit(self, count: int) -> Self: ...
    def union(self, other: Self) -> Self: ...
    def intersection(self, other: Self) -> Self: ...
    def symmetric_difference(self, other: Self) -> Self: ...
    def difference(self, other: Self) -> Self: ...
    def union_cardinality(self, other: Self) -> int: ...
    def intersection_cardinality(self, other: Self) -> int: ...
    def symmetric_difference_cardinality(self, other: Self) -> int: ...
    def range_cardinality(self, lo: int, hi: int) -> int: ...
    def next_absent_value(self, value: int) -> int: ...
    def previous_absent_value(self, value: int) -> int: ...
    def serialize(self) -> bytes: ...


def _clamp(value: int) -> int:
    return max(0, min(value, UINT32_LIMIT))


class RoaringSubject:
    """Compressed set of unsigned 32-bit integers backed by ``pyroaring.BitMap``.

    Set algebra never mutates its operands. ``add_range`` is the only
    mutating operation; callers that must keep the original ``clone()`` first.

    Example:
        >>> s = RoaringSubject([1, 3, 5, 7])
        >>> t = RoaringSubject([3, 7])
        >>> s.issuperset(t), s.intersection_cardinality(t)
        (True, 2)
        >>> list(s ^ t)
        [1, 5]
    """

    __slots__ = ("_bitmap",)

    def __init__(self, values: Iterable[int] | None = None) -> None:
        self._bitmap = BitMap() if values is None else BitMap(values)

    @classmethod
    def _wrap(cls, bitmap: BitMap) -> Self:
        subject = cls.__new__(cls)
        subject._bitmap = bitmap
        return subject

    @classmethod
    def from_range(cls, lo: int, hi: int) -> Self:
        """Build a subject holding every integer in ``[lo, hi)``."""
        return cls().add_range(lo, hi)

    @classmethod
    def deserialize(cls, data: bytes) -> Self:
        """Rebuild a subject from the portable Roaring format."""
        return cls._wrap(BitMap.deserialize(data))

    @property
    def bitmap(self) -> BitMap:
        """Underlying ``pyroaring.BitMap`` (shared, not copied)."""
        return self._bitmap

    def serialize(self) -> bytes:
        """Portable Roaring serialization, readable by every Roaring implementation."""
        return self._bitmap.serialize()

    def clone(self) -> Self:
        return self._wrap(self._bitmap.copy())

    # --- Mutation ---

    def add_range(self, lo: int, hi: int) -> Self:
        """Add every integer in ``[lo, hi)`` and return self."""
        lo, hi = _clamp(lo), _clamp(hi)
        if lo < hi:
            self._bitmap.add_range(lo, hi)
        return self

    # --- Queries ---

    def cardinality(self) -> int:
        return len(self._bitmap)

    def __len__(self) -> int:
        return len(self._bitmap)

    def is_empty(self) -> bool:
        return len(self._bitmap) == 0

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, int) or not 0 <= value <= _MAX_VALUE:
            return False
        return value in self._bitmap

    def contains_range(self, lo: int, hi: int) -> bool:
        """True if every integer in ``[lo, hi)`` is present. Empty ranges are contained."""
        lo, hi = _clamp(lo), _clamp(hi)
        if hi <= lo:
            return True
        return bool(self._bitmap.contains_range(lo, hi))

    def issuperset(self, other: RoaringSubject) -> bool:
        """True if every element of ``other`` is present in this subject."""
        return bool(other._bitmap.issubset(self._bitmap))

    def intersects_range(self, lo: int, hi: int) -> bool:
        """True if any integer in ``[lo, hi)`` is present. Empty ranges never intersect."""
        return self.range_cardinality(lo, hi) > 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RoaringSubject):
            return NotImplemented
        return bool(self._bitmap == other._bitmap)

    __hash__ = None  # type: ignore[assignment]

    def __iter__(self) -> Iterator[int]:
        return iter(self._bitmap)

    # --- Ordered-set operations ---

    def rank(self, value: int) -> int:
        """Number of elements less than or equal to ``value``."""
        if value < 0:
            return 0
        return int(self._bitmap.rank(min(value, _MAX_VALUE)))

    def select(self, index: int) -> int:
        """The ``index``-th smallest element (0-indexed).

        Raises:
            IndexError: If ``index`` is outside ``[0, cardinality())``.
        """
        if not 0 <= index < len(self._bitmap):
            msg = f"select index {index} out of range for cardinality {len(self._bitmap)}"
            raise IndexError(msg)
        return int(self._bitmap[index])

    def first(self) -> int:
        """Smallest element.

        Raises:
            ValueError: If the subject is empty.
        """
        return int(self._bitmap.min())

    def last(self) -> int:
        """Largest element.

        Raises:
            ValueError: If the subject is empty.
        """
        return int(self._bitmap.max())

    def limit(self, count: int) -> Self:
        """New subject holding the ``count`` smallest elements."""
        if count < 0:
            msg = f"limit count must be non-negative, got {count}"
            raise ValueError(msg)
        return self._wrap(self._bitmap[:count])

    # --- Set algebra ---

    def union(self, other: RoaringSubject) -> Self:
        return self._wrap(self._bitmap | other._bitmap)

    def intersection(self, other: RoaringSubject) -> Self:
        return self._wrap(self._bitmap & other._bitmap)

    def symmetric_difference(self, other: RoaringSubject) -> Self:
        return self._wrap(self._bitmap ^ other._bitmap)

    def difference(self, other: RoaringSubject) -> Self:
        return self._wrap(self._bitmap - other._bitmap)

    __or__ = union
    __and__ = intersection
    __xor__ = symmetric_difference
    __sub__ = difference

    def union_cardinality(self, other: RoaringSubject) -> int:
        return int(self._bitmap.union_cardinality(other._bitmap))

    def intersection_cardinality(self, other: RoaringSubject) -> int:
        return int(self._bitmap.intersection_cardinality(other._bitmap))

    def symmetric_difference_cardinality(self, other: RoaringSubject) -> int:
        return int(self._bitmap.symmetric_difference_cardinality(other._bitmap))

    def range_cardinality(self, lo: int, hi: int) -> int:
        """Number of elements in ``[lo, hi)``, computed from ranks."""
        lo, hi = _clamp(lo), _clamp(hi)
        if hi <= lo:
            return 0
        return self.rank(hi - 1) - self.rank(lo - 1)

    # --- Absent values ---

    def _fully_present(self, lo: int, hi: int) -> bool:
        # Inclusive bounds.
        return self.rank(hi) - self.rank(lo - 1) == hi - lo + 1

    def next_absent_value(self, value: int) -> int:
        """Smallest integer ``>= value`` that is not present.

        The result may be ``2**32``, one past the element domain, when every
        value in ``[value, 2**32 - 1]`` is present. This matches a reference
        bit set's ``nextClearBit``, which has no upper bound.

        Raises:
            ValueError: If ``value`` is negative.
        """
        if value < 0:
            msg = f"value must be non-negative, got {value}"
            raise ValueError(msg)
        if value not in self:
            return value
        low, high = value, self.last()
        while low < high:
            mid = (low + high + 1) // 2
            if self._fully_present(value, mid):
                low = mid
            else:
                high = mid - 1
        return low + 1

    def previous_absent_value(self, value: int) -> int:
        """Largest integer ``<= value`` that is not present, or -1 if there is none."""
        if value < 0:
            return -1
        if value not in self:
            return value
        low, high = self.first(), value
        while low < high:
            mid = (low + high) // 2
            if self._fully_present(mid, value):
                high = mid
            else:
                low = mid + 1
        return low - 1

    def __repr__(self) -> str:
        cardinality = len(self._bitmap)
        preview = list(self._bitmap[:_REPR_PREVIEW])
        if cardinality > _REPR_PREVIEW:
            return f"{type(self).__name__}({preview!r}..., cardinality={cardinality})"
        return f"{type(self).__name__}({preview!r})"
