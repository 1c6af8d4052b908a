"""Tests for RoaringSubject, the bitmap capability contract.

Structure:
    - TestConcreteScenarios: Hand-computed expectations on tiny subjects
    - TestEdgeSemantics: Range clamping, empty inputs, error contracts
    - TestAgainstReferenceSet: Property tests against a Python set
"""

from __future__ import annotations

import bisect

import pytest
from hypothesis import given
from hypothesis import strategies as st

from roaringfuzz import RoaringSubject
from roaringfuzz.subject import Bitmap
from tests.strategies import clustered_values, half_open_bounds

_OFFSETS = (0, 1, -1, 10, -10, 100, -100)


def _next_clear(values: set[int], start: int) -> int:
    pos = start
    while pos in values:
        pos += 1
    return pos


def _previous_clear(values: set[int], start: int) -> int:
    pos = start
    while pos >= 0 and pos in values:
        pos -= 1
    return pos


class TestConcreteScenarios:
    """Small subjects with expectations worked out by hand."""

    def test_subset_scenario(self) -> None:
        s = RoaringSubject([1, 3, 5, 7])
        t = RoaringSubject([3, 7])

        assert s.issuperset(t)
        assert not t.issuperset(s)
        assert s.intersection(t) == RoaringSubject([3, 7])
        assert s.intersection_cardinality(t) == 2
        assert s.symmetric_difference(t) == RoaringSubject([1, 5])

    def test_empty_subject(self) -> None:
        s = RoaringSubject()

        assert s.is_empty()
        assert s.range_cardinality(0, 100) == 0
        assert s.next_absent_value(0) == 0
        assert s.previous_absent_value(0) == 0
        assert list(s) == []

    def test_inserted_range(self) -> None:
        s = RoaringSubject().add_range(10, 20)

        assert len(s) == 10
        assert s.range_cardinality(0, 15) == 5
        assert s.contains_range(10, 20)
        assert not s.contains_range(10, 21)
        assert s.next_absent_value(19) == 20
        assert s.previous_absent_value(10) == 9
        assert s.next_absent_value(12) == 20
        assert s.previous_absent_value(15) == 9

    def test_self_symmetric_difference_is_empty(self) -> None:
        s = RoaringSubject([0, 2, 65536, 65537, 1 << 20])

        assert (s ^ s) == RoaringSubject()
        assert s.union(s).difference(s).is_empty()

    def test_rank_select_first_last(self) -> None:
        s = RoaringSubject([4, 8, 15, 16, 23, 42])

        assert s.first() == s.select(0) == 4
        assert s.last() == s.select(len(s) - 1) == 42
        assert s.rank(15) == 3
        assert s.rank(14) == 2
        assert s.rank(s.select(4)) == 5

    def test_limit_prefix(self) -> None:
        s = RoaringSubject([4, 8, 15, 16, 23, 42])

        assert s.limit(3) == RoaringSubject([4, 8, 15])
        assert s.limit(len(s)) == s
        assert s.limit(0).is_empty()


class TestEdgeSemantics:
    """Boundary behavior of the contract."""

    def test_add_range_clamps_to_uint32(self) -> None:
        s = RoaringSubject().add_range(2**32 - 2, 2**32 + 5)

        assert list(s) == [2**32 - 2, 2**32 - 1]
        assert s.next_absent_value(2**32 - 2) == 2**32

    def test_add_range_ignores_empty_and_negative(self) -> None:
        s = RoaringSubject().add_range(5, 5).add_range(-10, 0).add_range(9, 3)

        assert s.is_empty()

    def test_empty_range_is_contained_but_never_intersects(self) -> None:
        s = RoaringSubject([7])

        assert s.contains_range(7, 7)
        assert not s.intersects_range(7, 7)
        assert s.intersects_range(7, 8)

    def test_previous_absent_value_below_zero(self) -> None:
        s = RoaringSubject.from_range(0, 50)

        assert s.previous_absent_value(49) == -1
        assert s.previous_absent_value(-3) == -1

    def test_next_absent_value_past_the_domain(self) -> None:
        s = RoaringSubject.from_range(2**32 - 10, 2**32)

        assert s.next_absent_value(2**32 - 10) == 2**32
        assert s.next_absent_value(2**32 - 11) == 2**32 - 11
        assert s.previous_absent_value(2**32 - 1) == 2**32 - 11

    def test_next_absent_value_rejects_negative(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            RoaringSubject().next_absent_value(-1)

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_select_out_of_range(self, index: int) -> None:
        with pytest.raises(IndexError):
            RoaringSubject([1, 2, 3]).select(index)

    def test_first_and_last_of_empty_raise(self) -> None:
        with pytest.raises(ValueError):
            RoaringSubject().first()
        with pytest.raises(ValueError):
            RoaringSubject().last()

    def test_limit_rejects_negative(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            RoaringSubject([1]).limit(-1)

    def test_limit_beyond_cardinality_is_identity(self) -> None:
        s = RoaringSubject([1, 2, 3])

        assert s.limit(1000) == s

    def test_membership_of_out_of_domain_values(self) -> None:
        s = RoaringSubject([0, 2**32 - 1])

        assert -1 not in s
        assert 2**32 not in s
        assert "0" not in s
        assert 0 in s

    def test_rank_of_negative_and_huge_values(self) -> None:
        s = RoaringSubject([1, 2**32 - 1])

        assert s.rank(-5) == 0
        assert s.rank(2**40) == 2

    def test_clone_is_independent(self) -> None:
        s = RoaringSubject([1, 2, 3])
        copy = s.clone()
        copy.add_range(10, 20)

        assert len(s) == 3
        assert len(copy) == 13

    def test_algebra_leaves_operands_untouched(self) -> None:
        s = RoaringSubject([1, 2, 3])
        t = RoaringSubject([3, 4])
        _ = (s | t, s & t, s ^ t, s - t)

        assert list(s) == [1, 2, 3]
        assert list(t) == [3, 4]

    def test_equality_is_structural(self) -> None:
        assert RoaringSubject([1, 2]) == RoaringSubject.from_range(1, 3)
        assert RoaringSubject([1, 2]) != RoaringSubject([1])
        assert RoaringSubject([1]) != {1}

    def test_subjects_are_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(RoaringSubject())

    def test_serialization_restores_equal_subject(self) -> None:
        s = RoaringSubject(range(0, 200_000, 7)).add_range(1 << 20, (1 << 20) + 5000)

        assert RoaringSubject.deserialize(s.serialize()) == s

    def test_repr_truncates_large_subjects(self) -> None:
        assert repr(RoaringSubject([1, 2])) == "RoaringSubject([1, 2])"
        assert "cardinality=100" in repr(RoaringSubject(range(100)))

    def test_satisfies_bitmap_protocol(self) -> None:
        assert isinstance(RoaringSubject(), Bitmap)


class TestAgainstReferenceSet:
    """Every query agrees with the same query on a Python set."""

    @given(values=clustered_values())
    def test_iteration_is_sorted_and_complete(self, values: set[int]) -> None:
        s = RoaringSubject(values)

        assert list(s) == sorted(values)
        assert len(s) == s.cardinality() == len(values)

    @given(values=clustered_values(), data=st.data())
    def test_rank_and_select(self, values: set[int], data: st.DataObject) -> None:
        s = RoaringSubject(values)
        ordered = sorted(values)
        probe = data.draw(st.integers(min_value=-1, max_value=2**21))

        assert s.rank(probe) == bisect.bisect_right(ordered, probe)
        if ordered:
            index = data.draw(st.integers(min_value=0, max_value=len(ordered) - 1))
            assert s.select(index) == ordered[index]

    @given(values=clustered_values(), bounds=half_open_bounds())
    def test_range_queries(self, values: set[int], bounds: tuple[int, int]) -> None:
        lo, hi = bounds
        s = RoaringSubject(values)
        inside = sum(1 for v in values if lo <= v < hi)

        assert s.range_cardinality(lo, hi) == inside
        assert s.intersects_range(lo, hi) == (inside > 0)
        assert s.contains_range(lo, hi) == (inside == hi - lo)

    @given(values=clustered_values())
    def test_absent_values(self, values: set[int]) -> None:
        s = RoaringSubject(values)
        probes = sorted(values)[:20] + sorted(values)[-20:]

        for value in probes:
            for offset in _OFFSETS:
                pos = value + offset
                if pos < 0:
                    continue
                assert s.next_absent_value(pos) == _next_clear(values, pos)
                assert s.previous_absent_value(pos) == _previous_clear(values, pos)

    @given(left=clustered_values(), right=clustered_values())
    def test_set_algebra(self, left: set[int], right: set[int]) -> None:
        a, b = RoaringSubject(left), RoaringSubject(right)

        assert list(a | b) == sorted(left | right)
        assert list(a & b) == sorted(left & right)
        assert list(a ^ b) == sorted(left ^ right)
        assert list(a - b) == sorted(left - right)
        assert a.union_cardinality(b) == len(left | right)
        assert a.intersection_cardinality(b) == len(left & right)
        assert a.symmetric_difference_cardinality(b) == len(left ^ right)
        assert a.issuperset(b) == (left >= right)
