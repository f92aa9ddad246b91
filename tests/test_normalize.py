"""Tests for reduce(), disjoin() and gaps()."""

import pytest

from spanalgebra import EmptySetError, IntervalSet, InvalidIntervalError

IR = IntervalSet(
    [(1, 13), (8, 14), (14, 20), (15, 30), (19, 25), (34, 36), (40, 47)]
)


class TestReduce:
    """reduce() merges overlapping intervals."""

    def test_touching_intervals_merge_by_default(self):
        """Touching spans merge under the default closed adjacency."""
        assert IR.reduce().to_tuples() == [(1, 30), (34, 36), (40, 47)]

    def test_open_adjacency_keeps_touching_spans_apart(self):
        """min_gap=0 merges strict overlaps only."""
        assert IR.reduce(min_gap=0).to_tuples() == [
            (1, 14),
            (14, 30),
            (34, 36),
            (40, 47),
        ]

    def test_touching_pair(self):
        """A pair meeting at one coordinate, given out of order."""
        s = IntervalSet([(5, 9), (1, 5)])
        assert s.reduce().to_tuples() == [(1, 9)]
        assert s.reduce(min_gap=0).to_tuples() == [(1, 5), (5, 9)]

    def test_min_gap_bridges_short_gaps(self):
        """Gaps shorter than min_gap are bridged."""
        assert IR.reduce(min_gap=4).to_tuples() == [(1, 30), (34, 36), (40, 47)]
        assert IR.reduce(min_gap=5).to_tuples() == [(1, 47)]

    def test_negative_min_gap_is_rejected(self):
        """A negative min_gap is a ValueError."""
        with pytest.raises(ValueError):
            IR.reduce(min_gap=-1)

    def test_drops_metadata(self):
        """Merged spans carry no metadata."""
        s = IntervalSet([(1, 5, {"gene": "A"}), (3, 8, {"gene": "B"})])
        reduced = s.reduce()
        assert reduced.to_tuples() == [(1, 8)]
        assert dict(reduced.metadata(0)) == {}

    def test_revmap(self):
        """The revmap lists the source indices of each span."""
        reduced = IR.reduce(with_revmap=True)
        assert reduced.column("revmap") == [(0, 1, 2, 3, 4), (5,), (6,)]

    def test_contained_interval(self):
        """An interval inside another adds nothing."""
        s = IntervalSet([(0, 100), (10, 20), (150, 160)])
        assert s.reduce().to_tuples() == [(0, 100), (150, 160)]

    def test_zero_width_inside_span_is_absorbed(self):
        """Markers inside a span vanish, isolated ones survive."""
        s = IntervalSet([(0, 10), (5, 5), (20, 20)])
        assert s.reduce().to_tuples() == [(0, 10), (20, 20)]

    def test_empty_set(self):
        """Reducing nothing gives nothing."""
        assert IntervalSet().reduce() == IntervalSet()

    def test_idempotent(self):
        """A reduced set reduces to itself."""
        once = IR.reduce()
        assert once.reduce() == once


class TestDisjoin:
    """disjoin() cuts the set at every breakpoint."""

    def test_partition_of_example(self):
        """Every breakpoint pair with coverage becomes a piece."""
        assert IR.disjoin().to_tuples() == [
            (1, 8),
            (8, 13),
            (13, 14),
            (14, 15),
            (15, 19),
            (19, 20),
            (20, 25),
            (25, 30),
            (34, 36),
            (40, 47),
        ]

    def test_revmap_tracks_membership(self):
        """Each piece records which inputs cover it."""
        s = IntervalSet([(0, 10), (5, 15)])
        pieces = s.disjoin(with_revmap=True)
        assert pieces.to_tuples() == [(0, 5), (5, 10), (10, 15)]
        assert pieces.column("revmap") == [(0,), (0, 1), (1,)]

    def test_uncovered_breakpoint_pairs_are_skipped(self):
        """No piece is emitted for uncovered stretches."""
        s = IntervalSet([(0, 5), (10, 15)])
        assert s.disjoin().to_tuples() == [(0, 5), (10, 15)]

    def test_duplicates_collapse(self):
        """Identical inputs share one piece."""
        s = IntervalSet([(0, 5), (0, 5)])
        assert s.disjoin(with_revmap=True).column("revmap") == [(0, 1)]

    def test_without_revmap_has_no_metadata(self):
        """Pieces are bare unless a revmap is asked for."""
        assert all(not meta for _, meta in IR.disjoin().entries())


class TestGaps:
    """gaps() returns the uncovered stretches."""

    def test_default_bounds(self):
        """Bounds default to the extent of the set."""
        assert IR.gaps().to_tuples() == [(30, 34), (36, 40)]

    def test_explicit_bounds(self):
        """Explicit bounds add leading and trailing holes."""
        assert IR.gaps(0, 50).to_tuples() == [(0, 1), (30, 34), (36, 40), (47, 50)]

    def test_bounds_clip_the_input(self):
        """Coverage outside the bounds is ignored."""
        assert IR.gaps(20, 38).to_tuples() == [(30, 34), (36, 38)]

    def test_touching_spans_leave_no_gap(self):
        """Touching spans leave no hole between them."""
        s = IntervalSet([(0, 5), (5, 10)])
        assert s.gaps().to_tuples() == []

    def test_zero_width_markers_do_not_split_gaps(self):
        """Markers cover nothing."""
        s = IntervalSet([(0, 2), (5, 5), (8, 10)])
        assert s.gaps().to_tuples() == [(2, 8)]

    def test_empty_set_needs_bounds(self):
        """An empty set has no extent to default to."""
        with pytest.raises(EmptySetError):
            IntervalSet().gaps()
        with pytest.raises(EmptySetError):
            IntervalSet().gaps(lo=0)

    def test_empty_set_with_bounds_is_one_gap(self):
        """With bounds, an empty set is one big hole."""
        assert IntervalSet().gaps(0, 10).to_tuples() == [(0, 10)]

    def test_inverted_bounds(self):
        """lo > hi is rejected."""
        with pytest.raises(InvalidIntervalError):
            IR.gaps(10, 5)

    def test_invert_operator(self):
        """~s is gaps() with default bounds."""
        assert ~IR == IR.gaps()
