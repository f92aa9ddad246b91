"""Overlap queries between two interval sets.

``find_overlaps`` answers "which subject intervals does each query interval hit,
and vice versa". The subject side is indexed once by an interval tree (cached on
the immutable set), then every query interval is looked up against it, for
O((n + m) log m + hits) in total.

Example:
    >>> from spanalgebra import IntervalSet, find_overlaps
    >>> genes = IntervalSet([(1, 13), (8, 14), (14, 20), (15, 30), (19, 25)])
    >>> hits = find_overlaps(IntervalSet([(19, 21)]), genes)
    >>> hits.matches_for(0)
    (2, 3, 4)
"""

import logging
from collections import defaultdict
from collections.abc import Hashable, Iterator, Sequence

from spanalgebra.core import IntervalSet
from spanalgebra.tree import OverlapTree
from spanalgebra.util import DEFAULT_TOUCHING

logger = logging.getLogger(__name__)


class OverlapIndex:
    """Pairs of (query index, subject index) whose intervals overlap.

    Hits are stored in both directions, so looking them up from either side is
    a plain tuple lookup. All hit tuples are ascending.
    """

    def __init__(
        self, query_hits: Sequence[Sequence[int]], subject_length: int
    ) -> None:
        self._query_hits: tuple[tuple[int, ...], ...] = tuple(
            tuple(hits) for hits in query_hits
        )
        inverse: list[list[int]] = [[] for _ in range(subject_length)]
        for query_index, hits in enumerate(self._query_hits):
            for subject_index in hits:
                inverse[subject_index].append(query_index)
        self._subject_hits: tuple[tuple[int, ...], ...] = tuple(
            tuple(hits) for hits in inverse
        )

    @property
    def query_length(self) -> int:
        return len(self._query_hits)

    @property
    def subject_length(self) -> int:
        return len(self._subject_hits)

    def matches_for(self, query_index: int) -> tuple[int, ...]:
        """Subject indices overlapping query interval ``query_index``."""
        return self._query_hits[query_index]

    def matches_for_subject(self, subject_index: int) -> tuple[int, ...]:
        """Query indices overlapping subject interval ``subject_index``."""
        return self._subject_hits[subject_index]

    def pairs(self) -> list[tuple[int, int]]:
        """All (query, subject) pairs, ordered by query then subject."""
        return list(self)

    def counts(self) -> list[int]:
        """Number of subject hits for each query interval."""
        return [len(hits) for hits in self._query_hits]

    def subject_counts(self) -> list[int]:
        return [len(hits) for hits in self._subject_hits]

    def flip(self) -> "OverlapIndex":
        """The same hits with the query and subject roles swapped."""
        return OverlapIndex(self._subject_hits, self.query_length)

    def __iter__(self) -> Iterator[tuple[int, int]]:
        for query_index, hits in enumerate(self._query_hits):
            for subject_index in hits:
                yield query_index, subject_index

    def __len__(self) -> int:
        return sum(len(hits) for hits in self._query_hits)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OverlapIndex):
            return NotImplemented
        return (
            self._query_hits == other._query_hits
            and self.subject_length == other.subject_length
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"OverlapIndex({len(self)} hits, query_length={self.query_length}, "
            f"subject_length={self.subject_length})"
        )


def _grouped_trees(subject: IntervalSet, by: str) -> dict[Hashable, OverlapTree]:
    positions: defaultdict[Hashable, list[int]] = defaultdict(list)
    for index, value in enumerate(subject.column(by)):
        if value is not None:
            positions[value].append(index)
    return {
        key: OverlapTree((subject[i] for i in indices), indices)
        for key, indices in positions.items()
    }


def find_overlaps(
    query: IntervalSet,
    subject: IntervalSet,
    *,
    touching: bool = DEFAULT_TOUCHING,
    by: str | None = None,
) -> OverlapIndex:
    """Find every (query, subject) pair of overlapping intervals.

    Two intervals overlap when they share a position:
    ``q.start < s.end and s.start < q.end``. Zero-width intervals share no
    positions, so they never overlap anything.

    Args:
        query: Intervals to look up
        subject: Intervals to look them up in (its tree index is reused)
        touching: Also count intervals that only touch (closed test
            ``q.start <= s.end and s.start <= q.end``). Under this policy
            zero-width markers match the ranges they touch or sit inside.
        by: Metadata key (e.g. ``"seqname"``). When given, only intervals with
            equal values under that key can match. Intervals lacking the key
            match nothing.

    Returns:
        OverlapIndex over ``len(query)`` x ``len(subject)``
    """
    if by is None:
        tree = subject.tree
        hits = [tree.query(ivl.start, ivl.end, touching=touching) for ivl in query]
    else:
        trees = _grouped_trees(subject, by)
        hits = []
        for interval, meta in query.entries():
            grouped = trees.get(meta.get(by))
            if grouped is None:
                hits.append([])
            else:
                hits.append(grouped.query(interval.start, interval.end, touching=touching))

    index = OverlapIndex(hits, len(subject))
    logger.debug(
        "find_overlaps: %d query x %d subject -> %d hits",
        len(query),
        len(subject),
        len(index),
    )
    return index


def count_overlaps(
    query: IntervalSet,
    subject: IntervalSet,
    *,
    touching: bool = DEFAULT_TOUCHING,
    by: str | None = None,
) -> list[int]:
    """Number of subject intervals each query interval overlaps."""
    return find_overlaps(query, subject, touching=touching, by=by).counts()


def subset_by_overlaps(
    query: IntervalSet,
    subject: IntervalSet,
    *,
    touching: bool = DEFAULT_TOUCHING,
    by: str | None = None,
    invert: bool = False,
) -> IntervalSet:
    """Query intervals with at least one hit (or none, when ``invert``).

    Order and metadata of the kept intervals are preserved.
    """
    counts = count_overlaps(query, subject, touching=touching, by=by)
    keep = [i for i, count in enumerate(counts) if (count > 0) != invert]
    return IntervalSet._build(
        (query[i] for i in keep), (query.metadata(i) for i in keep)
    )
