import bisect
import logging
from collections.abc import Iterable

from intervaltree import IntervalTree

from spanalgebra.interval import Interval

logger = logging.getLogger(__name__)


class OverlapTree:
    """Overlap index over one subject set, built once and queried many times.

    Non-empty intervals live in an ``intervaltree.IntervalTree`` whose payload is
    the interval's original index. Zero-width markers cannot be stored in the
    tree, so they sit in a sorted position array searched with ``bisect``.
    """

    def __init__(
        self, intervals: Iterable[Interval], indices: Iterable[int] | None = None
    ) -> None:
        intervals = list(intervals)
        if indices is None:
            indices = range(len(intervals))

        spans: list[tuple[int, int, int]] = []
        points: list[tuple[int, int]] = []
        for index, interval in zip(indices, intervals):
            if interval.is_empty:
                points.append((interval.start, index))
            else:
                spans.append((interval.start, interval.end, index))

        self._tree: IntervalTree = IntervalTree.from_tuples(spans)
        points.sort()
        self._point_positions: list[int] = [position for position, _ in points]
        self._point_indices: list[int] = [index for _, index in points]

        logger.debug(
            "built overlap tree: %d spans, %d zero-width markers",
            len(spans),
            len(points),
        )

    def __len__(self) -> int:
        return len(self._tree) + len(self._point_positions)

    def query(self, start: int, end: int, *, touching: bool = False) -> list[int]:
        """Return the ascending indices of stored intervals overlapping [start, end).

        With ``touching`` the test is closed at both ends, so intervals that merely
        abut the query (and zero-width markers on or inside it) also match.
        Without it, zero-width intervals never match anything.
        """
        if not touching:
            if start == end:
                return []
            return sorted(hit.data for hit in self._tree.overlap(start, end))

        # Integer coordinates: widening by one turns the strict test into <=
        found = [hit.data for hit in self._tree.overlap(start - 1, end + 1)]
        lo = bisect.bisect_left(self._point_positions, start)
        hi = bisect.bisect_right(self._point_positions, end)
        found.extend(self._point_indices[lo:hi])
        return sorted(found)
