import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence
from functools import cached_property, reduce
from itertools import pairwise
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal, overload, override

from spanalgebra.errors import EmptySetError, InvalidIntervalError, LengthMismatchError
from spanalgebra.interval import Interval
from spanalgebra.tree import OverlapTree
from spanalgebra.util import (
    DEFAULT_MIN_GAP,
    DEFAULT_TOUCHING,
    REVMAP_KEY,
    broadcast,
    require_int,
)

if TYPE_CHECKING:
    from spanalgebra.overlaps import OverlapIndex

logger = logging.getLogger(__name__)

Metadata = Mapping[str, Any]
Entry = Interval | tuple[int, int] | tuple[int, int, Metadata]

_NO_METADATA: Metadata = MappingProxyType({})


def _freeze(metadata: Metadata | None) -> Metadata:
    if metadata is None:
        return _NO_METADATA
    if not isinstance(metadata, Mapping):
        raise TypeError(
            f"Interval metadata must be a mapping, got {type(metadata).__name__!r}.\n"
            f"Example: (100, 200, {{'gene': 'BRCA1'}})"
        )
    if not metadata:
        return _NO_METADATA
    return MappingProxyType(dict(metadata))


def _coerce_entry(entry: Any, position: int) -> tuple[Interval, Metadata]:
    if isinstance(entry, Interval):
        return Interval(start=entry.start, end=entry.end), _NO_METADATA
    if isinstance(entry, (tuple, list)) and len(entry) in (2, 3):
        start, end = entry[0], entry[1]
        try:
            interval = Interval(start=start, end=end)
        except InvalidIntervalError as exc:
            raise InvalidIntervalError(
                f"Entry {position} is invalid: start ({start}) > end ({end}).\n"
                f"Intervals are half-open [start, end); use start == end for a "
                f"zero-width marker."
            ) from exc
        return interval, _freeze(entry[2] if len(entry) == 3 else None)
    raise TypeError(
        f"Entry {position} must be an Interval, (start, end) or "
        f"(start, end, metadata).\n"
        f"Got {type(entry).__name__!r}: {entry!r}"
    )


def _column(values: Any, size: int, key: str) -> list[Any]:
    if isinstance(values, (list, tuple)):
        if len(values) != size:
            raise LengthMismatchError(
                f"Column {key!r} has {len(values)} values but there are {size} "
                f"intervals.\n"
                f"Hint: pass one value per interval, or a single scalar to "
                f"repeat it."
            )
        return list(values)
    return [values] * size


class IntervalSet:
    """Immutable, ordered collection of half-open integer intervals.

    Each interval carries a read-only metadata mapping, aligned by position. The
    position of an entry is its stable index: overlap queries and revmaps refer
    to intervals by it. Every operation returns a new set.

    Example:
        >>> exons = IntervalSet([(1, 13), (8, 14), (14, 20, {"gene": "A"})])
        >>> exons.reduce().to_tuples()
        [(1, 20)]
    """

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        intervals: list[Interval] = []
        metadata: list[Metadata] = []
        for position, entry in enumerate(entries):
            interval, meta = _coerce_entry(entry, position)
            intervals.append(interval)
            metadata.append(meta)
        self._intervals: tuple[Interval, ...] = tuple(intervals)
        self._metadata: tuple[Metadata, ...] = tuple(metadata)

    @classmethod
    def _build(
        cls,
        intervals: Iterable[Interval],
        metadata: Iterable[Metadata] | None = None,
    ) -> "IntervalSet":
        """Wrap already-validated parts without re-checking them."""
        result = cls.__new__(cls)
        result._intervals = tuple(intervals)
        if metadata is None:
            result._metadata = (_NO_METADATA,) * len(result._intervals)
        else:
            result._metadata = tuple(metadata)
        return result

    @classmethod
    def from_arrays(
        cls,
        starts: Sequence[int],
        ends: int | Sequence[int] | None = None,
        *,
        widths: int | Sequence[int] | None = None,
        **columns: Any,
    ) -> "IntervalSet":
        """Build a set from parallel vectors of starts and ends (or widths).

        Extra keyword arguments become metadata columns. A list or tuple column
        must have one value per interval; any other value is repeated.

        Raises:
            ValueError: If neither or both of ``ends`` and ``widths`` are given
            LengthMismatchError: If a vector is not aligned with ``starts``
            InvalidIntervalError: If an interval would end before it starts
        """
        starts = list(starts)
        size = len(starts)
        if (ends is None) == (widths is None):
            raise ValueError(
                "from_arrays() needs exactly one of ends= or widths=.\n"
                "Example: IntervalSet.from_arrays([1, 8], widths=[12, 6])"
            )
        if widths is not None:
            ends = [s + w for s, w in zip(starts, broadcast(widths, size, "widths"))]
        else:
            ends = broadcast(ends, size, "ends")

        aligned = {key: _column(values, size, key) for key, values in columns.items()}
        entries = [
            (start, end, {key: values[i] for key, values in aligned.items()})
            for i, (start, end) in enumerate(zip(starts, ends))
        ]
        return cls(entries)

    # --- accessors ---------------------------------------------------------

    def __len__(self) -> int:
        return len(self._intervals)

    def __iter__(self) -> Iterator[Interval]:
        return iter(self._intervals)

    @overload
    def __getitem__(self, item: int) -> Interval: ...

    @overload
    def __getitem__(self, item: slice) -> "IntervalSet": ...

    def __getitem__(self, item: int | slice) -> "Interval | IntervalSet":
        if isinstance(item, slice):
            return self._build(self._intervals[item], self._metadata[item])
        return self._intervals[item]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return self._intervals == other._intervals and self._metadata == other._metadata

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        shown = []
        for interval, meta in list(zip(self._intervals, self._metadata))[:10]:
            if meta:
                shown.append(f"({interval.start}, {interval.end}, {dict(meta)!r})")
            else:
                shown.append(f"({interval.start}, {interval.end})")
        if len(self) > 10:
            shown.append(f"... {len(self) - 10} more")
        return f"IntervalSet([{', '.join(shown)}])"

    def metadata(self, index: int) -> Metadata:
        """Read-only metadata of the interval at ``index``."""
        return self._metadata[index]

    def column(self, key: str, default: Any = None) -> list[Any]:
        """One metadata value per interval, ``default`` where the key is absent."""
        return [meta.get(key, default) for meta in self._metadata]

    def entries(self) -> Iterator[tuple[Interval, Metadata]]:
        return zip(self._intervals, self._metadata)

    def to_tuples(self) -> list[tuple[int, int]]:
        return [(interval.start, interval.end) for interval in self._intervals]

    @property
    def starts(self) -> list[int]:
        return [interval.start for interval in self._intervals]

    @property
    def ends(self) -> list[int]:
        return [interval.end for interval in self._intervals]

    @property
    def widths(self) -> list[int]:
        return [interval.width for interval in self._intervals]

    @cached_property
    def tree(self) -> OverlapTree:
        """Overlap index over this set, built on first use and then reused."""
        return OverlapTree(self._intervals)

    # --- metadata ----------------------------------------------------------

    def with_metadata(self, metadata: Sequence[Metadata | None]) -> "IntervalSet":
        """Return a copy whose metadata is replaced, one mapping per interval."""
        if len(metadata) != len(self):
            raise LengthMismatchError(
                f"Got {len(metadata)} metadata mappings for {len(self)} intervals."
            )
        return self._build(self._intervals, [_freeze(meta) for meta in metadata])

    def with_column(self, key: str, values: Any) -> "IntervalSet":
        """Return a copy with metadata column ``key`` set (list aligned or scalar)."""
        aligned = _column(values, len(self), key)
        return self._build(
            self._intervals,
            [
                MappingProxyType({**meta, key: value})
                for meta, value in zip(self._metadata, aligned)
            ],
        )

    # --- translation -------------------------------------------------------

    def _with_bounds(self, starts: Iterable[int], ends: Iterable[int]) -> "IntervalSet":
        intervals: list[Interval] = []
        for position, (start, end) in enumerate(zip(starts, ends)):
            if start > end:
                raise InvalidIntervalError(
                    f"Interval {position} would become [{start}, {end}), which "
                    f"ends before it starts.\n"
                    f"Hint: the adjustment is larger than the interval allows; "
                    f"nothing is clamped."
                )
            intervals.append(Interval(start=start, end=end))
        return self._build(intervals, self._metadata)

    def shift(self, delta: int | Sequence[int]) -> "IntervalSet":
        """Move every interval by ``delta`` (a scalar or one value per interval)."""
        deltas = broadcast(delta, len(self), "delta")
        return self._with_bounds(
            (ivl.start + d for ivl, d in zip(self._intervals, deltas)),
            (ivl.end + d for ivl, d in zip(self._intervals, deltas)),
        )

    def expand(self, delta: int | Sequence[int]) -> "IntervalSet":
        """Widen each interval by ``delta`` on both sides; negative values contract.

        Raises:
            LengthMismatchError: If ``delta`` is a sequence of the wrong length
            InvalidIntervalError: If contracting would make an interval end
                before it starts
        """
        deltas = broadcast(delta, len(self), "delta")
        return self._with_bounds(
            (ivl.start - d for ivl, d in zip(self._intervals, deltas)),
            (ivl.end + d for ivl, d in zip(self._intervals, deltas)),
        )

    def flank(self, width: int | Sequence[int], *, before: bool = True) -> "IntervalSet":
        """Regions of ``width`` immediately before (or after) each interval."""
        widths = broadcast(width, len(self), "width")
        if before:
            return self._with_bounds(
                (ivl.start - w for ivl, w in zip(self._intervals, widths)),
                (ivl.start for ivl in self._intervals),
            )
        return self._with_bounds(
            (ivl.end for ivl in self._intervals),
            (ivl.end + w for ivl, w in zip(self._intervals, widths)),
        )

    def resize(
        self,
        width: int | Sequence[int],
        *,
        fix: Literal["start", "end", "center"] = "start",
    ) -> "IntervalSet":
        """Set every interval's width, keeping the ``fix`` anchor in place."""
        widths = broadcast(width, len(self), "width")
        if fix == "start":
            starts = [ivl.start for ivl in self._intervals]
        elif fix == "end":
            starts = [ivl.end - w for ivl, w in zip(self._intervals, widths)]
        elif fix == "center":
            starts = [
                ivl.start + (ivl.width - w) // 2 for ivl, w in zip(self._intervals, widths)
            ]
        else:
            raise ValueError(f"fix must be 'start', 'end' or 'center', got {fix!r}")
        return self._with_bounds(starts, (s + w for s, w in zip(starts, widths)))

    def restrict(self, lo: int, hi: int) -> "IntervalSet":
        """Clip intervals to [lo, hi), dropping those that fall wholly outside."""
        require_int(lo, "lo")
        require_int(hi, "hi")
        if lo > hi:
            raise InvalidIntervalError(f"Bounds [{lo}, {hi}) end before they start")
        intervals: list[Interval] = []
        metadata: list[Metadata] = []
        for interval, meta in self.entries():
            if interval.is_empty:
                keep = lo <= interval.start <= hi
            else:
                keep = interval.start < hi and lo < interval.end
            if keep:
                intervals.append(
                    Interval(start=max(interval.start, lo), end=min(interval.end, hi))
                )
                metadata.append(meta)
        return self._build(intervals, metadata)

    # --- normalisation -----------------------------------------------------

    def _sorted_order(self) -> list[int]:
        return sorted(
            range(len(self._intervals)),
            key=lambda i: (self._intervals[i].start, self._intervals[i].end),
        )

    def reduce(
        self, *, min_gap: int = DEFAULT_MIN_GAP, with_revmap: bool = False
    ) -> "IntervalSet":
        """Merge overlapping intervals into maximal, sorted, disjoint spans.

        Algorithm: sort by (start, end), then sweep keeping one open span. The next
        interval joins the span when ``next.start - span.end < min_gap``. With
        the default ``min_gap=1``, touching intervals ([1, 5) and [5, 9)) merge;
        ``min_gap=0`` merges strict overlaps only. Larger values also bridge
        short gaps.

        Example: [(1, 13), (8, 14), (14, 20), (15, 30), (19, 25), (34, 36), (40, 47)]
        reduces to [(1, 30), (34, 36), (40, 47)] under the default closed
        adjacency; with ``min_gap=0`` the touching spans [1, 14) and [14, 30)
        stay apart.

        Merged spans carry no metadata. With ``with_revmap`` each span gets a
        ``revmap`` tuple holding the indices of the intervals merged into it.
        """
        if min_gap < 0:
            raise ValueError(f"min_gap must be >= 0, got {min_gap}")

        spans: list[list[Any]] = []
        for index in self._sorted_order():
            interval = self._intervals[index]
            if spans and interval.start - spans[-1][1] < min_gap:
                current = spans[-1]
                current[1] = max(current[1], interval.end)
                current[2].append(index)
            else:
                spans.append([interval.start, interval.end, [index]])

        logger.debug("reduce: %d intervals -> %d spans", len(self), len(spans))
        intervals = [Interval(start=start, end=end) for start, end, _ in spans]
        if not with_revmap:
            return self._build(intervals)
        return self._build(
            intervals,
            [MappingProxyType({REVMAP_KEY: tuple(sorted(m))}) for _, _, m in spans],
        )

    def disjoin(self, *, with_revmap: bool = False) -> "IntervalSet":
        """Cut the covered positions into atomic pieces with constant membership.

        Every start and end is a breakpoint. A piece between two consecutive
        breakpoints is kept when at least one input interval covers it. The
        sweep tracks the set of covering intervals, and ``with_revmap`` records
        it as a sorted ``revmap`` tuple.
        """
        breakpoints: set[int] = set()
        opening: defaultdict[int, list[int]] = defaultdict(list)
        closing: defaultdict[int, list[int]] = defaultdict(list)
        for index, interval in enumerate(self._intervals):
            breakpoints.update((interval.start, interval.end))
            if not interval.is_empty:
                opening[interval.start].append(index)
                closing[interval.end].append(index)

        active: set[int] = set()
        intervals: list[Interval] = []
        metadata: list[Metadata] = []
        for left, right in pairwise(sorted(breakpoints)):
            active.difference_update(closing.get(left, ()))
            active.update(opening.get(left, ()))
            if active:
                intervals.append(Interval(start=left, end=right))
                if with_revmap:
                    metadata.append(MappingProxyType({REVMAP_KEY: tuple(sorted(active))}))

        logger.debug("disjoin: %d intervals -> %d pieces", len(self), len(intervals))
        return self._build(intervals, metadata if with_revmap else None)

    def gaps(self, lo: int | None = None, hi: int | None = None) -> "IntervalSet":
        """Uncovered stretches within [lo, hi), sorted and disjoint.

        ``lo`` and ``hi`` default to the smallest start and largest end of the set.

        Raises:
            EmptySetError: If the set is empty and a bound is missing
            InvalidIntervalError: If ``lo > hi``
        """
        if lo is None or hi is None:
            if not self._intervals:
                raise EmptySetError(
                    "gaps() of an empty set needs explicit bounds.\n"
                    "Fix: pass both lo and hi, e.g. empty.gaps(0, chrom_length)"
                )
            if lo is None:
                lo = min(interval.start for interval in self._intervals)
            if hi is None:
                hi = max(interval.end for interval in self._intervals)
        require_int(lo, "lo")
        require_int(hi, "hi")
        if lo > hi:
            raise InvalidIntervalError(f"gaps() bounds [{lo}, {hi}) end before they start")

        cursor = lo
        holes: list[Interval] = []
        for span in self.reduce():
            if span.is_empty or span.end <= lo:
                continue
            if span.start >= hi:
                break
            segment_start = max(span.start, lo)
            if segment_start > cursor:
                holes.append(Interval(start=cursor, end=segment_start))
            cursor = max(cursor, min(span.end, hi))

        if cursor < hi:
            holes.append(Interval(start=cursor, end=hi))
        return self._build(holes)

    # --- grouping ----------------------------------------------------------

    def split(self, labels: Sequence[Hashable]) -> dict[Hashable, "IntervalSet"]:
        """Partition by label, keeping order and metadata within each group.

        Groups appear in order of each label's first occurrence.
        """
        keys = list(labels)
        if len(keys) != len(self):
            raise LengthMismatchError(
                f"Got {len(keys)} labels for {len(self)} intervals.\n"
                f"Hint: split() needs exactly one label per interval."
            )
        groups: dict[Hashable, tuple[list[Interval], list[Metadata]]] = {}
        for key, interval, meta in zip(keys, self._intervals, self._metadata):
            intervals, metadata = groups.setdefault(key, ([], []))
            intervals.append(interval)
            metadata.append(meta)
        return {
            key: self._build(intervals, metadata)
            for key, (intervals, metadata) in groups.items()
        }

    def split_by(self, key: str) -> dict[Hashable, "IntervalSet"]:
        """Split using the metadata value under ``key`` (None where absent)."""
        return self.split(self.column(key))

    # --- filtering and overlaps -------------------------------------------

    def filter(self, predicate: "Filter") -> "IntervalSet":
        kept = [
            (interval, meta)
            for interval, meta in self.entries()
            if predicate.apply(interval, meta)
        ]
        return self._build((i for i, _ in kept), (m for _, m in kept))

    def find_overlaps(
        self, subject: "IntervalSet", *, touching: bool = DEFAULT_TOUCHING
    ) -> "OverlapIndex":
        # Import at runtime to avoid circular dependency
        from spanalgebra.overlaps import find_overlaps

        return find_overlaps(self, subject, touching=touching)

    def overlaps(
        self, subject: "IntervalSet", *, touching: bool = DEFAULT_TOUCHING
    ) -> "IntervalSet":
        """Intervals of this set that overlap at least one interval of ``subject``."""
        from spanalgebra.overlaps import subset_by_overlaps

        return subset_by_overlaps(self, subject, touching=touching)

    # --- set algebra -------------------------------------------------------

    def __or__(self, other: "IntervalSet | Filter") -> "IntervalSet":
        if isinstance(other, Filter):
            raise TypeError(
                f"Cannot union (|) an IntervalSet with a Filter.\n"
                f"Got: IntervalSet | {type(other).__name__}\n"
                f"Hint: Use & to apply filters: exons & (width >= 50)\n"
                f"      Use | to combine sets: exons_a | exons_b"
            )
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return concat(self, other).reduce()

    def __and__(self, other: "IntervalSet | Filter") -> "IntervalSet":
        if isinstance(other, Filter):
            return self.filter(other)
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return _intersect_spans(self.reduce(), other.reduce())

    def __sub__(self, other: "IntervalSet") -> "IntervalSet":
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return _subtract_spans(self.reduce(), other.reduce())

    def __invert__(self) -> "IntervalSet":
        return self.gaps()


def _intersect_spans(left: IntervalSet, right: IntervalSet) -> IntervalSet:
    """Intersect two reduced sets by advancing whichever span ends first."""
    i = j = 0
    shared: list[Interval] = []
    while i < len(left) and j < len(right):
        a, b = left[i], right[j]
        start, end = max(a.start, b.start), min(a.end, b.end)
        if start < end:
            shared.append(Interval(start=start, end=end))
        if a.end < b.end:
            i += 1
        else:
            j += 1
    return IntervalSet._build(shared)


def _subtract_spans(source: IntervalSet, subtrahend: IntervalSet) -> IntervalSet:
    """Carve the spans of ``subtrahend`` out of ``source`` (both reduced)."""
    holes = [hole for hole in subtrahend if not hole.is_empty]
    remaining: list[Interval] = []
    first = 0
    for span in source:
        cursor = span.start
        # Skip holes that end before our cursor position
        while first < len(holes) and holes[first].end <= cursor:
            first += 1

        k = first
        while k < len(holes) and holes[k].start < span.end:
            if holes[k].start > cursor:
                remaining.append(Interval(start=cursor, end=holes[k].start))
            cursor = max(cursor, holes[k].end)
            k += 1

        if cursor < span.end:
            remaining.append(Interval(start=cursor, end=span.end))
    return IntervalSet._build(remaining)


class Filter(ABC):

    @abstractmethod
    def apply(self, interval: Interval, metadata: Metadata) -> bool:
        pass

    def __or__(self, other: "Filter | IntervalSet") -> "Filter":
        if isinstance(other, IntervalSet):
            raise TypeError(
                f"Cannot union (|) a Filter with an IntervalSet.\n"
                f"Got: {type(self).__name__} | IntervalSet\n"
                f"Hint: Use & to apply filters: exons & (width >= 50)\n"
                f"      Use | to combine filters: (width >= 50) | (start < 1000)"
            )
        return Or(self, other)

    @overload
    def __and__(self, other: "Filter") -> "Filter": ...

    @overload
    def __and__(self, other: IntervalSet) -> IntervalSet: ...

    def __and__(self, other: "Filter | IntervalSet") -> "Filter | IntervalSet":
        if isinstance(other, IntervalSet):
            return other.filter(self)
        return And(self, other)


class Or(Filter):
    def __init__(self, *filters: Filter):
        super().__init__()
        self.filters: tuple[Filter, ...] = filters

    @override
    def apply(self, interval: Interval, metadata: Metadata) -> bool:
        return any(f.apply(interval, metadata) for f in self.filters)


class And(Filter):
    def __init__(self, *filters: Filter):
        super().__init__()
        self.filters: tuple[Filter, ...] = filters

    @override
    def apply(self, interval: Interval, metadata: Metadata) -> bool:
        return all(f.apply(interval, metadata) for f in self.filters)


def concat(*sets: IntervalSet) -> IntervalSet:
    """Join sets end to end, keeping order and metadata (indices renumbered)."""

    if not sets:
        raise ValueError(
            "concat() requires at least one IntervalSet argument.\n"
            "Example: concat(exons_a, exons_b)"
        )
    return IntervalSet._build(
        (interval for s in sets for interval in s._intervals),
        (meta for s in sets for meta in s._metadata),
    )


def union(*sets: IntervalSet) -> IntervalSet:
    """Compose sets with union semantics (equivalent to chaining `|`)."""

    if not sets:
        raise ValueError(
            "union() requires at least one IntervalSet argument.\n"
            "Example: union(exons_a, exons_b, exons_c)"
        )
    return concat(*sets).reduce()


def intersection(*sets: IntervalSet) -> IntervalSet:
    """Compose sets with intersection semantics (equivalent to chaining `&`)."""

    if not sets:
        raise ValueError(
            "intersection() requires at least one IntervalSet argument.\n"
            "Example: intersection(exons_a, exons_b, exons_c)"
        )

    def reducer(acc: IntervalSet, nxt: IntervalSet) -> IntervalSet:
        return acc & nxt

    return reduce(reducer, sets[1:], sets[0].reduce())
