"""Policy defaults and small helpers shared across spanalgebra.

The constants below are the package-wide defaults for every policy flag.
Each operation also takes the matching keyword argument.
"""

from collections.abc import Sequence

from spanalgebra.errors import LengthMismatchError

# reduce(): merge when next.start - current.end < min_gap (1 = touching merges)
DEFAULT_MIN_GAP = 1

# find_overlaps(): count intervals that only touch as overlapping
DEFAULT_TOUCHING = False

# Metadata key holding the original indices behind a reduced/disjoined piece
REVMAP_KEY = "revmap"

# Metadata key naming the reference sequence an interval is anchored to
SEQNAME_KEY = "seqname"


def require_int(value: object, name: str) -> int:
    """Return ``value`` if it is a plain int (bools are rejected).

    Raises:
        TypeError: For floats, bools and any other non-int value
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(
            f"{name} must be an int.\n"
            f"Got {type(value).__name__!r}: {value!r}\n"
            f"Hint: coordinates are integer positions; convert explicitly, "
            f"e.g. int(round(x)), if the value comes from float arithmetic."
        )
    return value


def broadcast(value: int | Sequence[int], size: int, name: str) -> list[int]:
    """Expand a scalar to ``size`` copies, or check a vector is aligned.

    Raises:
        LengthMismatchError: If ``value`` is a sequence of the wrong length
        TypeError: If ``value`` or one of its items is not an int
    """
    if isinstance(value, int) or not isinstance(value, Sequence):
        return [require_int(value, name)] * size
    values = [require_int(v, f"{name}[{i}]") for i, v in enumerate(value)]
    if len(values) != size:
        raise LengthMismatchError(
            f"{name} has {len(values)} values but the set holds {size} intervals.\n"
            f"Hint: pass a single int to apply it to every interval, or one "
            f"value per interval."
        )
    return values
