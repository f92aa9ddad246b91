from dataclasses import dataclass

from spanalgebra.errors import InvalidIntervalError
from spanalgebra.util import require_int


@dataclass(frozen=True, kw_only=True)
class Interval:
    start: int
    end: int

    def __post_init__(self) -> None:
        require_int(self.start, "Interval start")
        require_int(self.end, "Interval end")
        if self.start > self.end:
            raise InvalidIntervalError(
                f"Interval start ({self.start}) must be <= end ({self.end})"
            )

    @property
    def width(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        """True for zero-width markers (start == end)."""
        return self.start == self.end

    def __str__(self) -> str:
        """Human-friendly string showing the half-open range and its width."""
        return f"Interval([{self.start}, {self.end}), {self.width}bp)"
