import operator as op
from collections.abc import Iterable
from typing import Any, Callable, Hashable, override

from .core import Filter, Metadata
from .interval import Interval


class Operator(Filter):
    def __init__(
        self,
        left: "Property | Any",
        right: "Property | Any",
        operator: Callable[[Any, Any], bool],
    ):
        self.left: "Property | Any" = left
        self.right: "Property | Any" = right
        self.operator: Callable[[Any, Any], bool] = operator

    @override
    def apply(self, interval: Interval, metadata: Metadata) -> bool:
        left_val = (
            self.left.apply(interval, metadata)
            if isinstance(self.left, Property)
            else self.left
        )
        right_val = (
            self.right.apply(interval, metadata)
            if isinstance(self.right, Property)
            else self.right
        )
        return self.operator(left_val, right_val)


class Property:
    def apply(self, interval: Interval, metadata: Metadata) -> Any:
        raise NotImplementedError

    def __ge__(self, other: "Property | Any") -> Operator:
        return Operator(self, other, op.ge)

    def __le__(self, other: "Property | Any") -> Operator:
        return Operator(self, other, op.le)

    def __gt__(self, other: "Property | Any") -> Operator:
        return Operator(self, other, op.gt)

    def __lt__(self, other: "Property | Any") -> Operator:
        return Operator(self, other, op.lt)

    @override
    def __eq__(  # pyright: ignore[reportIncompatibleMethodOverride]
        self, other: Any
    ) -> Operator:
        return Operator(self, other, op.eq)

    @override
    def __ne__(  # pyright: ignore[reportIncompatibleMethodOverride]
        self,
        other: Any,
    ) -> Operator:
        return Operator(self, other, op.ne)


class Start(Property):
    @override
    def apply(self, interval: Interval, metadata: Metadata) -> int:
        return interval.start


class End(Property):
    @override
    def apply(self, interval: Interval, metadata: Metadata) -> int:
        return interval.end


class Width(Property):
    @override
    def apply(self, interval: Interval, metadata: Metadata) -> int:
        return interval.width


class Field(Property):
    """Metadata value under ``key``, or ``default`` where the key is absent."""

    def __init__(self, key: str, default: Any = None):
        self.key: str = key
        self.default: Any = default

    @override
    def apply(self, interval: Interval, metadata: Metadata) -> Any:
        return metadata.get(self.key, self.default)


start: Start = Start()
end: End = End()
width: Width = Width()


def field(key: str, default: Any = None) -> Field:
    return Field(key, default)


def one_of(property: Property, values: Iterable[Hashable]) -> Operator:
    return Operator(set(values), property, op.contains)
