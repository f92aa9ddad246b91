from importlib.resources import files

from .core import Filter, IntervalSet, concat, intersection, union
from .errors import (
    EmptySetError,
    IntervalError,
    InvalidIntervalError,
    LengthMismatchError,
)
from .interval import Interval
from .overlaps import OverlapIndex, count_overlaps, find_overlaps, subset_by_overlaps
from .properties import Property, end, field, one_of, start, width
from .services import (
    FeatureDatabase,
    SeqNameTranslator,
    SequenceProvider,
    extract_sequences,
    features_by,
    rename_seqnames,
)

# Load documentation files for programmatic access by agents and code-aware tools
_docs_path = files(__package__) / "docs"
docs = {
    "readme": (_docs_path / "README.md").read_text(),
    "tutorial": (_docs_path / "TUTORIAL.md").read_text(),
    "api": (_docs_path / "API.md").read_text(),
}

__all__ = [
    "Interval",
    "IntervalSet",
    "Filter",
    "Property",
    "OverlapIndex",
    "concat",
    "union",
    "intersection",
    "find_overlaps",
    "count_overlaps",
    "subset_by_overlaps",
    "start",
    "end",
    "width",
    "field",
    "one_of",
    "SequenceProvider",
    "FeatureDatabase",
    "SeqNameTranslator",
    "extract_sequences",
    "rename_seqnames",
    "features_by",
    "IntervalError",
    "InvalidIntervalError",
    "LengthMismatchError",
    "EmptySetError",
    "docs",
]
