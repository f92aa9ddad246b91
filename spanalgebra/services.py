"""Contracts for the external data services that feed or consume interval sets.

spanalgebra does not store genomes, model transcripts or know chromosome naming
schemes. Those live behind three small interfaces, and the helpers here call them
on behalf of an ``IntervalSet``:

- ``SequenceProvider``: raw residues for a range on a named reference
- ``FeatureDatabase``: gene/transcript/exon coordinates as interval sets
- ``SeqNameTranslator``: map a sequence name between nomenclatures
  (e.g. ``"chr1"`` <-> ``"1"``)

Example:
    >>> class UCSCStyle(SeqNameTranslator):
    ...     def translate(self, name, target_scheme):
    ...         bare = name.removeprefix("chr")
    ...         return f"chr{bare}" if target_scheme == "UCSC" else bare
    >>> exons = IntervalSet([(10, 20, {"seqname": "1"})])
    >>> rename_seqnames(exons, UCSCStyle(), "UCSC").column("seqname")
    ['chr1']
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import Any

from spanalgebra.core import IntervalSet
from spanalgebra.util import SEQNAME_KEY

logger = logging.getLogger(__name__)


class SequenceProvider(ABC):
    """Source of reference sequence (a FASTA file, a 2bit genome, a web API...)."""

    @abstractmethod
    def fetch_sequence(self, reference: str, start: int, end: int) -> str:
        """Return the residues of ``reference`` over the half-open [start, end)."""
        pass


class FeatureDatabase(ABC):
    """Source of annotated features (genes, transcripts, exons...)."""

    @abstractmethod
    def query_features(self, **criteria: Any) -> IntervalSet:
        """Return the features matching ``criteria`` with their metadata."""
        pass


class SeqNameTranslator(ABC):
    """Maps sequence names from one naming scheme to another."""

    @abstractmethod
    def translate(self, name: str, target_scheme: str) -> str:
        pass


def extract_sequences(
    provider: SequenceProvider,
    intervals: IntervalSet,
    *,
    key: str = SEQNAME_KEY,
) -> list[str]:
    """Fetch the sequence under every interval, in set order.

    Each interval's reference name is read from its metadata under ``key``.

    Raises:
        KeyError: If an interval has no reference name
    """
    sequences: list[str] = []
    for index, (interval, meta) in enumerate(intervals.entries()):
        if key not in meta:
            raise KeyError(
                f"Interval {index} ({interval}) has no {key!r} metadata.\n"
                f"Hint: sequences can only be fetched for intervals anchored to a "
                f"named reference, e.g. (100, 200, {{{key!r}: 'chr1'}})"
            )
        sequences.append(provider.fetch_sequence(meta[key], interval.start, interval.end))
    logger.debug("fetched %d sequences", len(sequences))
    return sequences


def rename_seqnames(
    intervals: IntervalSet,
    translator: SeqNameTranslator,
    target_scheme: str,
    *,
    key: str = SEQNAME_KEY,
) -> IntervalSet:
    """Return a copy with every sequence name translated to ``target_scheme``.

    Intervals without a name under ``key`` are left as they are. Each distinct
    name is translated once.
    """
    translated: dict[str, str] = {}
    metadata: list[dict[str, Any]] = []
    for _, meta in intervals.entries():
        if key not in meta:
            metadata.append(dict(meta))
            continue
        name = meta[key]
        if name not in translated:
            translated[name] = translator.translate(name, target_scheme)
        metadata.append({**meta, key: translated[name]})
    logger.debug(
        "translated %d sequence names to %s", len(translated), target_scheme
    )
    return intervals.with_metadata(metadata)


def features_by(
    database: FeatureDatabase, by: str, **criteria: Any
) -> dict[Hashable, IntervalSet]:
    """Query ``database`` and group the features by metadata key ``by``.

    The usual way to get, for instance, the exons of each transcript:
    ``features_by(db, "transcript_id", feature="exon")``.
    """
    return database.query_features(**criteria).split_by(by)
