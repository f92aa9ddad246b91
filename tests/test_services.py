from collections.abc import Mapping
from typing import Any, override

import pytest

from spanalgebra import (
    FeatureDatabase,
    IntervalSet,
    SeqNameTranslator,
    SequenceProvider,
    extract_sequences,
    features_by,
    rename_seqnames,
)


class DictGenome(SequenceProvider):
    """Sequence provider backed by an in-memory {name: sequence} mapping."""

    def __init__(self, sequences: Mapping[str, str]):
        self.sequences: Mapping[str, str] = sequences
        self.calls: list[tuple[str, int, int]] = []

    @override
    def fetch_sequence(self, reference: str, start: int, end: int) -> str:
        self.calls.append((reference, start, end))
        return self.sequences[reference][start:end]


class StaticFeatures(FeatureDatabase):
    def __init__(self, features: IntervalSet):
        self.features: IntervalSet = features

    @override
    def query_features(self, **criteria: Any) -> IntervalSet:
        kept = [
            i
            for i in range(len(self.features))
            if all(self.features.metadata(i).get(k) == v for k, v in criteria.items())
        ]
        return IntervalSet(
            (self.features[i].start, self.features[i].end, self.features.metadata(i))
            for i in kept
        )


class ChrPrefix(SeqNameTranslator):
    def __init__(self) -> None:
        self.calls: int = 0

    @override
    def translate(self, name: str, target_scheme: str) -> str:
        self.calls += 1
        bare = name.removeprefix("chr")
        return f"chr{bare}" if target_scheme == "UCSC" else bare


def test_extract_sequences_in_set_order() -> None:
    genome = DictGenome({"chr1": "ACGTACGTAC", "chr2": "TTTTGGGG"})
    intervals = IntervalSet(
        [
            (4, 8, {"seqname": "chr2"}),
            (0, 4, {"seqname": "chr1"}),
            (3, 3, {"seqname": "chr1"}),
        ]
    )
    assert extract_sequences(genome, intervals) == ["GGGG", "ACGT", ""]
    assert genome.calls == [("chr2", 4, 8), ("chr1", 0, 4), ("chr1", 3, 3)]


def test_extract_sequences_custom_key() -> None:
    genome = DictGenome({"1": "ACGT"})
    intervals = IntervalSet([(1, 3, {"chrom": "1"})])
    assert extract_sequences(genome, intervals, key="chrom") == ["CG"]


def test_extract_sequences_needs_reference_name() -> None:
    genome = DictGenome({"chr1": "ACGT"})
    with pytest.raises(KeyError, match="seqname"):
        extract_sequences(genome, IntervalSet([(0, 2)]))


def test_rename_seqnames_translates_each_name_once() -> None:
    translator = ChrPrefix()
    intervals = IntervalSet(
        [
            (0, 10, {"seqname": "1", "gene": "A"}),
            (5, 15, {"seqname": "1"}),
            (0, 5, {"seqname": "X"}),
            (7, 9),
        ]
    )
    renamed = rename_seqnames(intervals, translator, "UCSC")

    assert renamed.column("seqname") == ["chr1", "chr1", "chrX", None]
    assert renamed.column("gene") == ["A", None, None, None]
    assert renamed.to_tuples() == intervals.to_tuples()
    assert translator.calls == 2
    assert intervals.column("seqname") == ["1", "1", "X", None]


def test_rename_round_trip_between_schemes() -> None:
    translator = ChrPrefix()
    intervals = IntervalSet([(0, 10, {"seqname": "chr17"})])
    ensembl = rename_seqnames(intervals, translator, "Ensembl")
    assert ensembl.column("seqname") == ["17"]
    assert rename_seqnames(ensembl, translator, "UCSC") == intervals


def test_features_by_groups_query_results() -> None:
    db = StaticFeatures(
        IntervalSet(
            [
                (100, 150, {"feature": "exon", "tx": "t1"}),
                (90, 400, {"feature": "transcript", "tx": "t1"}),
                (300, 380, {"feature": "exon", "tx": "t2"}),
                (180, 220, {"feature": "exon", "tx": "t1"}),
            ]
        )
    )
    exons_by_tx = features_by(db, "tx", feature="exon")

    assert list(exons_by_tx) == ["t1", "t2"]
    assert exons_by_tx["t1"].to_tuples() == [(100, 150), (180, 220)]
    assert exons_by_tx["t2"].to_tuples() == [(300, 380)]


def test_services_are_abstract() -> None:
    with pytest.raises(TypeError):
        SequenceProvider()  # type: ignore[abstract]
    with pytest.raises(TypeError):
        FeatureDatabase()  # type: ignore[abstract]
    with pytest.raises(TypeError):
        SeqNameTranslator()  # type: ignore[abstract]
