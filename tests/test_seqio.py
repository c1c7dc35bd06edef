from pathlib import Path

import pytest

from alignvar.alignment import AlignedPair, Alignment, InvalidAlignment
from alignvar.seqio import (
    iter_aligned_pairs,
    iter_raw_pairs,
    load_reference,
    parse_score,
    write_aligned_pairs,
    write_fasta,
)


def test_parse_score():
    assert parse_score("score=12.5") == 12.5
    assert parse_score("sample from run 3 score=-4") == -4.0
    assert parse_score("no score here") == 0.0
    assert parse_score(None) == 0.0
    with pytest.raises(InvalidAlignment):
        parse_score("score=abc")


def test_pairs_round_trip_through_fasta(tmp_path: Path) -> None:
    pairs = [
        AlignedPair("q1", Alignment.create("ACTGT", "AC-GT", 10)),
        AlignedPair("q2", Alignment.create("A--T", "ACGT", 2.5)),
    ]
    path = write_aligned_pairs(tmp_path / "aln.fa", pairs)

    loaded = list(iter_aligned_pairs(path))
    assert [p.name for p in loaded] == ["q1", "q2"]
    assert loaded[0].alignment == pairs[0].alignment
    assert loaded[1].alignment.query == "A--T"
    assert loaded[1].alignment.score == 2.5


def test_odd_record_count_is_invalid(tmp_path: Path) -> None:
    path = write_fasta(tmp_path / "odd.fa", [("q1", "ACGT"), ("ref", "ACGT"), ("q2", "ACGT")])
    with pytest.raises(InvalidAlignment, match="q2"):
        list(iter_aligned_pairs(path))


def test_mismatched_pair_names_the_sequence(tmp_path: Path) -> None:
    path = write_fasta(tmp_path / "bad.fa", [("q1", "ACGTA"), ("ref", "ACGT")])
    with pytest.raises(InvalidAlignment, match="q1"):
        list(iter_aligned_pairs(path))


def test_load_reference_indexes_and_selects_contig(tmp_path: Path) -> None:
    fa = write_fasta(tmp_path / "ref.fa", [("chrA", "acgtacgt"), ("chrB", "TTTT")])

    name, seq = load_reference(fa)
    assert name == "chrA"
    assert seq == "ACGTACGT"
    assert (tmp_path / "ref.fa.fai").exists()

    name, seq = load_reference(fa, contig="chrB")
    assert (name, seq) == ("chrB", "TTTT")

    with pytest.raises(ValueError, match="chrC"):
        load_reference(fa, contig="chrC")


def test_load_reference_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_reference(tmp_path / "missing.fa")


def test_raw_pairs_keep_the_header_comment(tmp_path: Path) -> None:
    path = write_fasta(tmp_path / "aln.fa", [("q1 score=high", "ACGT"), ("ref", "ACGT"), ("q2", "ACGT"), ("ref", "ACGT")])
    raw = list(iter_raw_pairs(path))
    assert [name for name, _, _, _ in raw] == ["q1", "q2"]
    assert raw[0][3] == "score=high"
    assert not raw[1][3]

    with pytest.raises(InvalidAlignment, match="q1: Alignment score is not numeric"):
        list(iter_aligned_pairs(path))
