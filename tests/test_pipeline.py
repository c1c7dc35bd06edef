import gzip
import json
from pathlib import Path

import pytest

from alignvar.alignment import InvalidAlignment
from alignvar.params import ExtractionParams
from alignvar.pipeline import extract_file
from alignvar.seqio import write_fasta
from alignvar.toy_data import make_toy_data


def test_extract_file_on_toy_data(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"

    summary = extract_file(
        alignment_path=toy["aligned_fa"],
        ref_path=toy["ref_fa"],
        outdir=outdir,
        threads=2,
        progress=False,
    )

    counts = summary["counts"]
    assert counts["pairs_total"] == 6
    assert counts["pairs_invalid"] == 0
    assert counts["sequences_analyzed"] == 6
    assert counts["substitutions"] == 2
    assert counts["deletions"] == 1
    assert counts["deleted_bases"] == 5
    assert counts["insertions"] == 2
    assert counts["inserted_bases"] == 6
    assert counts["missing_bases"] == 4
    assert summary["ref_length"] == 60

    per_seq = {r["seq_name"]: r for r in summary["per_sequence"]}
    assert (per_seq["sample_partial"]["alignment_start"], per_seq["sample_partial"]["alignment_end"]) == (8, 49)
    assert per_seq["sample_partial"]["deletions"] == 0

    for name in ("summary.json", "results.json", "variants.tsv.gz"):
        assert (outdir / name).exists()

    with gzip.open(outdir / "variants.tsv.gz", "rt") as fh:
        rows = [line.rstrip("\n").split("\t") for line in fh]
    header, body = rows[0], rows[1:]
    by_name = {r[0]: dict(zip(header, r)) for r in body}
    assert by_name["sample_insertion"]["insertions"] == "20:TTA"
    assert by_name["sample_trailing_insertion"]["insertions"] == "60:GGA"
    assert by_name["sample_deletion"]["deletions"] == "31-35"
    assert by_name["sample_ambiguous"]["substitutions"] == ""

    results = json.loads((outdir / "results.json").read_text(encoding="utf-8"))
    assert results["reference"] == {"name": "toy_ref", "length": 60}
    assert [r["seq_name"] for r in results["results"]][0] == "sample_snp"


def test_invalid_pairs_are_skipped(tmp_path: Path) -> None:
    aln = write_fasta(
        tmp_path / "aln.fa",
        [
            ("good score=5", "AC-T"),
            ("ref", "ACGT"),
            ("short", "ACG"),
            ("ref", "ACGT"),
            ("wrongref", "ACGT"),
            ("ref", "AAAA"),
        ],
    )
    summary = extract_file(alignment_path=str(aln), outdir=tmp_path / "out", progress=False)
    assert summary["counts"]["pairs_total"] == 3
    assert summary["counts"]["pairs_invalid"] == 2
    assert {r["seq_name"] for r in summary["invalid"]} == {"short", "wrongref"}
    assert summary["per_sequence"][0]["deletions"] == 1


def test_reference_check_can_be_disabled(tmp_path: Path) -> None:
    aln = write_fasta(tmp_path / "aln.fa", [("q", "ACGA"), ("ref", "ACGT"), ("q2", "AAAA"), ("ref", "AAAT")])
    summary = extract_file(
        alignment_path=str(aln),
        outdir=tmp_path / "out",
        params=ExtractionParams(check_reference=False),
        progress=False,
    )
    assert summary["counts"]["pairs_invalid"] == 0
    assert summary["check_reference"] is False


def test_no_usable_alignments(tmp_path: Path) -> None:
    aln = write_fasta(tmp_path / "aln.fa", [("q", "ACG"), ("ref", "ACGT")])
    with pytest.raises(InvalidAlignment, match="No usable alignments"):
        extract_file(alignment_path=str(aln), outdir=tmp_path / "out", progress=False)


def test_non_numeric_score_skips_only_that_pair(tmp_path: Path) -> None:
    aln = write_fasta(
        tmp_path / "aln.fa",
        [("good score=5", "AC-T"), ("ref", "ACGT"), ("bad score=high", "ACGT"), ("ref", "ACGT")],
    )
    summary = extract_file(alignment_path=str(aln), outdir=tmp_path / "out", progress=False)
    assert summary["counts"]["pairs_total"] == 2
    assert summary["counts"]["pairs_invalid"] == 1
    assert summary["invalid"][0]["seq_name"] == "bad"
    assert "not numeric" in summary["invalid"][0]["error"]
    assert [r["seq_name"] for r in summary["per_sequence"]] == ["good"]


def test_aminoacid_alphabet_uses_residue_defaults(tmp_path: Path) -> None:
    aln = write_fasta(
        tmp_path / "aln.fa",
        [("p1", "MNNV"), ("ref", "MNNV"), ("p2", "KNNV"), ("ref", "MNNV"), ("p3", "MXXV"), ("ref", "MNNV")],
    )
    summary = extract_file(
        alignment_path=str(aln),
        outdir=tmp_path / "out",
        params=ExtractionParams(alphabet="aa"),
        progress=False,
    )
    counts = summary["counts"]
    assert counts["pairs_invalid"] == 0
    # asparagine is a residue; X marks missing data
    assert counts["missing_bases"] == 2
    assert counts["substitutions"] == 1

    results = json.loads((tmp_path / "out" / "results.json").read_text(encoding="utf-8"))
    by_name = {r["seq_name"]: r for r in results["results"]}
    assert by_name["p2"]["substitutions"][0]["label"] == "M1K"
    assert by_name["p3"]["missing"] == [{"character": "X", "begin": 1, "end": 3}]


def test_length_mismatch_is_rejected_without_reference_check(tmp_path: Path) -> None:
    aln = write_fasta(
        tmp_path / "aln.fa",
        [("q1", "ACGT"), ("ref", "ACGT"), ("q2", "ACGTNNNN"), ("ref", "ACGTACGT")],
    )
    summary = extract_file(
        alignment_path=str(aln),
        outdir=tmp_path / "out",
        params=ExtractionParams(check_reference=False),
        progress=False,
    )
    assert summary["counts"]["pairs_invalid"] == 1
    assert summary["invalid"][0]["seq_name"] == "q2"
    assert "reference length 4" in summary["invalid"][0]["error"]
    assert summary["counts"]["missing_bases"] == 0
