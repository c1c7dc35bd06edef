import json
import subprocess
import sys
from pathlib import Path

from alignvar.seqio import write_fasta
from alignvar.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "alignvar"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "alignvar extract" in cp.stdout
    assert "alignvar make-toy-data" in cp.stdout


def test_extract_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "extract"
    cp = _run_cli(
        [
            "extract",
            "--alignment",
            toy["aligned_fa"],
            "--ref",
            toy["ref_fa"],
            "--outdir",
            str(outdir),
            "--dry-run",
        ]
    )
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert "Alignment pairs: 6" in cp.stdout
    assert not (outdir / "summary.json").exists()


def test_make_toy_data_and_extract(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "extract",
            "--alignment",
            str(toy_dir / "toy_aligned.fa"),
            "--ref",
            str(toy_dir / "toy_ref.fa"),
            "--outdir",
            str(outdir),
            "--threads",
            "2",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert (outdir / "report.html").exists()
    assert (outdir / "plots" / "position_hist.png").exists()
    assert (outdir / "logs" / "extract.log").exists()

    summary = json.loads((outdir / "summary.json").read_text(encoding="utf-8"))
    assert summary["counts"]["substitutions"] == 2


def test_extract_with_canonical_override(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "extract",
            "--alignment",
            toy["aligned_fa"],
            "--outdir",
            str(outdir),
            "--canonical",
            "ACGTR",
            "--no-report",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    summary = json.loads((outdir / "summary.json").read_text(encoding="utf-8"))
    # the ambiguous sample's R is now called
    assert summary["counts"]["substitutions"] == 3
    assert not (outdir / "report.html").exists()


def test_validate_reports_invalid_pairs(tmp_path: Path) -> None:
    aln = write_fasta(tmp_path / "aln.fa", [("ok", "AC-T"), ("ref", "ACGT"), ("bad", "ACG"), ("ref", "ACGT")])
    cp = _run_cli(["validate", "--alignment", str(aln)])
    assert cp.returncode == 1
    assert "INVALID  bad" in cp.stdout
    assert "1 valid, 1 invalid" in cp.stdout


def test_extract_error_message(tmp_path: Path) -> None:
    aln = write_fasta(tmp_path / "aln.fa", [("q", "ACG"), ("ref", "ACGT")])
    cp = _run_cli(["extract", "--alignment", str(aln), "--outdir", str(tmp_path / "out"), "--no-progress"])
    assert cp.returncode == 2
    assert "InvalidAlignment" in cp.stderr
    assert "See log" in cp.stderr


def test_validate_reports_unexpected_errors(tmp_path: Path, monkeypatch, capsys) -> None:
    from alignvar import cli

    def _unreadable(*args, **kwargs):
        raise OSError("truncated FASTA record")

    aln = write_fasta(tmp_path / "aln.fa", [("ok", "ACGT"), ("ref", "ACGT")])
    monkeypatch.setattr(cli, "load_pairs", _unreadable)

    assert cli.main(["validate", "--alignment", str(aln)]) == 2
    assert "OSError: truncated FASTA record" in capsys.readouterr().err
