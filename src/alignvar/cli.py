from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .alphabet import ALPHABETS
from .params import ExtractionParams, load_params, override_params
from .pipeline import extract_file, load_pairs
from .plotting import plot_coverage, plot_position_hist, plot_variant_counts
from .report import render_report
from .seqio import iter_raw_pairs, load_reference
from .toy_data import make_toy_data
from .utils import ensure_outdir


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _add_params_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--ref",
        type=_path_exists,
        default=None,
        help="Reference FASTA (ungapped). Default: reference row of the first alignment.",
    )
    p.add_argument("--contig", default=None, help="Reference record to use (default: first record).")
    p.add_argument(
        "--params",
        type=_path_exists,
        default=None,
        help="JSON file with extraction parameters (canonical, missing, alphabet, check_reference).",
    )
    p.add_argument(
        "--alphabet",
        choices=sorted(ALPHABETS),
        default=None,
        help="Sequence alphabet used to validate inputs (default: nuc).",
    )
    p.add_argument(
        "--canonical",
        default=None,
        help="Symbols eligible to be called as substitutions (default: ACGT, or the 20 residues for aa).",
    )
    p.add_argument(
        "--no-check-reference",
        action="store_true",
        help="Only require each alignment's reference row to have the reference length.",
    )


def _resolve_params(args: argparse.Namespace) -> ExtractionParams:
    params = load_params(args.params) if args.params else ExtractionParams()
    return override_params(
        params,
        alphabet=args.alphabet,
        canonical=args.canonical,
        missing=getattr(args, "missing_char", None),
        check_reference=False if args.no_check_reference else None,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="alignvar",
        description=(
            "alignvar: extract substitutions, insertions, deletions and the aligned range "
            "from pairwise sequence alignments against a reference."
        ),
    )
    p.add_argument("--version", action="version", version=f"alignvar {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference and pairwise alignments for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # extract
    # -----------------
    e = sub.add_parser(
        "extract",
        help="Extract variants from pairwise alignments (FASTA, query/reference pairs).",
    )
    e.add_argument(
        "--alignment",
        required=True,
        type=_path_exists,
        help="Pairwise alignment FASTA: records alternate aligned query, aligned reference.",
    )
    e.add_argument("--outdir", required=True, help="Output directory.")
    _add_params_args(e)
    e.add_argument(
        "--missing-char",
        default=None,
        help="Symbol reported as missing data (default: N, or X for aa).",
    )
    e.add_argument("--threads", type=int, default=1, help="Worker threads for extraction.")
    e.add_argument("--no-report", action="store_true", help="Skip plots and report.html.")
    e.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    e.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    e.add_argument("--resume", action="store_true", help="Skip if outputs already exist.")
    e.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # validate
    # -----------------
    v = sub.add_parser(
        "validate",
        help="Check pairwise alignments against the alignment contract without extracting.",
    )
    v.add_argument("--alignment", required=True, type=_path_exists, help="Pairwise alignment FASTA.")
    _add_params_args(v)
    v.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "alignvar quickstart (copy/paste):",
        "",
        "1) Try it on toy data:",
        "   alignvar make-toy-data --outdir toy/",
        "   alignvar extract \\",
        "     --alignment toy/toy_aligned.fa \\",
        "     --ref toy/toy_ref.fa \\",
        "     --outdir toy_results/",
        "   Outputs: toy_results/report.html, toy_results/variants.tsv.gz, toy_results/summary.json",
        "",
        "2) Your own alignments (pairs of aligned query + aligned reference):",
        "   alignvar validate --alignment aligned.fa --ref ref.fa",
        "   alignvar extract --alignment aligned.fa --ref ref.fa --outdir results/ --threads 4",
        "",
        "3) Call ambiguity codes as substitutions too:",
        "   alignvar extract --alignment aligned.fa --outdir results/ --canonical ACGTRYSWKM",
        "",
        "Tip: use --dry-run to validate inputs and print the planned outputs.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _render_outputs(outdir: Path, run: dict) -> Path:
    plots_dir = outdir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    position_png = plots_dir / "position_hist.png"
    counts_png = plots_dir / "variant_counts.png"
    coverage_png = plots_dir / "coverage.png"

    plot_position_hist(position_hist=run["position_hist"], out_png=position_png)
    plot_variant_counts(per_sequence=run["per_sequence"], out_png=counts_png)
    plot_coverage(coverage=run["coverage"], out_png=coverage_png)

    plots_rel = {
        "position_hist": str(Path("plots") / position_png.name),
        "variant_counts": str(Path("plots") / counts_png.name),
        "coverage": str(Path("plots") / coverage_png.name),
    }
    return render_report(outdir=outdir, version=__version__, run=run, plots=plots_rel)


def cmd_extract(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "extract.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("alignvar")
    logger.info("alignvar %s", __version__)

    try:
        params = _resolve_params(args)
        if args.threads < 1:
            raise ValueError("--threads must be >= 1")

        if args.dry_run:
            n_pairs = sum(1 for _ in iter_raw_pairs(args.alignment))
            print("Dry-run: inputs look OK.")
            print(f"Alignment pairs: {n_pairs}")
            if args.ref:
                name, seq = load_reference(args.ref, contig=args.contig, alphabet=ALPHABETS[params.alphabet])
                print(f"Reference: {name} ({len(seq)} bases)")
            else:
                print("Reference: reference row of the first alignment")
            print(f"Canonical symbols: {''.join(sorted(params.canonical))}")
            print("Planned outputs:")
            if not args.no_report:
                print(f"  report.html -> {outdir / 'report.html'}")
            print(f"  variants.tsv.gz -> {outdir / 'variants.tsv.gz'}")
            print(f"  results.json -> {outdir / 'results.json'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            return 0

        outdir = ensure_outdir(outdir)

        if args.resume and (outdir / "summary.json").exists():
            logger.info("Resume enabled: summary.json already exists in %s", outdir)
            print(str(outdir / "summary.json"))
            return 0

        run = extract_file(
            alignment_path=args.alignment,
            outdir=outdir,
            ref_path=args.ref,
            contig=args.contig,
            params=params,
            threads=int(args.threads),
            progress=not bool(args.no_progress),
        )

        if run["counts"]["pairs_invalid"]:
            logger.warning(
                "%d alignment(s) were skipped as invalid; see summary.json",
                run["counts"]["pairs_invalid"],
            )

        if args.no_report:
            print(str(outdir / "summary.json"))
            return 0

        report_path = _render_outputs(outdir, run)
        logger.info("Report written: %s", report_path)
        print(str(report_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_validate(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose, logfile=None)

    try:
        params = _resolve_params(args)
        ref_seq = None
        if args.ref:
            _, ref_seq = load_reference(args.ref, contig=args.contig, alphabet=ALPHABETS[params.alphabet])

        pairs, _, invalid = load_pairs(args.alignment, ref_seq=ref_seq, params=params)
    except Exception as e:
        return _handle_error(e)

    for row in invalid:
        print(f"INVALID  {row['seq_name']}: {row['error']}")
    print(f"{len(pairs)} valid, {len(invalid)} invalid")
    return 0 if not invalid else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "extract":
        return cmd_extract(args)
    if args.cmd == "validate":
        return cmd_validate(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
