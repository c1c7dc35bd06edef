from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from .alignment import AlignedPair, Alignment, InvalidAlignment, check_reference
from .alphabet import ALPHABETS
from .annotate import TSV_COLUMNS, summarize, summary_to_jsonable, summary_to_tsv_row
from .extractor import extract_batch
from .models import SequenceSummary
from .params import ExtractionParams
from .seqio import iter_raw_pairs, load_reference, parse_score
from .utils import ensure_outdir, write_json, write_tsv

logger = logging.getLogger(__name__)

_POSITION_BINS = 100


def _position_hist(positions: List[int], ref_len: int, nbins: int) -> Dict[str, list]:
    edges = np.linspace(0.0, float(ref_len), nbins + 1)
    counts = np.histogram(np.asarray(positions, dtype=np.int64), bins=edges)[0]
    return {"bin_edges": edges.tolist(), "counts": counts.tolist()}


def _coverage(summaries: List[SequenceSummary], ref_len: int) -> np.ndarray:
    cov = np.zeros(ref_len, dtype=np.int64)
    for s in summaries:
        if s.alignment_start < 0:
            continue
        cov[s.alignment_start : s.alignment_end + 1] += 1
    return cov


def _binned_coverage(cov: np.ndarray, nbins: int) -> Dict[str, list]:
    edges = np.linspace(0, len(cov), nbins + 1).astype(np.int64)
    means = [float(cov[a:b].mean()) if b > a else 0.0 for a, b in zip(edges[:-1], edges[1:])]
    return {"bin_edges": edges.tolist(), "mean_depth": means}


def load_pairs(
    alignment_path: str | Path,
    *,
    ref_seq: Optional[str],
    params: ExtractionParams,
) -> tuple[List[AlignedPair], Optional[str], List[Dict[str, str]]]:
    """Read and validate pairs; invalid pairs are logged and returned separately.

    When ``ref_seq`` is None the first valid pair's reference row (gaps removed)
    becomes the reference for the run.
    """
    alphabet = ALPHABETS[params.alphabet]
    pairs: List[AlignedPair] = []
    invalid: List[Dict[str, str]] = []

    for name, query, ref, comment in iter_raw_pairs(alignment_path):
        try:
            aln = Alignment.create(query, ref, parse_score(comment), alphabet=alphabet)
            if ref_seq is None:
                ref_seq = aln.ungapped_ref()
                logger.info("No reference given; using the reference row of '%s' (%d bases)", name, len(ref_seq))
            check_reference(aln, ref_seq, compare_bases=params.check_reference)
        except InvalidAlignment as e:
            logger.warning("Skipping alignment '%s': %s", name, e)
            invalid.append({"seq_name": name, "error": str(e)})
            continue
        pairs.append(AlignedPair(name=name, alignment=aln))

    return pairs, ref_seq, invalid


def extract_file(
    *,
    alignment_path: str,
    outdir: str | Path,
    ref_path: Optional[str] = None,
    contig: Optional[str] = None,
    params: Optional[ExtractionParams] = None,
    threads: int = 1,
    progress: bool = True,
) -> Dict[str, object]:
    """Main workhorse: read alignments, extract variants, write outputs, return summary dict.

    Outputs written to ``outdir``: ``variants.tsv.gz`` (one row per sequence),
    ``results.json`` (full per-sequence results) and ``summary.json``.
    """
    t0 = time.time()
    params = params or ExtractionParams()
    outdir_path = ensure_outdir(outdir)

    ref_name: Optional[str] = None
    ref_seq: Optional[str] = None
    if ref_path is not None:
        ref_name, ref_seq = load_reference(ref_path, contig=contig, alphabet=ALPHABETS[params.alphabet])
        logger.info("Loaded reference %s (%d bases)", ref_name, len(ref_seq))

    pairs, ref_seq, invalid = load_pairs(alignment_path, ref_seq=ref_seq, params=params)
    if not pairs or ref_seq is None:
        raise InvalidAlignment(
            f"No usable alignments in {alignment_path} ({len(invalid)} invalid). "
            "Run 'alignvar validate' for details."
        )
    if ref_name is None:
        ref_name = "(from alignment)"

    results = extract_batch(pairs, ref_seq, params=params, threads=threads, progress=progress)
    summaries = [
        summarize(name, report, ref_seq, missing_char=params.missing) for name, report in results
    ]

    counts = {
        "pairs_total": len(pairs) + len(invalid),
        "pairs_invalid": len(invalid),
        "sequences_analyzed": len(summaries),
        "sequences_unaligned": sum(1 for s in summaries if s.alignment_start < 0),
        "substitutions": sum(len(s.substitutions) for s in summaries),
        "deletions": sum(len(s.deletions) for s in summaries),
        "deleted_bases": sum(d.length for s in summaries for d in s.deletions),
        "insertions": sum(len(s.insertions) for s in summaries),
        "inserted_bases": sum(i.length for s in summaries for i in s.insertions),
        "missing_bases": sum(s.total_missing for s in summaries),
    }

    ref_len = len(ref_seq)
    nbins = max(1, min(_POSITION_BINS, ref_len))
    cov = _coverage(summaries, ref_len)

    variants_tsv_gz = outdir_path / "variants.tsv.gz"
    write_tsv(variants_tsv_gz, TSV_COLUMNS, [summary_to_tsv_row(s) for s in summaries])

    results_json = outdir_path / "results.json"
    write_json(
        results_json,
        {
            "reference": {"name": ref_name, "length": ref_len},
            "results": [summary_to_jsonable(s) for s in summaries],
            "invalid": invalid,
        },
    )

    dt = time.time() - t0

    summary = {
        "alignment_path": str(alignment_path),
        "ref_path": str(ref_path) if ref_path is not None else None,
        "ref_name": ref_name,
        "ref_length": ref_len,
        "canonical": "".join(sorted(params.canonical)),
        "alphabet": params.alphabet,
        "check_reference": bool(params.check_reference),
        "threads": int(threads),
        "variants_tsv_gz": str(variants_tsv_gz),
        "results_json": str(results_json),
        "counts": counts,
        "per_sequence": [
            {
                "seq_name": s.seq_name,
                "alignment_start": s.alignment_start,
                "alignment_end": s.alignment_end,
                "substitutions": len(s.substitutions),
                "deletions": len(s.deletions),
                "insertions": len(s.insertions),
            }
            for s in summaries
        ],
        "position_hist": {
            "substitutions": _position_hist([x.pos for s in summaries for x in s.substitutions], ref_len, nbins),
            "deletions": _position_hist([d.start for s in summaries for d in s.deletions], ref_len, nbins),
            "insertions": _position_hist([i.pos for s in summaries for i in s.insertions], ref_len, nbins),
        },
        "coverage": _binned_coverage(cov, nbins),
        "invalid": invalid,
        "runtime_seconds": float(dt),
    }

    write_json(outdir_path / "summary.json", summary)
    return summary
