from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pysam

from .alignment import AlignedPair, Alignment
from .seqio import write_aligned_pairs, write_fasta
from .utils import ensure_outdir, write_json


def _mutate_base(base: str) -> str:
    for alt in ["A", "C", "G", "T"]:
        if alt != base:
            return alt
    return "A"


def _substitute(seq: str, positions: List[int]) -> str:
    out = list(seq)
    for p in positions:
        out[p] = _mutate_base(out[p])
    return "".join(out)


def _toy_pairs(ref_seq: str) -> List[AlignedPair]:
    n = len(ref_seq)
    raw = [
        # name, aligned query, aligned reference, score
        ("sample_snp", _substitute(ref_seq, [10, 40]), ref_seq, 3.0 * n - 12),
        ("sample_insertion", ref_seq[:20] + "TTA" + ref_seq[20:], ref_seq[:20] + "---" + ref_seq[20:], 3.0 * n - 9),
        ("sample_deletion", ref_seq[:30] + "-----" + ref_seq[35:], ref_seq, 3.0 * n - 15),
        ("sample_partial", "-" * 8 + ref_seq[8:50] + "-" * (n - 50), ref_seq, 3.0 * 42),
        ("sample_trailing_insertion", ref_seq + "GGA", ref_seq + "---", 3.0 * n - 9),
        ("sample_ambiguous", ref_seq[:12] + "NNNN" + ref_seq[16:25] + "R" + ref_seq[26:], ref_seq, 3.0 * n - 15),
    ]
    return [
        AlignedPair(name=name, alignment=Alignment.create(q, r, score))
        for name, q, r, score in raw
    ]


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny reference and pairwise alignments for quick demos/tests.

    The outputs include:
    - toy_ref.fa (+ .fai)
    - toy_aligned.fa: query/reference pairs covering substitutions, an internal
      insertion, an internal deletion, unaligned ends, an insertion after the
      last reference base and ambiguous bases

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    contig = "toy_ref"
    ref_seq = ("ACGTTAGCATGCAATGGCTAGGATCC" * 3)[:60]
    ref_fa = write_fasta(outdir_p / "toy_ref.fa", [(contig, ref_seq)])
    pysam.faidx(str(ref_fa))

    aligned_fa = write_aligned_pairs(outdir_p / "toy_aligned.fa", _toy_pairs(ref_seq), ref_name=contig)

    summary = {
        "ref_fa": str(ref_fa),
        "aligned_fa": str(aligned_fa),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
