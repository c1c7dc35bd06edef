"""Per-sequence summaries handed to downstream layers (translation, QC, display)."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict
from typing import Any, Dict, List, Mapping

from .alphabet import GAP, MISSING_NUC
from .models import AnalysisReport, MissingRange, NucleotideSubstitution, SequenceSummary

logger = logging.getLogger(__name__)

TSV_COLUMNS = [
    "seqName",
    "alignmentScore",
    "alignmentStart",
    "alignmentEnd",
    "totalSubstitutions",
    "substitutions",
    "totalDeletions",
    "deletions",
    "totalInsertions",
    "insertions",
    "totalMissing",
    "missing",
]


def list_substitutions(report: AnalysisReport, ungapped_ref: str) -> List[NucleotideSubstitution]:
    """Attach reference bases to the report's mutations, sorted by position."""
    out: List[NucleotideSubstitution] = []
    for pos in sorted(report.mutations):
        m = report.mutations[pos]
        out.append(NucleotideSubstitution(pos=m.pos, ref_nuc=ungapped_ref[m.pos], query_nuc=m.query_nuc))
    return out


def find_character_ranges(seq: str, character: str) -> List[MissingRange]:
    """Return maximal runs of ``character`` in ``seq`` as half-open ranges."""
    ranges: List[MissingRange] = []
    begin = -1
    for i, ch in enumerate(seq):
        if ch == character:
            if begin < 0:
                begin = i
        elif begin >= 0:
            ranges.append(MissingRange(character=character, begin=begin, end=i))
            begin = -1
    if begin >= 0:
        ranges.append(MissingRange(character=character, begin=begin, end=len(seq)))
    return ranges


def nucleotide_composition(seq: str) -> Dict[str, int]:
    """Count symbols in ``seq``, ignoring gaps."""
    counts = Counter(ch for ch in seq if ch != GAP)
    return dict(sorted(counts.items()))


def summarize(
    seq_name: str,
    report: AnalysisReport,
    ungapped_ref: str,
    *,
    missing_char: str = MISSING_NUC,
) -> SequenceSummary:
    """Build the per-sequence summary.

    Missing ranges are reported in reference coordinates (over the stripped
    query); composition counts the query without gaps, insertions included.
    """
    return SequenceSummary(
        seq_name=seq_name,
        substitutions=list_substitutions(report, ungapped_ref),
        insertions=[report.insertions[k] for k in sorted(report.insertions)],
        deletions=[report.deletions[k] for k in sorted(report.deletions)],
        missing=find_character_ranges(report.stripped_query, missing_char),
        alignment_start=report.alignment_start,
        alignment_end=report.alignment_end,
        alignment_score=report.alignment_score,
        nucleotide_composition=nucleotide_composition(report.aligned_query),
    )


def summary_to_jsonable(summary: SequenceSummary) -> Mapping[str, Any]:
    """JSON-ready dict; positions stay 0-based, substitution labels are 1-based."""
    d = asdict(summary)
    d["substitutions"] = [dict(asdict(s), label=s.label) for s in summary.substitutions]
    d["total_missing"] = summary.total_missing
    return d


def _format_pos(pos: int) -> str:
    return str(pos + 1) if pos >= 0 else ""


def _format_range(begin: int, end: int) -> str:
    # 0-based half-open -> 1-based inclusive
    if end - begin == 1:
        return str(begin + 1)
    return f"{begin + 1}-{end}"


def summary_to_tsv_row(summary: SequenceSummary) -> List[str]:
    """Row matching TSV_COLUMNS, using conventional 1-based notation.

    Insertions are written ``anchor:BASES`` where ``anchor`` is the 1-based
    position of the reference base preceding the insertion (0 for an insertion
    before the first base).
    """
    return [
        summary.seq_name,
        f"{summary.alignment_score:g}",
        _format_pos(summary.alignment_start),
        _format_pos(summary.alignment_end),
        str(len(summary.substitutions)),
        ",".join(s.label for s in summary.substitutions),
        str(sum(d.length for d in summary.deletions)),
        ",".join(_format_range(d.start, d.end) for d in summary.deletions),
        str(sum(i.length for i in summary.insertions)),
        ",".join(f"{i.pos}:{i.ins}" for i in summary.insertions),
        str(summary.total_missing),
        ",".join(_format_range(m.begin, m.end) for m in summary.missing),
    ]
