from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Container, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from .alignment import AlignedPair, Alignment
from .alphabet import CANONICAL_NUCLEOTIDES, GAP, canonical_predicate
from .models import AlignmentRange, AnalysisReport, Deletion, Insertion, Mutation
from .params import ExtractionParams

logger = logging.getLogger(__name__)

Canonical = Union[Container[str], Callable[[str], bool]]


def detect_insertions(
    aligned_query: Sequence[str],
    aligned_ref: Sequence[str],
    *,
    gap: str = GAP,
) -> Tuple[Dict[int, Insertion], str]:
    """Collect insertions and project the query onto reference coordinates.

    Walks the alignment columns once, counting consumed reference bases. Query
    tokens in columns where the reference has a gap form insertions anchored at
    the number of reference bases consumed so far. An insertion still open at
    the end of the alignment is emitted as well.

    Returns
    -------
    insertions:
        Mapping anchor -> Insertion, anchor-ascending.
    stripped_query:
        Query tokens from columns where the reference is not a gap. Its length
        equals the ungapped reference length.
    """
    insertions: Dict[int, Insertion] = {}
    stripped: List[str] = []

    ref_pos = 0
    ins: List[str] = []
    ins_start = -1

    for q, r in zip(aligned_query, aligned_ref):
        if r == gap:
            if not ins:
                ins_start = ref_pos
            ins.append(q)
            continue

        if ins:
            insertions[ins_start] = Insertion(pos=ins_start, ins="".join(ins))
            ins = []
        stripped.append(q)
        ref_pos += 1

    # insertion after the last reference base
    if ins:
        insertions[ins_start] = Insertion(pos=ins_start, ins="".join(ins))

    return insertions, "".join(stripped)


def detect_substitutions_and_deletions(
    stripped_query: Sequence[str],
    ungapped_ref: Sequence[str],
    *,
    canonical: Canonical = CANONICAL_NUCLEOTIDES,
    gap: str = GAP,
) -> Tuple[Dict[int, Mutation], Dict[int, Deletion], Optional[AlignmentRange]]:
    """Call substitutions and deletions on a query in reference coordinates.

    Gaps before the first aligned base are unaligned leading sequence, not a
    deletion. A gap run still open after the last aligned base is trailing
    unaligned sequence and is never emitted; the alignment range ends at the
    last aligned base instead. Differing query symbols rejected by
    ``canonical`` (ambiguity codes, N) are not called.
    """
    is_canonical = canonical_predicate(canonical)

    mutations: Dict[int, Mutation] = {}
    deletions: Dict[int, Deletion] = {}

    before_alignment = True
    n_del = 0
    del_pos = -1
    aln_start = -1
    aln_end = -1

    for i, (d, r) in enumerate(zip(stripped_query, ungapped_ref)):
        if d != gap:
            if before_alignment:
                aln_start = i
                before_alignment = False
            elif n_del:
                deletions[del_pos] = Deletion(start=del_pos, length=n_del)
                n_del = 0
            aln_end = i

            if d != r and is_canonical(d):
                mutations[i] = Mutation(pos=i, query_nuc=d)

        elif not before_alignment:
            if not n_del:
                del_pos = i
            n_del += 1

    aln_range = AlignmentRange(start=aln_start, end=aln_end) if aln_start >= 0 else None
    return mutations, deletions, aln_range


def extract(
    aligned_query: Sequence[str],
    aligned_ref: Sequence[str],
    ungapped_ref: Sequence[str],
    score: float,
    *,
    canonical: Canonical = CANONICAL_NUCLEOTIDES,
    gap: str = GAP,
) -> AnalysisReport:
    """Turn a finished alignment into a variant report.

    Pure function of its inputs. The inputs are trusted: ``aligned_query`` and
    ``aligned_ref`` must have equal length and ``ungapped_ref`` must equal
    ``aligned_ref`` without gaps. Use :meth:`Alignment.create` and
    :func:`check_reference` to enforce this where aligner output is accepted.
    """
    insertions, stripped = detect_insertions(aligned_query, aligned_ref, gap=gap)
    mutations, deletions, aln_range = detect_substitutions_and_deletions(
        stripped, ungapped_ref, canonical=canonical, gap=gap
    )
    return AnalysisReport(
        mutations=mutations,
        insertions=insertions,
        deletions=deletions,
        alignment_range=aln_range,
        alignment_score=score,
        aligned_query="".join(aligned_query),
        stripped_query=stripped,
    )


def extract_alignment(
    alignment: Alignment,
    ungapped_ref: Optional[str] = None,
    *,
    params: Optional[ExtractionParams] = None,
) -> AnalysisReport:
    """Extract variants from a validated alignment.

    If ``ungapped_ref`` is None it is derived from the alignment's reference row.
    """
    params = params or ExtractionParams()
    if ungapped_ref is None:
        ungapped_ref = alignment.ungapped_ref()
    return extract(
        alignment.query,
        alignment.ref,
        ungapped_ref,
        alignment.score,
        canonical=params.canonical,
    )


def extract_batch(
    pairs: Iterable[AlignedPair],
    ungapped_ref: Optional[str] = None,
    *,
    params: Optional[ExtractionParams] = None,
    threads: int = 1,
    progress: bool = True,
) -> List[Tuple[str, AnalysisReport]]:
    """Extract variants for many alignments; results keep input order.

    Extractions are independent of each other, so ``threads > 1`` runs them on
    a thread pool.
    """
    params = params or ExtractionParams()
    pair_list = list(pairs)

    def _one(pair: AlignedPair) -> Tuple[str, AnalysisReport]:
        return pair.name, extract_alignment(pair.alignment, ungapped_ref, params=params)

    logger.info("Extracting variants for %d alignment(s) with %d thread(s)", len(pair_list), threads)

    if threads <= 1:
        it: Iterable[AlignedPair] = pair_list
        if progress:
            it = tqdm(it, unit="seq", desc="Extracting variants")
        return [_one(p) for p in it]

    with ThreadPoolExecutor(max_workers=int(threads)) as executor:
        results = executor.map(_one, pair_list)
        if progress:
            results = tqdm(results, total=len(pair_list), unit="seq", desc="Extracting variants")
        return list(results)
