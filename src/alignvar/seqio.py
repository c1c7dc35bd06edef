"""Reading references and pairwise alignments.

Pairwise alignments are read from FASTA files in which records alternate
between an aligned query and its aligned reference (the layout written by
EMBOSS ``needle -aformat fasta`` and most pairwise aligners)::

    >sample1 score=118.5
    ACGTT-GA
    >ref
    ACG-TTGA

The alignment score is taken from a ``score=<number>`` token in the query
header; it defaults to 0.0 when absent.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, Optional, Tuple, Type

import pysam

from .alignment import AlignedPair, Alignment, InvalidAlignment
from .alphabet import Nucleotides, SequenceStr

logger = logging.getLogger(__name__)

_SCORE_RE = re.compile(r"(?:^|\s)score=(\S+)")


def _ensure_faidx(fasta: Path) -> None:
    """Ensure a FASTA has a .fai index (required by pysam.FastaFile)."""
    fai = fasta.with_suffix(fasta.suffix + ".fai")
    if fai.exists():
        return
    logger.info("Creating FASTA index: %s", fai)
    pysam.faidx(str(fasta))


def load_reference(
    path: str | Path,
    *,
    contig: Optional[str] = None,
    alphabet: Type[SequenceStr] = Nucleotides,
) -> Tuple[str, SequenceStr]:
    """Load one reference sequence from FASTA.

    Parameters
    ----------
    path:
        Reference FASTA. A .fai index is created next to it when missing.
    contig:
        Record name to load. If None, uses the first record.

    Returns
    -------
    (name, sequence), the sequence upper-cased and alphabet-checked.
    """
    fasta = Path(path).expanduser().resolve()
    if not fasta.exists():
        raise FileNotFoundError(f"Reference FASTA not found: {fasta}")
    _ensure_faidx(fasta)

    with pysam.FastaFile(str(fasta)) as fa:
        if len(fa.references) == 0:
            raise ValueError(f"Reference FASTA has no records: {fasta}")
        if contig is None:
            contig = fa.references[0]
            if len(fa.references) > 1:
                logger.info("No contig given; using first reference record: %s", contig)
        if contig not in fa.references:
            raise ValueError(f"Contig '{contig}' not found in reference: {list(fa.references)}")
        seq = fa.fetch(contig)

    return contig, alphabet(seq)


def parse_score(comment: Optional[str]) -> float:
    """Extract ``score=<number>`` from a FASTA header comment."""
    if not comment:
        return 0.0
    m = _SCORE_RE.search(comment)
    if m is None:
        return 0.0
    try:
        return float(m.group(1))
    except ValueError as e:
        raise InvalidAlignment(f"Alignment score is not numeric: {m.group(1)!r}") from e


def iter_raw_pairs(path: str | Path) -> Iterator[Tuple[str, str, str, Optional[str]]]:
    """Yield ``(name, aligned_query, aligned_ref, comment)`` without validation.

    ``comment`` is the query header after the name; see parse_score.
    """
    p = Path(path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"Alignment FASTA not found: {p}")

    with pysam.FastxFile(str(p)) as fh:
        query = None
        for entry in fh:
            if query is None:
                query = entry
                continue
            yield query.name, query.sequence or "", entry.sequence or "", query.comment
            query = None

        if query is not None:
            raise InvalidAlignment(
                f"Odd number of records in {p}: query '{query.name}' has no aligned reference"
            )


def iter_aligned_pairs(
    path: str | Path,
    *,
    alphabet: Type[SequenceStr] = Nucleotides,
) -> Iterator[AlignedPair]:
    """Yield validated AlignedPair objects; raise InvalidAlignment on the first bad pair."""
    for name, query, ref, comment in iter_raw_pairs(path):
        try:
            alignment = Alignment.create(query, ref, parse_score(comment), alphabet=alphabet)
        except InvalidAlignment as e:
            raise InvalidAlignment(f"{name}: {e}") from e
        yield AlignedPair(name=name, alignment=alignment)


def _write_wrapped(fh, header: str, seq: str, width: int = 60) -> None:
    fh.write(f">{header}\n")
    for i in range(0, len(seq), width):
        fh.write(seq[i : i + width] + "\n")


def write_fasta(path: str | Path, records: Iterable[Tuple[str, str]]) -> Path:
    """Write ``(header, sequence)`` records wrapped at 60 columns."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "wt", encoding="utf-8") as fh:
        for header, seq in records:
            _write_wrapped(fh, header, seq)
    return p


def write_aligned_pairs(path: str | Path, pairs: Iterable[AlignedPair], *, ref_name: str = "reference") -> Path:
    """Write pairs in the alternating query/reference layout read by iter_aligned_pairs."""
    records = []
    for pair in pairs:
        aln = pair.alignment
        records.append((f"{pair.name} score={aln.score:g}", aln.query))
        records.append((ref_name, aln.ref))
    return write_fasta(path, records)
