from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Mutation:
    """A nucleotide substitution called against the reference.

    Coordinates are 0-based positions in the *ungapped* reference.

    Attributes
    ----------
    pos:
        Reference coordinate of the substituted base.
    query_nuc:
        Canonical base observed in the query. The reference base is not stored;
        look it up from the reference sequence.
    """

    pos: int
    query_nuc: str


@dataclass(frozen=True)
class Insertion:
    """Consecutive query bases aligned against reference gaps.

    pos:
        Anchor: number of reference bases consumed before the insertion. 0 means
        the insertion precedes the first reference base; ``len(ref)`` means it
        follows the last one.
    ins:
        Inserted bases, in order (never empty).
    """

    pos: int
    ins: str

    @property
    def length(self) -> int:
        return len(self.ins)


@dataclass(frozen=True)
class Deletion:
    """Run of reference bases with no query base, inside the alignment range."""

    start: int
    length: int

    @property
    def end(self) -> int:
        # exclusive
        return self.start + self.length


@dataclass(frozen=True)
class AlignmentRange:
    """Inclusive bounds of reference positions covered by aligned query bases."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def __contains__(self, pos: int) -> bool:
        return self.start <= pos <= self.end


@dataclass(frozen=True)
class AnalysisReport:
    """Variants extracted from one aligned query.

    ``alignment_range`` is None when the query has no aligned base at all.
    ``aligned_query`` is the query exactly as aligned (gaps included);
    ``stripped_query`` is the query with reference-gap columns removed, i.e. in
    reference coordinates.
    """

    mutations: Dict[int, Mutation]
    insertions: Dict[int, Insertion]
    deletions: Dict[int, Deletion]
    alignment_range: Optional[AlignmentRange]
    alignment_score: float
    aligned_query: str
    stripped_query: str

    @property
    def alignment_start(self) -> int:
        return self.alignment_range.start if self.alignment_range is not None else -1

    @property
    def alignment_end(self) -> int:
        return self.alignment_range.end if self.alignment_range is not None else -1


@dataclass(frozen=True)
class NucleotideSubstitution:
    """A substitution with its reference base attached (for reporting)."""

    pos: int
    ref_nuc: str
    query_nuc: str

    @property
    def label(self) -> str:
        # conventional 1-based notation, e.g. A4G
        return f"{self.ref_nuc}{self.pos + 1}{self.query_nuc}"


@dataclass(frozen=True)
class MissingRange:
    """Maximal run of one character (typically N), 0-based half-open."""

    character: str
    begin: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.begin


@dataclass(frozen=True)
class SequenceSummary:
    """Per-sequence result handed to downstream layers."""

    seq_name: str
    substitutions: List[NucleotideSubstitution]
    insertions: List[Insertion]
    deletions: List[Deletion]
    missing: List[MissingRange]
    alignment_start: int
    alignment_end: int
    alignment_score: float
    nucleotide_composition: Dict[str, int] = field(default_factory=dict)

    @property
    def total_missing(self) -> int:
        return sum(m.length for m in self.missing)
