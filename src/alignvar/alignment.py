"""Accepting alignments produced by an external aligner.

The extraction engine trusts its inputs. All contract checks happen here, where
aligner output enters the package: equal-length non-empty rows over a known
alphabet, and a reference row that matches the reference sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Type

from .alphabet import GAP, InvalidSequence, Nucleotides, SequenceStr

logger = logging.getLogger(__name__)


class InvalidAlignment(ValueError):
    """Raised when an aligned triple violates the alignment contract."""


@dataclass(frozen=True)
class Alignment:
    """A validated pairwise alignment: two equal-length gapped rows and a score."""

    query: str
    ref: str
    score: float = 0.0

    @classmethod
    def create(
        cls,
        query: str,
        ref: str,
        score: float = 0.0,
        *,
        alphabet: Type[SequenceStr] = Nucleotides,
    ) -> "Alignment":
        """Validate aligner output and wrap it; raise InvalidAlignment otherwise."""
        try:
            q = alphabet(query)
            r = alphabet(ref)
        except InvalidSequence as e:
            raise InvalidAlignment(str(e)) from e

        if len(q) == 0 or len(r) == 0:
            raise InvalidAlignment("Aligned sequences must be non-empty")
        if len(q) != len(r):
            raise InvalidAlignment(
                f"Aligned query and reference differ in length ({len(q)} != {len(r)})"
            )
        try:
            score_f = float(score)
        except (TypeError, ValueError) as e:
            raise InvalidAlignment(f"Alignment score is not numeric: {score!r}") from e
        return cls(query=q, ref=r, score=score_f)

    def __len__(self) -> int:
        return len(self.ref)

    def ungapped_ref(self, gap: str = GAP) -> str:
        return self.ref.replace(gap, "")


@dataclass(frozen=True)
class AlignedPair:
    """A named alignment; one unit of batch work."""

    name: str
    alignment: Alignment


def check_reference(
    alignment: Alignment,
    ungapped_ref: str,
    *,
    gap: str = GAP,
    compare_bases: bool = True,
) -> None:
    """Ensure the alignment's reference row, without gaps, equals ``ungapped_ref``.

    With ``compare_bases=False`` only the length is checked; a row of a different
    length can never be projected onto the reference.
    """
    stripped = alignment.ungapped_ref(gap)
    if stripped == ungapped_ref:
        return
    if len(stripped) != len(ungapped_ref):
        raise InvalidAlignment(
            "Aligned reference does not match the reference sequence: "
            f"{len(stripped)} ungapped bases vs reference length {len(ungapped_ref)}"
        )
    if not compare_bases:
        return
    for i, (a, b) in enumerate(zip(stripped, ungapped_ref)):
        if a != b:
            raise InvalidAlignment(
                f"Aligned reference does not match the reference sequence at position {i + 1}: "
                f"{a} != {b}"
            )
