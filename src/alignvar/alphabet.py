"""Sequence alphabets.

Sequences entering the package are wrapped in ``Nucleotides`` or ``Aminoacids``.
Both are plain ``str`` subclasses, so every string operation keeps working, but
construction upper-cases the input and rejects symbols outside the alphabet.
"""

from __future__ import annotations

from typing import Callable, Container, FrozenSet, Union

GAP = "-"
MISSING_NUC = "N"
MISSING_AA = "X"

CANONICAL_NUCLEOTIDES: FrozenSet[str] = frozenset("ACGT")
CANONICAL_AMINOACIDS: FrozenSet[str] = frozenset("ACDEFGHIKLMNPQRSTVWY")
IUPAC_NUCLEOTIDES: FrozenSet[str] = frozenset("ACGTU" + "RYSWKMBDHVN")
AMINOACIDS: FrozenSet[str] = frozenset("ACDEFGHIKLMNPQRSTVWY" + "X*")


class InvalidSequence(ValueError):
    """Raised when a sequence contains a symbol outside its alphabet."""


class SequenceStr(str):
    ALPHABET: FrozenSet[str] = frozenset()
    KIND = "sequence"

    def __new__(cls, seq: str) -> "SequenceStr":
        s = str(seq).upper()
        allowed = cls.ALPHABET | {GAP}
        for i, ch in enumerate(s):
            if ch not in allowed:
                raise InvalidSequence(
                    f"Invalid {cls.KIND} symbol {ch!r} at index {i}"
                )
        return super().__new__(cls, s)


class Nucleotides(SequenceStr):
    """Nucleotide sequence over IUPAC codes plus the gap symbol."""

    ALPHABET = IUPAC_NUCLEOTIDES
    KIND = "nucleotide"


class Aminoacids(SequenceStr):
    """Amino-acid sequence over the 20 residues, X, stop and the gap symbol."""

    ALPHABET = AMINOACIDS
    KIND = "aminoacid"


ALPHABETS = {
    "nuc": Nucleotides,
    "aa": Aminoacids,
}


def canonical_predicate(canonical: Union[Container[str], Callable[[str], bool]]) -> Callable[[str], bool]:
    """Return a predicate telling whether a symbol may be called as a substitution."""
    if callable(canonical):
        return canonical
    return canonical.__contains__
