"""Extraction parameters.

Parameters can be given on the command line or in a small JSON file, e.g.::

    {"canonical": "ACGT", "missing": "N", "alphabet": "nuc"}

Command-line flags override values from the file. ``canonical`` and
``missing`` default per alphabet: ``ACGT``/``N`` for nucleotides, the 20
standard residues/``X`` for amino acids.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .alphabet import (
    ALPHABETS,
    CANONICAL_AMINOACIDS,
    CANONICAL_NUCLEOTIDES,
    MISSING_AA,
    MISSING_NUC,
)

logger = logging.getLogger(__name__)

ALPHABET_DEFAULTS: Dict[str, Tuple[FrozenSet[str], str]] = {
    "nuc": (CANONICAL_NUCLEOTIDES, MISSING_NUC),
    "aa": (CANONICAL_AMINOACIDS, MISSING_AA),
}

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


@dataclass(frozen=True)
class ExtractionParams:
    """Settings shared by every extraction in a run.

    Attributes
    ----------
    canonical:
        Symbols eligible to be reported as substitutions. Differing query symbols
        outside this set (ambiguity codes, N) are not called. None selects the
        alphabet's default.
    missing:
        Symbol reported as missing data in per-sequence summaries. None selects
        the alphabet's default.
    alphabet:
        ``nuc`` or ``aa``; selects the alphabet used to validate input sequences.
    check_reference:
        If True, every alignment's reference row (gaps removed) must equal the
        reference sequence. If False, only its length is checked.
    """

    canonical: Optional[FrozenSet[str]] = None
    missing: Optional[str] = None
    alphabet: str = "nuc"
    check_reference: bool = True

    def __post_init__(self) -> None:
        if self.alphabet not in ALPHABETS:
            raise ValueError(f"Unknown alphabet '{self.alphabet}'. Supported: {sorted(ALPHABETS)}")
        default_canonical, default_missing = ALPHABET_DEFAULTS[self.alphabet]
        if self.canonical is None:
            object.__setattr__(self, "canonical", default_canonical)
        if self.missing is None:
            object.__setattr__(self, "missing", default_missing)

        if len(self.missing) != 1:
            raise ValueError("missing must be a single character")
        if not self.canonical:
            raise ValueError("canonical set must not be empty")


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise ValueError(f"{key} must be true or false, got {value!r}")


def _coerce(raw: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(ExtractionParams)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown parameter(s): {unknown}. Supported: {sorted(known)}")

    out = dict(raw)
    if "canonical" in out:
        symbols = out["canonical"]
        if isinstance(symbols, (list, tuple, set, frozenset)):
            symbols = "".join(str(s) for s in symbols)
        out["canonical"] = frozenset(str(symbols).upper())
    for key in ("missing", "alphabet"):
        if key in out:
            out[key] = str(out[key])
    if "missing" in out:
        out["missing"] = out["missing"].upper()
    if "check_reference" in out:
        out["check_reference"] = _coerce_bool("check_reference", out["check_reference"])
    return out


def load_params(path: str | Path) -> ExtractionParams:
    """Load parameters from a JSON file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Parameter file not found: {p}")
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Parameter file must contain a JSON object: {p}")
    logger.info("Loaded extraction parameters from %s", p)
    return ExtractionParams(**_coerce(raw))


def override_params(params: ExtractionParams, **overrides: Any) -> ExtractionParams:
    """Return a copy of ``params`` with non-None overrides applied.

    Switching the alphabet re-derives ``canonical`` and ``missing`` when they
    still hold the previous alphabet's defaults.
    """
    given = {k: v for k, v in overrides.items() if v is not None}
    if not given:
        return params
    changes = _coerce(given)

    alphabet = changes.get("alphabet", params.alphabet)
    if alphabet != params.alphabet and params.alphabet in ALPHABET_DEFAULTS:
        old_canonical, old_missing = ALPHABET_DEFAULTS[params.alphabet]
        if "canonical" not in changes and params.canonical == old_canonical:
            changes["canonical"] = None
        if "missing" not in changes and params.missing == old_missing:
            changes["missing"] = None
    return replace(params, **changes)
