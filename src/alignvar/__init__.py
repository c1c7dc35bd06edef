"""alignvar: variant extraction from pairwise sequence alignments.

Turns a finished alignment (aligned query, aligned reference, score) into
substitutions, insertions, deletions and the aligned range, all in ungapped
reference coordinates. Most users should use the CLI:

    alignvar extract --alignment aligned.fa --ref ref.fa --outdir results/

"""

from __future__ import annotations

__all__ = [
    "__version__",
    "Alignment",
    "AnalysisReport",
    "InvalidAlignment",
    "extract",
    "extract_alignment",
]

__version__ = "0.1.0"

from .alignment import Alignment, InvalidAlignment
from .extractor import extract, extract_alignment
from .models import AnalysisReport
