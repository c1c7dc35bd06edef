from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_position_hist(
    *,
    position_hist: Dict[str, Dict[str, list]],
    out_png: str | Path,
    title: str = "Variant positions along the reference",
) -> None:
    """Stacked histogram of variant positions, one layer per variant type.

    Parameters
    ----------
    position_hist:
        Mapping variant type -> dict with ``bin_edges`` and ``counts`` (as produced
        by extract_file). All types must share the same bin edges.
    """
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    plt.figure(figsize=(8, 3.5))
    bottom: List[int] = []
    for label, hist in position_hist.items():
        edges = list(map(float, hist["bin_edges"]))
        counts = list(map(int, hist["counts"]))
        if len(edges) != len(counts) + 1:
            raise ValueError(f"{label}: bin_edges must have length len(counts)+1")
        widths = [edges[i + 1] - edges[i] for i in range(len(counts))]
        if not bottom:
            bottom = [0] * len(counts)
        plt.bar(edges[:-1], counts, width=widths, align="edge", bottom=bottom, label=label)
        bottom = [b + c for b, c in zip(bottom, counts)]

    plt.xlabel("Reference position (0-based)")
    plt.ylabel("Variant count")
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_variant_counts(
    *,
    per_sequence: List[Dict[str, object]],
    out_png: str | Path,
    title: str = "Variants per sequence",
    max_sequences: int = 50,
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    # Too many bars are unreadable; show the first max_sequences.
    rows = per_sequence[:max_sequences]
    names = [str(r["seq_name"]) for r in rows]
    xs = list(range(len(rows)))
    subs = [int(r["substitutions"]) for r in rows]
    dels = [int(r["deletions"]) for r in rows]
    ins = [int(r["insertions"]) for r in rows]

    plt.figure(figsize=(max(6, 0.3 * len(rows) + 2), 4))
    plt.bar(xs, subs, label="substitutions")
    plt.bar(xs, dels, bottom=subs, label="deletions")
    plt.bar(xs, ins, bottom=[a + b for a, b in zip(subs, dels)], label="insertions")
    plt.ylabel("Count")
    plt.title(title)
    plt.xticks(xs, names, rotation=60, ha="right", fontsize=7)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_coverage(
    *,
    coverage: Dict[str, list],
    out_png: str | Path,
    title: str = "Alignment coverage",
) -> None:
    """Plot mean number of sequences whose alignment range covers each bin."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    edges = list(map(float, coverage.get("bin_edges", [])))
    depth = list(map(float, coverage.get("mean_depth", [])))
    if len(edges) != len(depth) + 1:
        raise ValueError("coverage must contain bin_edges of length len(mean_depth)+1")

    plt.figure(figsize=(8, 3))
    plt.stairs(depth, edges, fill=True)
    plt.xlabel("Reference position (0-based)")
    plt.ylabel("Sequences covering")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
