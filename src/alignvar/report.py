from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>alignvar Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 6px 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    .warn { color: #a33; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>alignvar Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Alignments</th><td><code>{{ alignment_path }}</code></td></tr>
      <tr><th>Reference</th><td><code>{{ ref_path or "(reference row of first alignment)" }}</code></td></tr>
      <tr><th>Reference name</th><td><code>{{ ref_name }}</code></td></tr>
      <tr><th>Reference length</th><td>{{ ref_length }}</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Parameters</h3>
    <table>
      <tr><th>Alphabet</th><td>{{ alphabet }}</td></tr>
      <tr><th>Canonical symbols</th><td><code>{{ canonical }}</code></td></tr>
      <tr><th>Reference check</th><td>{{ "on" if check_reference else "off" }}</td></tr>
      <tr><th>Threads</th><td>{{ threads }}</td></tr>
    </table>
  </div>
</div>

<h2>Totals</h2>
<table>
  <tr><th>Alignments read</th><td>{{ counts.pairs_total }}</td></tr>
  <tr><th>Invalid (skipped)</th><td>{{ counts.pairs_invalid }}</td></tr>
  <tr><th>Sequences analyzed</th><td>{{ counts.sequences_analyzed }}</td></tr>
  <tr><th>Sequences without aligned bases</th><td>{{ counts.sequences_unaligned }}</td></tr>
  <tr><th>Substitutions</th><td>{{ counts.substitutions }}</td></tr>
  <tr><th>Deletions (bases)</th><td>{{ counts.deletions }} ({{ counts.deleted_bases }})</td></tr>
  <tr><th>Insertions (bases)</th><td>{{ counts.insertions }} ({{ counts.inserted_bases }})</td></tr>
  <tr><th>Missing bases</th><td>{{ counts.missing_bases }}</td></tr>
</table>

{% if invalid %}
<h3 class="warn">Skipped alignments</h3>
<table>
  <tr><th>Sequence</th><th>Reason</th></tr>
  {% for row in invalid %}
  <tr><td><code>{{ row.seq_name }}</code></td><td>{{ row.error }}</td></tr>
  {% endfor %}
</table>
{% endif %}

<h2>Plots</h2>
<div class="card">
  <h3>Variant positions</h3>
  <img src="{{ plots.position_hist }}" alt="variant positions">
</div>
<div class="grid" style="margin-top:16px;">
  <div class="card">
    <h3>Variants per sequence</h3>
    <img src="{{ plots.variant_counts }}" alt="variants per sequence">
  </div>
  <div class="card">
    <h3>Coverage</h3>
    <img src="{{ plots.coverage }}" alt="alignment coverage">
  </div>
</div>

<h2>Sequences</h2>
<table>
  <tr><th>Sequence</th><th>Aligned range (1-based)</th><th>Substitutions</th><th>Deletions</th><th>Insertions</th></tr>
  {% for row in per_sequence %}
  <tr>
    <td><code>{{ row.seq_name }}</code></td>
    <td>{% if row.alignment_start >= 0 %}{{ row.alignment_start + 1 }}&ndash;{{ row.alignment_end + 1 }}{% else %}&ndash;{% endif %}</td>
    <td>{{ row.substitutions }}</td>
    <td>{{ row.deletions }}</td>
    <td>{{ row.insertions }}</td>
  </tr>
  {% endfor %}
</table>

<h2>Outputs</h2>
<ul>
  <li><code>{{ variants_tsv_gz }}</code> (one row per sequence)</li>
  <li><code>{{ results_json }}</code> (full per-sequence results)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Reference positions outside a sequence's aligned range are missing data, not deletions.</li>
  <li>Insertions after the last reference base are reported; trailing gaps are not deletions.</li>
  <li>Differing ambiguous bases (e.g. N, R, Y) are not called as substitutions.</li>
</ul>

<hr>
<p class="small">alignvar {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        alignment_path=run.get("alignment_path"),
        ref_path=run.get("ref_path"),
        ref_name=run.get("ref_name"),
        ref_length=run.get("ref_length"),
        alphabet=run.get("alphabet"),
        canonical=run.get("canonical"),
        check_reference=run.get("check_reference"),
        threads=run.get("threads"),
        counts=run.get("counts", {}),
        invalid=run.get("invalid", []),
        per_sequence=run.get("per_sequence", []),
        variants_tsv_gz=run.get("variants_tsv_gz"),
        results_json=run.get("results_json"),
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.debug("Wrote report: %s", out_path)
    return out_path
