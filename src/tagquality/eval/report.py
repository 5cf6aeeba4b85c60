from __future__ import annotations

import html
import io
import json
from datetime import datetime
from pathlib import Path
from typing import Sequence

from tagquality.eval.quality_sweep import QualityResult, ScatterRecord, SweepResult

REPORT_SCHEMA = "tagquality.report.v0"

_COLUMNS = (
    ("Quality", 7),
    ("Min Delta", 9),
    ("Mean Delta", 10),
    ("Median Delta", 12),
    ("Max Delta", 9),
    ("Missing Markers", 15),
    ("Mean JPEG KiB", 13),
)


def timestamp_now() -> str:
    return datetime.now().strftime("%Y%m%d-%H%M%S")


def format_table(results: Sequence[QualityResult]) -> str:
    header = " | ".join(name.ljust(width) for name, width in _COLUMNS).rstrip()
    rule = "-|-".join("-" * width for _, width in _COLUMNS)
    lines = [header, rule]
    for r in results:
        cells = (
            f"{r.quality:.2f}",
            f"{r.min:.5f}",
            f"{r.mean:.5f}",
            f"{r.median:.5f}",
            f"{r.max:.5f}",
            f"{r.missing_markers}",
            f"{r.mean_file_size_bytes / 1024.0:.1f}",
        )
        lines.append(" | ".join(c.ljust(width) for c, (_, width) in zip(cells, _COLUMNS)).rstrip())
    return "\n".join(lines)


def write_table(results: Sequence[QualityResult], out_dir: Path, timestamp: str | None = None) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / f"quality_results_{timestamp or timestamp_now()}.txt"
    out.write_text("Quality Analysis Results:\n" + format_table(results) + "\n", encoding="utf-8")
    return out


def write_json_report(sweep: SweepResult, out_dir: Path, timestamp: str | None = None) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / f"quality_results_{timestamp or timestamp_now()}.json"
    report = {
        "schema_version": REPORT_SCHEMA,
        "results": [r.to_dict() for r in sweep.results],
        "scatter": [s.to_dict() for s in sweep.scatter],
    }
    out.write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")
    return out


def render_scatter_svg(scatter: Sequence[ScatterRecord]) -> str:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt  # type: ignore

    xs = [s.quality for s in scatter]
    ys = [s.mean for s in scatter]
    lower = [max(0.0, s.mean - s.min) for s in scatter]
    upper = [max(0.0, s.max - s.mean) for s in scatter]

    fig, ax = plt.subplots(figsize=(8.2, 4.6), dpi=100)
    ax.errorbar(xs, ys, yerr=[lower, upper], fmt="o", markersize=4, capsize=3, alpha=0.6, color="tab:blue")
    ax.grid(True, alpha=0.25)
    ax.set_xlabel("JPEG quality")
    ax.set_ylabel("corner delta (px)")
    ax.set_title("Per-image corner delta vs JPEG quality (mean, min..max)")
    fig.tight_layout()

    buf = io.StringIO()
    fig.savefig(buf, format="svg")
    plt.close(fig)
    return buf.getvalue()


def write_scatter_html(scatter: Sequence[ScatterRecord], out_dir: Path, timestamp: str | None = None) -> Path | None:
    if not scatter:
        return None

    svg = render_scatter_svg(scatter)
    # Drop the XML prolog so the SVG can be inlined.
    start = svg.find("<svg")
    if start > 0:
        svg = svg[start:]

    rows = "\n".join(
        f"<tr><td>{s.quality:.2f}</td><td>{html.escape(s.image)}</td>"
        f"<td>{s.min:.5f}</td><td>{s.mean:.5f}</td><td>{s.max:.5f}</td></tr>"
        for s in scatter
    )
    doc = (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
        "<title>Tag corner delta vs JPEG quality</title>"
        "<style>body{font-family:sans-serif;margin:2em}table{border-collapse:collapse}"
        "td,th{border:1px solid #ccc;padding:2px 8px;text-align:right}</style></head><body>\n"
        f"{svg}\n"
        "<table><thead><tr><th>Quality</th><th>Image</th><th>Min</th><th>Mean</th><th>Max</th></tr></thead>"
        f"<tbody>\n{rows}\n</tbody></table>\n</body></html>\n"
    )

    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / f"quality_scatter_{timestamp or timestamp_now()}.html"
    out.write_text(doc, encoding="utf-8")
    return out
