"""
chapa/reports/cohort_report.py — Markdown report for a scored cohort.

Turns the DataFrame from chapa.scoring.cohort and its cohort_summary() into a
readable audit document: headline numbers, tier and archetype distribution,
the per-handle table and which confidence signals fired. Only public result
fields appear; calibration values never do.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


def export_cohort_markdown(
    df: pd.DataFrame,
    summary: dict,
    output_path: str,
    title: str = "Chapa — Cohort Impact Report",
    rejected: Optional[List[Tuple[str, str]]] = None,
) -> str:
    """
    Export a cohort Markdown report.

    Structure:
        # {title}
        **Generated:** {UTC timestamp} | **Handles:** {n}

        ## Summary           (headline table)
        ## Tier Distribution
        ## Archetype Distribution
        ## Confidence Signals (flag counts, or a note when none fired)
        ## Handles           (full ranked table)
        ## Skipped Snapshots (only when `rejected` is non-empty)

    Writes the file to output_path and returns the Markdown string.

    Args:
        df:          DataFrame from score_cohort() / results_to_frame().
        summary:     Dict from cohort_summary(df).
        output_path: Full path to the output .md file.
        title:       Report heading.
        rejected:    (handle, reason) pairs that failed validation.

    Returns:
        The complete Markdown document as a string.
    """
    generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    total = summary["total_handles"]
    lines: list[str] = []

    # ── Title ─────────────────────────────────────────────────────────────────
    lines += [
        f"# {title}",
        "",
        f"**Generated:** {generated} | **Handles:** {total}",
        "",
        "---",
        "",
    ]

    # ── Summary ───────────────────────────────────────────────────────────────
    lines += [
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Handles Scored | {total} |",
        f"| Mean Adjusted Score | {summary['mean_adjusted']:.1f} |",
        f"| Median Confidence | {summary['median_confidence']:.0f}% |",
        f"| Handles With Confidence Signals | {summary['penalised_share']:.1%} |",
        "",
    ]

    # ── Distributions ─────────────────────────────────────────────────────────
    lines += [
        "## Tier Distribution",
        "",
        "| Tier | Handles |",
        "|------|---------|",
    ]
    for tier, count in reversed(list(summary["tier_counts"].items())):
        lines.append(f"| {tier} | {count} |")
    lines.append("")

    lines += [
        "## Archetype Distribution",
        "",
        "| Archetype | Handles |",
        "|-----------|---------|",
    ]
    for archetype, count in summary["archetype_counts"].items():
        lines.append(f"| {archetype} | {count} |")
    lines.append("")

    # ── Confidence Signals ────────────────────────────────────────────────────
    lines += ["## Confidence Signals", ""]
    if summary["penalty_counts"]:
        lines += ["| Signal | Handles |", "|--------|---------|"]
        for flag, count in summary["penalty_counts"].items():
            lines.append(f"| {flag.replace('_', ' ')} | {count} |")
        lines.append("")
    else:
        lines += ["_No confidence signals fired for this cohort._", ""]

    # ── Handles ───────────────────────────────────────────────────────────────
    lines += ["## Handles", ""]
    if df.empty:
        lines += ["_No handles were scored._", ""]
    else:
        lines += [
            "| Handle | Score | Tier | Archetype | Confidence | Building | Guarding "
            "| Consistency | Breadth |",
            "|--------|-------|------|-----------|------------|----------|----------"
            "|-------------|---------|",
        ]
        for row in df.itertuples(index=False):
            lines.append(
                f"| @{row.handle} | {row.adjusted_composite} | {row.tier} | {row.archetype} "
                f"| {row.confidence}% | {row.building} | {row.guarding} "
                f"| {row.consistency} | {row.breadth} |"
            )
        lines.append("")

    if rejected:
        lines += ["## Skipped Snapshots", ""]
        for handle, reason in rejected:
            lines.append(f"- **{handle}** — {reason}")
        lines.append("")

    markdown = "\n".join(lines)

    out_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(out_dir, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as fh:
        fh.write(markdown)
    logger.info("Cohort report written to %s (%d handles)", output_path, total)
    return markdown
