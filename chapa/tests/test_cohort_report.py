"""
Tests for the Markdown cohort report.
"""

from chapa.reports.cohort_report import export_cohort_markdown
from chapa.scoring.cohort import cohort_summary, results_to_frame, score_cohort


def test_report_sections_and_file(make_stats, tmp_path):
    df = score_cohort([
        make_stats(handle="alice"),
        make_stats(handle="bob", active_days=3),
    ])
    out = tmp_path / "reports" / "cohort.md"
    md = export_cohort_markdown(df, cohort_summary(df), str(out), title="Spring Cohort",
                                rejected=[("dave", "commits_total must be >= 0")])

    assert out.read_text(encoding="utf-8") == md
    assert md.startswith("# Spring Cohort\n")
    assert "**Handles:** 2" in md
    for heading in ("## Summary", "## Tier Distribution", "## Archetype Distribution",
                    "## Confidence Signals", "## Handles", "## Skipped Snapshots"):
        assert heading in md
    assert "| @alice |" in md
    assert "| @bob |" in md
    assert "| low activity signal | 1 |" in md
    assert "- **dave** — commits_total must be >= 0" in md
    # Tiers are listed from the top down.
    assert md.index("| Elite |") < md.index("| Emerging |")


def test_empty_cohort_report(tmp_path):
    df = results_to_frame([])
    md = export_cohort_markdown(df, cohort_summary(df), str(tmp_path / "empty.md"))
    assert md.startswith("# Chapa — Cohort Impact Report")
    assert "_No handles were scored._" in md
    assert "_No confidence signals fired for this cohort._" in md
    assert "## Skipped Snapshots" not in md


def test_report_carries_no_calibration_values(make_stats, tmp_path):
    df = score_cohort([make_stats(handle="alice", max_commits_in_10min=25)])
    md = export_cohort_markdown(df, cohort_summary(df), str(tmp_path / "r.md")).lower()
    for word in ("weight", "threshold", "calibration"):
        assert word not in md
