"""
chapa.reports — Human-readable exports.

Modules:
    cohort_report — Markdown audit report for a scored cohort.
"""
