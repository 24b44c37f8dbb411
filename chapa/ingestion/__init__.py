"""
chapa.ingestion — Building the Stats90d snapshot that everything else reads.

Modules:
    stats          — Stats90d / HeatmapDay types, validation, handle rules.
    stats_builder  — Raw GitHub payload → Stats90d, PR weights, account merge.
    github_client  — GitHub GraphQL fetch + cached get_stats_90d().
"""
