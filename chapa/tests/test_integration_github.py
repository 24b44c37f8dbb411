"""
Integration tests for the GitHub GraphQL fetch against the real API.

These tests make actual HTTPS requests to api.github.com and need a token.

How to run:
    GITHUB_TOKEN=ghp_... python -m pytest chapa/tests/test_integration_github.py -m integration --run-integration -v

Credentials needed:
    - GITHUB_TOKEN: GitHub personal access token (no scopes required for
      public contribution data). Without it every test here is skipped.
"""

import asyncio
import dataclasses
import os

import pytest

from chapa.config import DEFAULT_CONFIG
from chapa.errors import HandleNotFound
from chapa.ingestion.github_client import get_stats_90d
from chapa.ingestion.stats import validate_stats
from chapa.scoring import compute_impact_v4

requires_github_token = pytest.mark.skipif(
    not os.environ.get("GITHUB_TOKEN"),
    reason="GITHUB_TOKEN environment variable not set -- skipping GitHub API tests",
)


def _config(token):
    return dataclasses.replace(DEFAULT_CONFIG, github_token=token)


@pytest.mark.integration
@requires_github_token
class TestGetStats90d:
    """Live fetch for a long-lived public account (no cache configured)."""

    def test_octocat_snapshot_is_valid(self, github_token):
        stats = asyncio.run(get_stats_90d("octocat", config=_config(github_token)))
        validate_stats(stats)
        assert stats.handle.lower() == "octocat"
        assert 0 < len(stats.heatmap_data) <= 91
        assert 0 <= stats.active_days <= 91

    def test_live_snapshot_scores(self, github_token):
        stats = asyncio.run(get_stats_90d("torvalds", config=_config(github_token)))
        impact = compute_impact_v4(stats)
        assert 0 <= impact.adjusted_composite <= 100
        assert 50 <= impact.confidence <= 100

    def test_unknown_user_raises_not_found(self, github_token):
        with pytest.raises(HandleNotFound):
            asyncio.run(get_stats_90d("this-user-should-not-exist-7x9q2", config=_config(github_token)))
