"""
chapa/tests/conftest.py — Shared pytest fixtures for the chapa test suite.

Fixtures:
    make_stats   — Factory for valid Stats90d snapshots (keyword overrides).
    make_heatmap — Factory for 91-day heatmaps from a list of daily counts.
    fake_redis   — In-memory Redis double wired into chapa.cache.store.
    gh_user      — GraphQL `user` object for a typical active developer.
    make_user    — Factory for GraphQL `user` objects (keyword overrides).
    github_token — GitHub PAT from GITHUB_TOKEN env var (or None).
"""

import os
from datetime import date, timedelta

import pytest

from chapa.cache import store
from chapa.ingestion.stats import HeatmapDay, Stats90d


# ── Pytest configuration hooks ────────────────────────────────────────────────

def pytest_configure(config):
    """Register custom markers and add --run-integration CLI option support."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that call real external APIs (deselected by default, "
        "pass --run-integration or -m integration to enable)",
    )


def pytest_addoption(parser):
    """Add --run-integration CLI flag to enable integration tests."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that call real external APIs.",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is passed or -m integration is used."""
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        return

    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(
        reason="Integration test -- pass --run-integration or -m integration to run"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ── Environment isolation ─────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Tests never talk to a real Redis or pick up a deployment secret."""
    for name in ("REDIS_URL", "CHAPA_VERIFICATION_SECRET", "CHAPA_BASE_URL", "CHAPA_FONT_DIR"):
        monkeypatch.delenv(name, raising=False)
    store.configure_store(None)
    yield
    store.configure_store(None)


# ── Stats factories ───────────────────────────────────────────────────────────

HEATMAP_START = date(2026, 7, 1)


def build_heatmap(counts, start=HEATMAP_START):
    return tuple(
        HeatmapDay(date=(start + timedelta(days=i)).isoformat(), count=c)
        for i, c in enumerate(counts)
    )


# Every other day active with 3 contributions: 46 active days over 91.
DEFAULT_COUNTS = [3 if i % 2 == 0 else 0 for i in range(91)]


def _stats(**overrides) -> Stats90d:
    values = dict(
        handle="octocat",
        display_name="The Octocat",
        avatar_url=None,
        commits_total=120,
        active_days=46,
        prs_merged_count=12,
        prs_merged_weight=20.0,
        reviews_submitted_count=25,
        issues_closed_count=8,
        lines_added=4000,
        lines_deleted=1500,
        repos_contributed=4,
        top_repo_share=0.5,
        max_commits_in_10min=0,
        total_stars=40,
        total_forks=6,
        total_watchers=5,
        heatmap_data=build_heatmap(DEFAULT_COUNTS),
        fetched_at="2026-10-01T00:00:00+00:00",
    )
    values.update(overrides)
    return Stats90d(**values)


@pytest.fixture
def make_stats():
    """Return a factory: make_stats(**overrides) → Stats90d with no penalties by default."""
    return _stats


@pytest.fixture
def make_heatmap():
    return build_heatmap


# ── In-memory Redis double ────────────────────────────────────────────────────

class FakeRedis:
    """
    Minimal async Redis double: get/set(ex)/delete/incr/expire(nx) and
    MULTI/EXEC pipelines. Time is a manual clock advanced with advance().
    Set `failing = True` to make every command raise ConnectionError.
    """

    def __init__(self):
        self.data = {}
        self.expires_at = {}
        self.now = 0.0
        self.failing = False

    def advance(self, seconds):
        self.now += seconds

    def ttl(self, key):
        self._purge(key)
        if key not in self.expires_at:
            return None
        return self.expires_at[key] - self.now

    def _purge(self, key):
        deadline = self.expires_at.get(key)
        if deadline is not None and self.now >= deadline:
            self.data.pop(key, None)
            self.expires_at.pop(key, None)

    def _check(self):
        if self.failing:
            raise ConnectionError("redis unavailable")

    # sync primitives shared by direct calls and pipelines
    def _incr(self, key):
        self._purge(key)
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def _expire(self, key, seconds, nx=False):
        self._purge(key)
        if key not in self.data:
            return False
        if nx and key in self.expires_at:
            return False
        self.expires_at[key] = self.now + seconds
        return True

    async def get(self, key):
        self._check()
        self._purge(key)
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        if ex is None:
            self.expires_at.pop(key, None)
        else:
            self.expires_at[key] = self.now + ex
        return True

    async def delete(self, key):
        self._check()
        existed = key in self.data
        self.data.pop(key, None)
        self.expires_at.pop(key, None)
        return int(existed)

    async def incr(self, key):
        self._check()
        return self._incr(key)

    async def expire(self, key, seconds, nx=False):
        self._check()
        return self._expire(key, seconds, nx=nx)

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def aclose(self):
        pass


class FakePipeline:
    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._ops = []
        return False

    def incr(self, key):
        self._ops.append(lambda: self._redis._incr(key))
        return self

    def expire(self, key, seconds, nx=False):
        self._ops.append(lambda: self._redis._expire(key, seconds, nx=nx))
        return self

    async def execute(self):
        self._redis._check()
        results = [op() for op in self._ops]
        self._ops = []
        return results


@pytest.fixture
def fake_redis(monkeypatch):
    """FakeRedis returned by chapa.cache.store.get_redis() for this test."""
    fake = FakeRedis()

    async def _get_redis():
        return fake

    monkeypatch.setattr(store, "get_redis", _get_redis)
    return fake


# ── GitHub payloads ───────────────────────────────────────────────────────────

def _calendar_weeks(counts, start=HEATMAP_START):
    days = build_heatmap(counts, start)
    return [
        {
            "contributionDays": [
                {"date": d.date, "contributionCount": d.count} for d in days[i:i + 7]
            ]
        }
        for i in range(0, len(days), 7)
    ]


def make_gh_user(login="octocat", counts=None, prs=None, reviews=14, issues=5,
                 repo_commits=(30, 10), stars=(120, 8)):
    counts = DEFAULT_COUNTS if counts is None else counts
    prs = prs if prs is not None else [
        {"additions": 120, "deletions": 30, "changedFiles": 6, "merged": True},
        {"additions": 40, "deletions": 10, "changedFiles": 2, "merged": True},
        {"additions": 900, "deletions": 0, "changedFiles": 12, "merged": False},
    ]
    return {
        "login": login,
        "name": "The Octocat",
        "avatarUrl": "https://avatars.githubusercontent.com/u/583231?v=4",
        "contributionsCollection": {
            "contributionCalendar": {
                "totalContributions": sum(counts),
                "weeks": _calendar_weeks(counts),
            },
            "pullRequestContributions": {
                "totalCount": len(prs),
                "nodes": [{"pullRequest": pr} for pr in prs],
            },
            "pullRequestReviewContributions": {"totalCount": reviews},
            "issueContributions": {"totalCount": issues},
        },
        "repositories": {
            "totalCount": len(repo_commits),
            "nodes": [
                {
                    "nameWithOwner": f"{login}/repo-{i}",
                    "defaultBranchRef": {"target": {"history": {"totalCount": n}}},
                }
                for i, n in enumerate(repo_commits)
            ],
        },
        "ownedRepoStars": {
            "nodes": [
                {"stargazerCount": s, "forkCount": 2, "watchers": {"totalCount": 3}}
                for s in stars
            ]
        },
    }


@pytest.fixture
def gh_user():
    return make_gh_user()


@pytest.fixture(scope="session")
def github_token():
    """GitHub PAT from GITHUB_TOKEN env var, or None."""
    return os.environ.get("GITHUB_TOKEN") or None


@pytest.fixture
def make_user():
    """Return a factory: make_user(**overrides) → GraphQL user object."""
    return make_gh_user
