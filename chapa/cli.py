"""
chapa/cli.py — Command-line interface for scoring and badge rendering.

Provides a single entry point that:
  1. Loads GITHUB_TOKEN / REDIS_URL / CHAPA_* settings from a .env file
  2. Scores one handle (live GitHub fetch, or an exported Stats90d JSON file)
  3. Renders a badge to disk as SVG or PNG
  4. Scores a cohort offline and exports a Markdown report

Usage:
    python -m chapa score octocat              # human summary
    python -m chapa score octocat --json       # public result as JSON
    python -m chapa badge octocat --out badge.svg
    python -m chapa badge octocat --out og.png --png
    python -m chapa cohort cohort.json --report reports/cohort.md

All commands read .env in the repo root (or --env-file) before falling back
to the process environment.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path

from chapa.config import ChapaConfig, config_from_env
from chapa.errors import ChapaError, ValidationError


# ── .env loader ───────────────────────────────────────────────────────────────

def _load_dotenv(env_file: str | None = None) -> dict[str, str]:
    """Load key=value pairs from a .env file into the environment.

    Existing environment values are NOT overwritten. Returns the dict of
    values that were newly loaded.

    Args:
        env_file: Explicit path. If None, searches for .env starting from the
                  repo root up to the filesystem root.
    """
    if env_file is None:
        start = Path(__file__).parent.parent
        for directory in [start, *start.parents]:
            candidate = directory / ".env"
            if candidate.is_file():
                env_file = str(candidate)
                break

    if not env_file or not Path(env_file).is_file():
        return {}

    loaded: dict[str, str] = {}
    with open(env_file, encoding="utf-8") as fh:
        for raw_line in fh:
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Configure root logger with timestamps and aligned level names."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s  %(levelname)-8s  %(name)s — %(message)s"
    datefmt = "%H:%M:%S"
    logging.basicConfig(level=numeric, format=fmt, datefmt=datefmt, stream=sys.stderr)
    # Per-request lines from the HTTP client stack
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger("chapa.cli")


def _prepare(args: argparse.Namespace) -> ChapaConfig:
    from chapa.cache.store import configure_store

    _load_dotenv(args.env_file)
    _setup_logging(args.log_level)
    config = config_from_env()
    if args.token:
        config = dataclasses.replace(config, github_token=args.token)
    configure_store(config)
    return config


def _run(coro):
    """Run `coro` on a fresh event loop, closing its cache client afterwards."""
    from chapa.cache.store import close_redis

    async def runner():
        try:
            return await coro
        finally:
            await close_redis()

    return asyncio.run(runner())


def _read_json(path: str):
    """Parse a JSON file, reporting unreadable or malformed input as ValidationError."""
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except OSError as exc:
        raise ValidationError(f"Cannot read {path}: {exc.strerror or exc}", details={"path": path}) from exc
    except ValueError as exc:
        raise ValidationError(f"{path} is not valid JSON: {exc}", details={"path": path}) from exc


async def _load_stats(handle: str, stats_file: str | None, config: ChapaConfig):
    from chapa.ingestion.github_client import get_stats_90d
    from chapa.ingestion.stats import stats_from_dict

    if stats_file:
        return stats_from_dict(_read_json(stats_file))
    if not config.github_token:
        logger.warning(
            "GITHUB_TOKEN not set. GitHub's GraphQL API requires a token; "
            "set it in .env or pass --token."
        )
    return await get_stats_90d(handle, config=config)


# ── Subcommand: score ─────────────────────────────────────────────────────────

def cmd_score(args: argparse.Namespace) -> int:
    """Score one handle and print the result."""
    config = _prepare(args)

    from chapa.scoring.impact import compute_impact_v4

    stats = _run(_load_stats(args.handle, args.stats_file, config))
    impact = compute_impact_v4(stats)

    if args.json:
        payload = impact.to_public_dict()
        payload["narrative"] = impact.narrative
        print(json.dumps(payload, indent=2))
        return 0

    dims = impact.dimensions
    print()
    print("=" * 60)
    print(f"  CHAPA IMPACT — @{impact.handle}")
    print("=" * 60)
    print(f"  Score        : {impact.adjusted_composite} / 100")
    print(f"  Tier         : {impact.tier}")
    print(f"  Archetype    : {impact.archetype}")
    print(f"  Confidence   : {impact.confidence}%")
    print(f"  Building     : {dims.building}")
    print(f"  Guarding     : {dims.guarding}")
    print(f"  Consistency  : {dims.consistency}")
    print(f"  Breadth      : {dims.breadth}")
    if impact.confidence_penalties:
        print()
        print("  Confidence notes:")
        for p in impact.confidence_penalties:
            print(f"    - {p.reason}")
    print("=" * 60)
    return 0


# ── Subcommand: badge ─────────────────────────────────────────────────────────

async def _render_badge(args: argparse.Namespace, config: ChapaConfig) -> bytes:
    from chapa.render.avatar import fetch_avatar
    from chapa.render.badge_config import load_badge_config
    from chapa.render.badge_svg import render_badge_svg
    from chapa.render.og_png import render_badge_png
    from chapa.scoring.impact import compute_impact_v4
    from chapa.verification.hmac_code import generate_verification_code

    stats = await _load_stats(args.handle, args.stats_file, config)
    impact = compute_impact_v4(stats)
    badge_config = await load_badge_config(stats.handle)
    if args.layout:
        badge_config = dataclasses.replace(badge_config, layout=args.layout)
    if args.theme:
        badge_config = dataclasses.replace(badge_config, theme=args.theme)
    avatar = await fetch_avatar(stats.avatar_url, timeout=config.avatar_timeout_seconds)
    verification = generate_verification_code(
        stats, impact, config.verification_secret, length=config.verification_hash_length
    )

    if args.png:
        return await asyncio.to_thread(
            render_badge_png, stats, impact, badge_config, avatar, verification, config.font_dir
        )
    svg = render_badge_svg(stats, impact, badge_config, avatar=avatar,
                           verification=verification, base_url=config.base_url)
    return svg.encode("utf-8")


def cmd_badge(args: argparse.Namespace) -> int:
    """Render a badge for one handle and write it to --out."""
    config = _prepare(args)

    data = _run(_render_badge(args, config))
    out_dir = os.path.dirname(os.path.abspath(args.out))
    os.makedirs(out_dir, exist_ok=True)
    with open(args.out, "wb") as fh:
        fh.write(data)

    print(f"  Badge saved to : {args.out} ({len(data)} bytes, {'PNG' if args.png else 'SVG'})")
    return 0


# ── Subcommand: cohort ────────────────────────────────────────────────────────

def cmd_cohort(args: argparse.Namespace) -> int:
    """Score a JSON list of Stats90d records and export a Markdown report."""
    _prepare(args)

    from chapa.ingestion.stats import stats_from_dict
    from chapa.reports.cohort_report import export_cohort_markdown
    from chapa.scoring.cohort import cohort_summary, results_to_frame, score_many

    records = _read_json(args.file)
    if not isinstance(records, list):
        raise ValidationError(
            "Cohort file must contain a JSON list of snapshots.",
            details={"path": args.file},
        )

    snapshots = []
    rejected: list[tuple[str, str]] = []
    for record in records:
        try:
            snapshots.append(stats_from_dict(record))
        except ValidationError as exc:
            handle = record.get("handle", "?") if isinstance(record, dict) else "?"
            logger.warning("Skipping cohort record %s: %s", handle, exc.message)
            rejected.append((str(handle), exc.message))

    results, invalid = score_many(snapshots)
    rejected += invalid
    df = results_to_frame(results)
    summary = cohort_summary(df)
    export_cohort_markdown(df, summary, args.report, title=args.title, rejected=rejected)

    print()
    print("=" * 60)
    print("  CHAPA — COHORT COMPLETE")
    print("=" * 60)
    print(f"  Handles scored   : {summary['total_handles']}")
    print(f"  Skipped          : {len(rejected)}")
    print(f"  Mean score       : {summary['mean_adjusted']:.1f}")
    print(f"  Median confidence: {summary['median_confidence']:.0f}%")
    print(f"  Report saved to  : {args.report}")
    print("=" * 60)
    return 0


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chapa",
        description=(
            "Chapa — Developer Impact scores and badges from 90 days of GitHub activity.\n"
            "Reads GITHUB_TOKEN and CHAPA_* settings from .env automatically."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score a handle live
  python -m chapa score octocat

  # Score an exported snapshot offline, as JSON
  python -m chapa score octocat --stats-file octocat.json --json

  # Compact SVG badge
  python -m chapa badge octocat --out badge.svg --layout compact

  # Cohort audit report
  python -m chapa cohort cohort.json --report reports/cohort.md
        """,
    )

    parser.add_argument(
        "--env-file",
        default=None,
        metavar="PATH",
        help="Path to .env file (default: auto-detect .env in repo root)",
    )
    parser.add_argument(
        "--token",
        default=None,
        metavar="GITHUB_TOKEN",
        help="GitHub personal access token (overrides .env and environment)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add_stats_source(p: argparse.ArgumentParser) -> None:
        p.add_argument("handle", metavar="HANDLE", help="GitHub login")
        p.add_argument(
            "--stats-file", default=None, metavar="PATH",
            help="Read a Stats90d JSON snapshot instead of fetching from GitHub",
        )

    # score
    p_score = subparsers.add_parser("score", help="Score one handle")
    add_stats_source(p_score)
    p_score.add_argument("--json", action="store_true", help="Print the public result as JSON")
    p_score.set_defaults(func=cmd_score)

    # badge
    p_badge = subparsers.add_parser("badge", help="Render a badge to a file")
    add_stats_source(p_badge)
    p_badge.add_argument("--out", required=True, metavar="FILE", help="Output path")
    p_badge.add_argument("--png", action="store_true", help="Render the static PNG instead of SVG")
    p_badge.add_argument(
        "--layout", default=None, choices=["full", "compact"],
        help="Override the stored layout (SVG only; PNG is always full)",
    )
    p_badge.add_argument(
        "--theme", default=None, choices=["warm-amber", "midnight"],
        help="Override the stored theme",
    )
    p_badge.set_defaults(func=cmd_badge)

    # cohort
    p_cohort = subparsers.add_parser(
        "cohort", help="Score a JSON list of snapshots and export a Markdown report",
    )
    p_cohort.add_argument("file", metavar="FILE", help="JSON file with a list of Stats90d records")
    p_cohort.add_argument("--report", required=True, metavar="PATH", help="Markdown output path")
    p_cohort.add_argument(
        "--title", default="Chapa — Cohort Impact Report", metavar="TEXT",
        help="Report heading",
    )
    p_cohort.set_defaults(func=cmd_cohort)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except ChapaError as exc:
        logger.error("%s: %s", exc.code, exc.message)
        return 1


if __name__ == "__main__":
    sys.exit(main())
