"""
chapa/verification/hmac_code.py — Epoch-stable badge verification codes.

A verification code is a truncated HMAC-SHA256 over a canonical,
pipe-delimited serialisation of the scored result:

    handle(lower) | adjusted | confidence | tier | archetype |
    building | guarding | consistency | breadth |
    commits | merged PRs | reviews | epoch date

The epoch is the UTC calendar day (YYYY-MM-DD). Scoring is deterministic, so
regenerating a badge for the same snapshot on the same UTC day reproduces the
same code; a new day yields a new code.

The code is keyed with a server-side secret, so it cannot be forged from the
public numbers alone. Without a secret no code is produced.
"""

import hashlib
import hmac
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from chapa.ingestion.stats import Stats90d
from chapa.scoring.impact import ImpactV4Result

HASH_PATTERN = re.compile(r"^[0-9a-f]{8}(?:[0-9a-f]{8})?$")
VALID_HASH_LENGTHS = (8, 16)


@dataclass(frozen=True)
class VerificationCode:
    hash: str
    date: str


def is_valid_hash(text: Any) -> bool:
    """True for 8 or 16 lowercase hex characters."""
    return isinstance(text, str) and bool(HASH_PATTERN.match(text))


def epoch_date(now: Optional[datetime] = None) -> str:
    """UTC calendar day of `now` (default: current time) as YYYY-MM-DD."""
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d")


def build_payload(stats: Stats90d, impact: ImpactV4Result, date: str) -> str:
    dims = impact.dimensions
    return "|".join(
        str(part)
        for part in (
            stats.handle.lower(),
            impact.adjusted_composite,
            impact.confidence,
            impact.tier,
            impact.archetype,
            dims.building,
            dims.guarding,
            dims.consistency,
            dims.breadth,
            stats.commits_total,
            stats.prs_merged_count,
            stats.reviews_submitted_count,
            date,
        )
    )


def compute_hash(payload: str, secret: str, length: int = 8) -> str:
    """HMAC-SHA256 of `payload`, hex, truncated to `length` (8 or 16)."""
    if length not in VALID_HASH_LENGTHS:
        raise ValueError(f"hash length must be one of {VALID_HASH_LENGTHS}, got {length}")
    digest = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256)
    return digest.hexdigest()[:length]


def generate_verification_code(
    stats: Stats90d,
    impact: ImpactV4Result,
    secret: Optional[str],
    now: Optional[datetime] = None,
    length: int = 8,
) -> Optional[VerificationCode]:
    """
    Verification code for a scored snapshot, or None when no secret is set.
    """
    if not secret or not secret.strip():
        return None
    date = epoch_date(now)
    payload = build_payload(stats, impact, date)
    return VerificationCode(hash=compute_hash(payload, secret.strip(), length), date=date)


def build_verification_record(
    stats: Stats90d, impact: ImpactV4Result, code: VerificationCode
) -> Dict[str, Any]:
    """Public record stored under verify:{hash} and returned by the verify route."""
    return {
        "handle": stats.handle,
        "displayName": stats.display_name,
        "adjustedComposite": impact.adjusted_composite,
        "confidence": impact.confidence,
        "tier": impact.tier,
        "archetype": impact.archetype,
        "dimensions": impact.dimensions.as_dict(),
        "commitsTotal": stats.commits_total,
        "prsMergedCount": stats.prs_merged_count,
        "reviewsSubmittedCount": stats.reviews_submitted_count,
        "generatedAt": code.date,
    }
