"""
chapa — Developer Impact Score engine and shareable badge service.

Scores a handle's trailing 90-day public GitHub activity across four
dimensions, then renders the result as an embeddable SVG/PNG badge behind a
rate-limited, Redis-backed cache gate.

Subpackages:
- chapa.ingestion     — Stats90d snapshot, GitHub GraphQL client, stats merging.
- chapa.scoring       — Impact v4 engine (dimensions, tier, archetype, confidence).
- chapa.cache         — Shared cache and fixed-window rate limiter (Redis).
- chapa.render        — Badge SVG/PNG composition, fonts, avatar fetch.
- chapa.verification  — Epoch-stable HMAC verification codes.
- chapa.api           — FastAPI routes for badges, impact and verification.
- chapa.reports       — Markdown cohort reports.
"""

__version__ = "0.1.0"
