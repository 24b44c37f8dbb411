"""
chapa.verification — Badge verification codes and their records.

Modules:
    hmac_code  — Canonical payload, HMAC-SHA256 code, UTC-day epoch.
    store      — verify:{hash} / verify-handle:{handle} records (30-day TTL).
"""
