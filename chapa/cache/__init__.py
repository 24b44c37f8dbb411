"""
chapa.cache — Shared cache and rate-limit gate.

Modules:
    store      — JSON get/set/del on Redis; every failure degrades to a miss.
    ratelimit  — Atomic fixed-window counter; fails open on outage.
"""
