"""
Leaderboard settings, read from settings.LEADERBOARD with these defaults.
"""

from django.conf import settings

DEFAULTS = {
    "CACHE_ALIAS": "default",
    "DB_ALIAS": "default",
    "KEY_PREFIX": "stats",
    # seconds; shorter windows churn faster
    "TTLS": {
        "today":    60,
        "month":    5 * 60,
        "year":     15 * 60,
        "all_time": 30 * 60,
    },
    "TOTALS_TTL": 5 * 60,
    "CHANNEL_TTL": 5 * 60,
    "DEFAULT_LIMIT": 10,
    "MAX_LIMIT": 100,
    "REFRESH_INTERVAL_S": 60,
}


def get_setting(name: str):
    overrides = getattr(settings, "LEADERBOARD", {}) or {}
    if name not in DEFAULTS:
        raise KeyError(f"Unknown leaderboard setting {name!r}")
    return overrides.get(name, DEFAULTS[name])
