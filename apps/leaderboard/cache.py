"""
apps/leaderboard/cache.py
==========================
Read-through cache in front of the Aggregator and RankResolver.

Every caller goes through LeaderboardCache. On a miss it computes the result,
stores a serialised snapshot with a per-window TTL and hands the live result
back. On a hit it rehydrates the snapshot.

Keys
----
  stats:top_posters:<window>:v<gen>:<period>:<limit>
  stats:top_posters:all_time:v<gen>:<limit>
  stats:user_rank:<window>:v<gen>:<member_id>
  stats:channel_top_posters:v<gen>:<channel_id>:<limit>
  stats:channel_top_posters:v<gen>:<channel_id>:post_count
  stats:totals:v<gen>

<period> is the day, month or year the leaderboard was computed for
(2024-03-07, 2024-03, 2024), so a past period is cached apart from the
current one and "today" moves to a fresh key at midnight UTC.

Different limits for the same window are separate entries, so a top-10 is
never cut out of a cached top-5.

Snapshots
---------
A Poster holds a live Member row, which is not stored. The snapshot is a list
of {id, name, metric, joined_at} dicts. Rehydration loads the members that
are still eligible in one IN query and drops ids that no longer resolve. The
metric travels on the Poster, never on the Member instance.

Invalidation
------------
invalidate(purpose, window=None) is the only way an entry leaves before its
TTL. Each (purpose, window) pair has a generation token stored under
stats:gen:<purpose>:<window> and embedded in every key it covers.
Invalidating replaces the token: the old entries become unreachable and
expire on their own TTL. Nothing is enumerated or deleted, so this works on
any Django cache backend and nothing grows with the number of entries.
There is no write-triggered invalidation: readers may see data up to one TTL
old.

Two concurrent misses for one key both compute and both write. Last write
wins; the results are equivalent.

Cache errors
------------
If the cache backend raises (Redis down, socket timeout), the call falls back
to computing directly and logs a warning. The stores are never retried:
their errors propagate to the caller.
"""

import logging
import uuid

import redis
from django.apps import apps
from django.core.cache import caches
from django.utils.dateparse import parse_datetime

from . import metrics
from .aggregator import Aggregator
from .conf import get_setting
from .models import Member
from .ranking import RankResolver
from .types import Poster
from .windows import Window

logger = logging.getLogger(__name__)

PURPOSE_TOP = "top_posters"
PURPOSE_RANK = "user_rank"
PURPOSE_TOTALS = "totals"
PURPOSE_CHANNEL_TOP = "channel_top_posters"
PURPOSES = (PURPOSE_TOP, PURPOSE_RANK, PURPOSE_TOTALS, PURPOSE_CHANNEL_TOP)

# Purposes keyed by window; the others have a single generation.
WINDOWED_PURPOSES = (PURPOSE_TOP, PURPOSE_RANK)

FALLBACK_TTL = 5 * 60

CACHE_ERRORS = (redis.RedisError, OSError)


def _new_generation() -> str:
    return uuid.uuid4().hex[:8]


def _check_limit(limit) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")


# ── Snapshot format ───────────────────────────────────────────────────────────

def serialize_posters(posters: list[Poster]) -> list[dict]:
    return [
        {
            "id":        poster.member_id,
            "name":      poster.display_name,
            "metric":    int(poster.metric),
            "joined_at": poster.joined_at.isoformat(),
        }
        for poster in posters
    ]


def deserialize_posters(payload: list[dict], using: str = "default") -> list[Poster]:
    """
    Rebuild Posters from a snapshot, in snapshot order.

    Members deleted, deactivated or suspended since the snapshot was taken
    are left out, so the result may be shorter than the snapshot.
    """
    if not payload:
        return []

    ids = [item["id"] for item in payload]
    members = Member.objects.using(using).eligible().in_bulk(ids)

    posters = []
    for item in payload:
        member = members.get(item["id"])
        if member is None:
            continue
        posters.append(Poster(
            member=member,
            metric=item["metric"],
            joined_at=parse_datetime(item["joined_at"]),
        ))

    dropped = len(payload) - len(posters)
    if dropped:
        logger.debug("Dropped %d unresolved member(s) from cached leaderboard", dropped)
    return posters


# ── Facade ────────────────────────────────────────────────────────────────────

class LeaderboardCache:
    def __init__(
        self,
        cache,
        aggregator: Aggregator,
        resolver: RankResolver,
        ttls: dict | None = None,
        totals_ttl: int = FALLBACK_TTL,
        channel_ttl: int = FALLBACK_TTL,
        key_prefix: str = "stats",
    ):
        self.cache = cache
        self.aggregator = aggregator
        self.resolver = resolver
        self.ttls = {
            Window.parse(window): int(seconds)
            for window, seconds in (ttls or get_setting("TTLS")).items()
        }
        self.totals_ttl = int(totals_ttl)
        self.channel_ttl = int(channel_ttl)
        self.key_prefix = key_prefix

    # ── Keys and TTLs ─────────────────────────────────────────────────────────

    def ttl_for(self, window) -> int:
        try:
            return self.ttls.get(Window.parse(window), FALLBACK_TTL)
        except ValueError:
            return FALLBACK_TTL

    def generation(self, purpose: str, window=None) -> str:
        """Current generation token for (purpose, window), created on first use."""
        gen_key = self._generation_key(purpose, window)
        token = self.cache.get(gen_key)
        if token is None:
            token = _new_generation()
            if not self.cache.add(gen_key, token, timeout=None):
                token = self.cache.get(gen_key) or token
        return token

    def key(self, purpose: str, window=None, *parts) -> str:
        if window is not None:
            window = Window.parse(window)
        segments = [self.key_prefix, purpose]
        if window is not None:
            segments.append(str(window))
        segments.append(f"v{self.generation(purpose, window)}")
        segments.extend(str(part) for part in parts if part is not None)
        return ":".join(segments)

    def top_key(self, window, limit: int, at=None) -> str:
        """Key of the top-`limit` entry for the period of `window` containing `at` (default now)."""
        window = Window.parse(window)
        return self.key(PURPOSE_TOP, window, window.period_label(at or self.aggregator.now()), limit)

    def _generation_key(self, purpose: str, window=None) -> str:
        return f"{self.key_prefix}:gen:{purpose}:{window or '-'}"

    # ── Public API ────────────────────────────────────────────────────────────

    def fetch(self, purpose: str, window=None, discriminator=None, at=None):
        if purpose == PURPOSE_TOP:
            limit = get_setting("DEFAULT_LIMIT") if discriminator is None else discriminator
            return self.fetch_top(window, limit, at=at)
        if purpose == PURPOSE_RANK:
            return self.fetch_rank(discriminator, window)
        if purpose == PURPOSE_TOTALS:
            return self.fetch_totals()
        if purpose == PURPOSE_CHANNEL_TOP:
            return self.fetch_channel_top(discriminator, get_setting("DEFAULT_LIMIT"))
        raise ValueError(f"Unknown cache purpose {purpose!r}")

    def fetch_top(self, window, limit: int, at=None) -> list[Poster]:
        """
        Top posters for the window's current period, or for the period
        containing `at` when given (e.g. any instant in March 2024 with
        window=month gives the March 2024 leaderboard).
        """
        window = Window.parse(window)
        _check_limit(limit)
        at = at or self.aggregator.now()

        return self._cached(
            PURPOSE_TOP, window, (window.period_label(at), limit),
            ttl=self.ttl_for(window),
            compute=lambda: self.aggregator.top(window, limit, at),
            dump=serialize_posters,
            load=self._rehydrate,
        )

    def fetch_rank(self, member_id: int, window) -> int | None:
        if isinstance(member_id, bool) or not isinstance(member_id, int):
            raise ValueError(f"member_id must be an integer, got {member_id!r}")
        window = Window.parse(window)

        # Wrapped so a cached "no such member" is not mistaken for a miss
        payload = self._cached(
            PURPOSE_RANK, window, (member_id,),
            ttl=self.ttl_for(window),
            compute=lambda: {"rank": self.resolver.rank_of(member_id, window)},
        )
        return payload["rank"]

    def fetch_totals(self) -> dict:
        return self._cached(
            PURPOSE_TOTALS, None, (),
            ttl=self.totals_ttl,
            compute=self.aggregator.totals,
        )

    def fetch_channel_top(self, channel_id: int, limit: int) -> list[Poster]:
        """All-time top posters inside one channel."""
        if channel_id is None:
            raise ValueError("channel_id is required")
        _check_limit(limit)

        return self._cached(
            PURPOSE_CHANNEL_TOP, None, (channel_id, limit),
            ttl=self.channel_ttl,
            compute=lambda: self.aggregator.top(Window.ALL_TIME, limit, channel_id=channel_id),
            dump=serialize_posters,
            load=self._rehydrate,
        )

    def fetch_channel_post_count(self, channel_id: int) -> int:
        return self._cached(
            PURPOSE_CHANNEL_TOP, None, (channel_id, "post_count"),
            ttl=self.channel_ttl,
            compute=lambda: self.aggregator.channel_post_count(channel_id),
        )

    def invalidate(self, purpose: str, window=None) -> None:
        """Drop one window's entries for a purpose, or all of the purpose's entries."""
        if purpose not in PURPOSES:
            raise ValueError(f"Unknown cache purpose {purpose!r}")

        if purpose not in WINDOWED_PURPOSES:
            windows = [None]
        elif window is not None:
            windows = [Window.parse(window)]
        else:
            windows = list(Window)

        for w in windows:
            gen_key = self._generation_key(purpose, w)
            try:
                self.cache.set(gen_key, _new_generation(), timeout=None)
            except CACHE_ERRORS as exc:
                metrics.inc_counter("leaderboard_cache_errors_total", labels={"op": "invalidate"})
                logger.warning("Cache invalidation failed for %s: %s", gen_key, exc)
                continue
            logger.info("Invalidated %s for window=%s", purpose, w or "-")

    def clear_all(self) -> None:
        for purpose in PURPOSES:
            self.invalidate(purpose)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _rehydrate(self, payload: list[dict]) -> list[Poster]:
        return deserialize_posters(payload, using=self.aggregator.using)

    def _cached(self, purpose: str, window, parts, ttl: int, compute, dump=None, load=None):
        labels = {"purpose": purpose, "window": str(window or "-")}
        try:
            key = self.key(purpose, window, *parts)
            payload = self.cache.get(key)
        except CACHE_ERRORS as exc:
            metrics.inc_counter("leaderboard_cache_errors_total", labels={"op": "get"})
            logger.warning("Cache read failed for %s/%s, computing directly: %s", purpose, window or "-", exc)
            return compute()

        if payload is not None:
            metrics.inc_counter("leaderboard_cache_hits_total", labels=labels)
            logger.debug("Cache hit for %s", key)
            return load(payload) if load else payload

        metrics.inc_counter("leaderboard_cache_misses_total", labels=labels)
        logger.debug("Cache miss for %s", key)
        value = compute()
        self._write(key, dump(value) if dump else value, ttl)
        return value

    def _write(self, key: str, payload, ttl: int) -> None:
        try:
            self.cache.set(key, payload, timeout=ttl)
        except CACHE_ERRORS as exc:
            metrics.inc_counter("leaderboard_cache_errors_total", labels={"op": "set"})
            logger.warning("Cache write failed for %s: %s", key, exc)
            return
        logger.debug("Cache set for %s (TTL=%ds)", key, ttl)


# ── Construction ──────────────────────────────────────────────────────────────

def build_leaderboard_cache() -> LeaderboardCache:
    """Wire an Aggregator, RankResolver and LeaderboardCache from settings."""
    aggregator = Aggregator(using=get_setting("DB_ALIAS"))
    return LeaderboardCache(
        cache=caches[get_setting("CACHE_ALIAS")],
        aggregator=aggregator,
        resolver=RankResolver(aggregator),
        ttls=get_setting("TTLS"),
        totals_ttl=get_setting("TOTALS_TTL"),
        channel_ttl=get_setting("CHANNEL_TTL"),
        key_prefix=get_setting("KEY_PREFIX"),
    )


def get_leaderboard_cache() -> LeaderboardCache:
    """The process-wide instance built when the app registry became ready."""
    return apps.get_app_config("leaderboard").leaderboard_cache
