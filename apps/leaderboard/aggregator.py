"""
apps/leaderboard/aggregator.py
===============================
Windowed post counts per member, ordered into a leaderboard.

One parametrised query serves every window. For a window [start, end):

  SELECT members.*, COALESCE(membership_started_at, created_at) AS joined_at,
         COUNT(posts.id) FILTER (active, shared channel, inside window) AS metric
  FROM members LEFT JOIN posts LEFT JOIN channels
  WHERE members.active AND members.suspended_at IS NULL
  GROUP BY members.id
  ORDER BY metric DESC, joined_at ASC, members.id ASC

The ORDER BY is a strict total order, so the cut at `limit` is never
arbitrary. top() drops members with a zero count; the rank resolver reuses
the same scored queryset including them.

Passing `channel_id` narrows the count to one channel's posts, which gives
the per-channel leaderboard the same ordering as the global one.

The store (database alias) and the clock are injected so the same object
can be pointed at a replica or driven by a fixed instant in tests.
"""

import logging
from datetime import datetime
from typing import Callable

from django.db.models import Count
from django.utils import timezone

from .metrics import timed
from .models import Channel, Member, Post, countable_posts_q
from .types import Poster
from .windows import Window

logger = logging.getLogger(__name__)

COMPUTE_HISTOGRAM = "leaderboard_compute_seconds"


class Aggregator:
    def __init__(self, using: str = "default", clock: Callable[[], datetime] = timezone.now):
        self.using = using
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    def bounds(self, window, at: datetime | None = None):
        return Window.parse(window).bounds(at or self.now())

    # ── Querysets ─────────────────────────────────────────────────────────────

    def eligible_members(self):
        return Member.objects.using(self.using).eligible()

    def scored_members(self, window, at: datetime | None = None, channel_id: int | None = None):
        """Eligible members annotated with `joined_at` and their `metric` in the window."""
        start, end = self.bounds(window, at)
        return (
            self.eligible_members()
            .with_joined_at()
            .annotate(metric=Count("posts", filter=countable_posts_q(start, end, channel_id=channel_id)))
        )

    # ── Leaderboard ───────────────────────────────────────────────────────────

    def top(
        self,
        window,
        limit: int,
        at: datetime | None = None,
        channel_id: int | None = None,
    ) -> list[Poster]:
        """Return at most `limit` posters for the window, best first."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        window = Window.parse(window)

        with timed(COMPUTE_HISTOGRAM):
            rows = (
                self.scored_members(window, at, channel_id=channel_id)
                .filter(metric__gt=0)
                .order_by("-metric", "joined_at", "id")[:limit]
            )
            posters = [
                Poster(member=row, metric=row.metric, joined_at=row.joined_at)
                for row in rows
            ]

        logger.debug(
            "Computed top %d for %s (channel=%s): %d poster(s)",
            limit, window, channel_id or "-", len(posters),
        )
        return posters

    def metric_for(self, member_id: int, window, at: datetime | None = None) -> int:
        """Countable posts by one member in the window (0 if none)."""
        start, end = self.bounds(window, at)
        qs = Post.objects.using(self.using).countable().filter(author_id=member_id)
        if start is not None:
            qs = qs.filter(created_at__gte=start, created_at__lt=end)
        return qs.count()

    def eligible_count(self) -> int:
        return self.eligible_members().count()

    # ── Channels ──────────────────────────────────────────────────────────────

    def channel_post_count(self, channel_id: int) -> int:
        """Active posts in one channel, whoever wrote them."""
        return Post.objects.using(self.using).filter(channel_id=channel_id, active=True).count()

    # ── Totals ────────────────────────────────────────────────────────────────

    def totals(self) -> dict:
        """Headline counters shown next to the leaderboards."""
        members = self.eligible_members()
        with timed(COMPUTE_HISTOGRAM):
            result = {
                "total_members":  members.count(),
                "total_posts":    Post.objects.using(self.using).count(),
                "total_posters": (
                    members
                    .filter(posts__active=True, posts__channel__is_private=False)
                    .distinct()
                    .count()
                ),
                "total_channels": Channel.objects.using(self.using).filter(is_private=False).count(),
            }
        logger.debug("Computed totals: %s", result)
        return result
