"""
apps/leaderboard/ranking.py
============================
A member's 1-based rank in the full leaderboard, without materialising it.

    rank = (eligible members with a strictly higher count)
         + (eligible members with the same count who joined strictly earlier)
         + (eligible members with the same count and join time, lower id)
         + 1

The last term is the id tie-break top() orders by, so rank_of() always
agrees with a member's position in the full leaderboard.

The same formula holds for members with zero posts: the comparison set is
every eligible member, so a member who never posted is ranked by join time
among the other zero-count members. The result is clamped to
[1, eligible member count].

Both counts run over Aggregator.scored_members(), so the exclusion rules
cannot drift apart from the ones top() applies.
"""

import logging
from datetime import datetime
from typing import Iterable

from django.db.models import Q

from .aggregator import Aggregator
from .models import Member
from .types import Poster
from .windows import Window

logger = logging.getLogger(__name__)


class RankResolver:
    def __init__(self, aggregator: Aggregator):
        self.aggregator = aggregator

    def rank_of(self, member_id: int, window, at: datetime | None = None) -> int | None:
        """Return the member's rank in the window, or None if no such member exists."""
        window = Window.parse(window)
        at = at or self.aggregator.now()

        member = (
            Member.objects.using(self.aggregator.using)
            .with_joined_at()
            .filter(pk=member_id)
            .first()
        )
        if member is None:
            return None

        metric = self.aggregator.metric_for(member.pk, window, at)
        others = self.aggregator.scored_members(window, at).exclude(pk=member.pk)

        ahead = others.filter(metric__gt=metric).count()
        tied_before = others.filter(metric=metric).filter(
            Q(joined_at__lt=member.joined_at)
            | Q(joined_at=member.joined_at, pk__lt=member.pk)
        ).count()
        total = self.aggregator.eligible_count()

        rank = ahead + tied_before + 1
        clamped = max(1, min(rank, total))
        if clamped != rank:
            logger.warning(
                "Rank for member %s in %s clamped from %d to %d (eligible=%d)",
                member.pk, window, rank, clamped, total,
            )
        return clamped


def position_in(posters: Iterable[Poster], member_id: int) -> int | None:
    """1-based position of a member in an already ordered leaderboard."""
    for position, poster in enumerate(posters, start=1):
        if poster.member_id == member_id:
            return position
    return None
