from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator

from .models import Member


@dataclass(frozen=True)
class Poster:
    """A member paired with their post count for one window."""

    member: Member
    metric: int
    joined_at: datetime

    @property
    def member_id(self) -> int:
        return self.member.pk

    @property
    def display_name(self) -> str:
        return self.member.name

    def sort_key(self):
        return (-self.metric, self.joined_at, self.member_id)


@dataclass(frozen=True)
class LeaderboardEntry:
    position: int
    poster: Poster


def rank_entries(posters: Iterable[Poster]) -> Iterator[LeaderboardEntry]:
    """Number an ordered leaderboard 1, 2, 3, ... with no gaps."""
    for position, poster in enumerate(posters, start=1):
        yield LeaderboardEntry(position=position, poster=poster)
