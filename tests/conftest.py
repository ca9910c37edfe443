from datetime import datetime, timedelta, timezone

import pytest
from django.core.cache import caches

from apps.leaderboard import metrics
from apps.leaderboard.aggregator import Aggregator
from apps.leaderboard.cache import LeaderboardCache
from apps.leaderboard.models import Channel, Member, Post
from apps.leaderboard.ranking import RankResolver

NOW = datetime(2026, 5, 15, 12, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests (no database)")
    config.addinivalue_line("markers", "integration: Integration tests (database, API)")


class FakeCache:
    """Dict-backed stand-in for a Django cache with a clock the test moves by hand."""

    def __init__(self):
        self.now = 0.0
        self.store = {}
        self.gets = 0

    def get(self, key, default=None):
        self.gets += 1
        entry = self.store.get(key)
        if entry is None:
            return default
        value, expires_at = entry
        if expires_at is not None and expires_at <= self.now:
            del self.store[key]
            return default
        return value

    def set(self, key, value, timeout=None):
        expires_at = None if timeout is None else self.now + timeout
        self.store[key] = (value, expires_at)

    def add(self, key, value, timeout=None):
        if self.get(key) is not None:
            return False
        self.set(key, value, timeout=timeout)
        return True

    def live_keys(self):
        return [
            key for key, (_, expires_at) in self.store.items()
            if expires_at is None or expires_at > self.now
        ]

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture(autouse=True)
def _clean_cache_and_metrics():
    caches["default"].clear()
    metrics.reset()
    yield
    caches["default"].clear()


@pytest.fixture
def aggregator():
    return Aggregator(clock=lambda: NOW)


@pytest.fixture
def resolver(aggregator):
    return RankResolver(aggregator)


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def leaderboard_cache(fake_cache, aggregator, resolver):
    return LeaderboardCache(cache=fake_cache, aggregator=aggregator, resolver=resolver)


@pytest.fixture
def channel(db):
    return Channel.objects.create(name="general", created_at=NOW - 400 * DAY)


@pytest.fixture
def private_channel(db):
    return Channel.objects.create(name="dm", is_private=True, created_at=NOW - 400 * DAY)


@pytest.fixture
def make_member(db):
    def _make(name, joined=None, **kwargs):
        kwargs.setdefault("created_at", joined or NOW - 300 * DAY)
        return Member.objects.create(name=name, **kwargs)
    return _make


@pytest.fixture
def make_posts(db):
    def _make(author, count, channel, at=NOW - timedelta(hours=1), active=True):
        Post.objects.bulk_create([
            Post(author=author, channel=channel, created_at=at, active=active)
            for _ in range(count)
        ])
    return _make


@pytest.fixture
def abc_members(make_member, make_posts, channel):
    """A: 5 posts joined day 1, B: 5 posts joined day 2, C: 3 posts joined day 0."""
    day0 = NOW - 100 * DAY
    a = make_member("A", joined=day0 + DAY)
    b = make_member("B", joined=day0 + 2 * DAY)
    c = make_member("C", joined=day0)
    make_posts(a, 5, channel)
    make_posts(b, 5, channel)
    make_posts(c, 3, channel)
    return a, b, c
