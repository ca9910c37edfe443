import pytest
from django.core.cache import caches

from apps.leaderboard.cache import PURPOSE_TOTALS, get_leaderboard_cache
from apps.leaderboard.tasks import refresh_leaderboards

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


def test_refresh_warms_every_window(abc_members):
    sizes = refresh_leaderboards()

    assert set(sizes) == {"today", "month", "year", "all_time"}
    assert sizes["all_time"] == 3

    cache = caches["default"]
    leaderboard_cache = get_leaderboard_cache()
    for window in sizes:
        assert cache.get(leaderboard_cache.top_key(window, 10)) is not None
    assert cache.get(leaderboard_cache.key(PURPOSE_TOTALS)) is not None


def test_refresh_with_custom_limit(abc_members):
    sizes = refresh_leaderboards(limit=2)

    assert sizes["all_time"] == 2
    assert caches["default"].get(get_leaderboard_cache().top_key("all_time", 2)) is not None


def test_refresh_runs_as_a_celery_task(abc_members):
    result = refresh_leaderboards.apply(kwargs={"limit": 1})

    assert result.successful()
    assert result.get()["all_time"] == 1
