import logging

from celery import shared_task

from .cache import get_leaderboard_cache
from .conf import get_setting
from .windows import Window

logger = logging.getLogger(__name__)


@shared_task
def refresh_leaderboards(limit=None):
    """
    Keep the standard leaderboards warm ahead of readers.

    Runs on the beat schedule (REFRESH_INTERVAL_S). It only calls the cache
    facade, so an entry that is still fresh is left alone and an expired one
    is recomputed here instead of on a reader's request.
    """
    limit = limit or get_setting("DEFAULT_LIMIT")
    leaderboard_cache = get_leaderboard_cache()

    sizes = {}
    for window in Window:
        sizes[window.value] = len(leaderboard_cache.fetch_top(window, limit))
    leaderboard_cache.fetch_totals()

    logger.info("Leaderboard cache refreshed (limit=%d): %s", limit, sizes)
    return sizes
