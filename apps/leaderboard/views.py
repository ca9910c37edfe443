"""
apps/leaderboard/views.py
==========================
HTTP surface over LeaderboardCache. Every leaderboard, rank and count read
goes through the cache facade built at app startup.

  GET  /api/leaderboard/<window>/?limit=N&period=P  top posters
  GET  /api/leaderboard/<window>/rank/<member_id>/  any member's rank
  GET  /api/leaderboard/<window>/me/                the caller's rank (JWT)
  GET  /api/channels/<channel_id>/leaderboard/      one channel, all time
  GET  /api/stats/                                  headline totals
  POST /api/leaderboard/invalidate/                 admin only
  GET  /api/metrics/                                Prometheus text format

Unknown windows and periods that do not fit the window answer 400. P is
YYYY-MM-DD, YYYY-MM or YYYY for today, month and year. An unknown member
id is not an error: its rank is null. Private channels answer 404.
"""

import logging

from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .cache import get_leaderboard_cache
from .conf import get_setting
from .metrics import render_metrics
from .models import Channel, Member
from .ranking import position_in
from .serializers import (
    InvalidateSerializer,
    LeaderboardEntrySerializer,
    RankSerializer,
    TotalsSerializer,
)
from .types import rank_entries
from .windows import Window

logger = logging.getLogger(__name__)


def _bad_request(exc):
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _parse_limit(raw) -> int:
    default = get_setting("DEFAULT_LIMIT")
    if raw is None:
        return default
    try:
        limit = int(raw)
    except ValueError:
        logger.warning("Invalid limit value: %s", raw)
        return default
    if limit < 1:
        return default
    return min(limit, get_setting("MAX_LIMIT"))


# ── Unauthenticated endpoints ─────────────────────────────────────────────────

@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    """
    Unauthenticated health-check for Docker / load-balancer probes.
    Returns 200 if Django is responding. No DB query.
    """
    return Response({"status": "ok"})


@api_view(["GET"])
@permission_classes([AllowAny])
def home(request):
    return Response({
        "status": "Leaderboard API",
        "version": "1.0",
        "windows": [w.value for w in Window],
    })


def metrics(request):
    return HttpResponse(render_metrics(), content_type="text/plain; version=0.0.4")


# ── Leaderboards ──────────────────────────────────────────────────────────────

@api_view(["GET"])
@permission_classes([AllowAny])
def leaderboard(request, window):
    try:
        window = Window.parse(window)
    except ValueError as exc:
        return _bad_request(exc)

    at = None
    period = request.query_params.get("period")
    if period:
        try:
            at = window.parse_period(period)
        except ValueError as exc:
            return _bad_request(exc)

    leaderboard_cache = get_leaderboard_cache()
    at = at or leaderboard_cache.aggregator.now()
    limit = _parse_limit(request.query_params.get("limit"))
    posters = leaderboard_cache.fetch_top(window, limit, at=at)
    entries = LeaderboardEntrySerializer(list(rank_entries(posters)), many=True).data

    return Response({
        "window": window.value,
        "period": window.period_label(at),
        "limit": limit,
        "results": entries,
    })


@api_view(["GET"])
@permission_classes([AllowAny])
def member_rank(request, window, member_id):
    try:
        window = Window.parse(window)
    except ValueError as exc:
        return _bad_request(exc)

    rank = get_leaderboard_cache().fetch_rank(member_id, window)
    return Response(RankSerializer({
        "member_id": member_id,
        "window": window.value,
        "rank": rank,
    }).data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def my_rank(request, window):
    """
    The authenticated user's rank. If they already appear in the cached
    full-size leaderboard their position there is returned without running
    the rank query.
    """
    try:
        window = Window.parse(window)
    except ValueError as exc:
        return _bad_request(exc)

    try:
        member = request.user.member
    except Member.DoesNotExist:
        return Response(
            {"detail": "No member profile is linked to this account."},
            status=status.HTTP_404_NOT_FOUND,
        )

    leaderboard_cache = get_leaderboard_cache()
    posters = leaderboard_cache.fetch_top(window, get_setting("MAX_LIMIT"))
    rank = position_in(posters, member.pk)
    in_top = rank is not None
    if not in_top:
        rank = leaderboard_cache.fetch_rank(member.pk, window)

    data = RankSerializer({"member_id": member.pk, "window": window.value, "rank": rank}).data
    data["in_top"] = in_top
    return Response(data)


# ── Channels ──────────────────────────────────────────────────────────────────

@api_view(["GET"])
@permission_classes([AllowAny])
def channel_leaderboard(request, channel_id):
    """All-time top posters in one shared channel, with its active post count."""
    leaderboard_cache = get_leaderboard_cache()
    channel = (
        Channel.objects.using(leaderboard_cache.aggregator.using)
        .filter(pk=channel_id, is_private=False)
        .first()
    )
    if channel is None:
        return Response({"detail": "No such channel."}, status=status.HTTP_404_NOT_FOUND)

    limit = _parse_limit(request.query_params.get("limit"))
    posters = leaderboard_cache.fetch_channel_top(channel.pk, limit)
    entries = LeaderboardEntrySerializer(list(rank_entries(posters)), many=True).data

    return Response({
        "channel_id": channel.pk,
        "name": channel.name,
        "total_posts": leaderboard_cache.fetch_channel_post_count(channel.pk),
        "limit": limit,
        "results": entries,
    })


# ── Stats ─────────────────────────────────────────────────────────────────────

@api_view(["GET"])
@permission_classes([AllowAny])
def stats(request):
    """Headline totals, cached for TOTALS_TTL seconds."""
    totals = get_leaderboard_cache().fetch_totals()
    return Response(TotalsSerializer(totals).data)


# ── Cache administration ──────────────────────────────────────────────────────

@api_view(["POST"])
@permission_classes([IsAdminUser])
def invalidate(request):
    serializer = InvalidateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    purpose = serializer.validated_data["purpose"]
    window = serializer.validated_data.get("window")

    leaderboard_cache = get_leaderboard_cache()
    if purpose == "all":
        leaderboard_cache.clear_all()
    else:
        leaderboard_cache.invalidate(purpose, window)

    logger.info("Cache invalidated by %s: purpose=%s window=%s", request.user, purpose, window or "-")
    return Response(status=status.HTTP_204_NO_CONTENT)
