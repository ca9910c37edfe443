from django.urls import path

from .views import (
    channel_leaderboard,
    health,
    home,
    invalidate,
    leaderboard,
    member_rank,
    metrics,
    my_rank,
    stats,
)

urlpatterns = [
    path("",        home,    name="home"),
    path("health/", health,  name="health"),   # unauthenticated
    path("metrics/", metrics, name="metrics"),
    path("stats/",  stats,   name="stats"),

    path("leaderboard/invalidate/", invalidate, name="leaderboard-invalidate"),
    path("leaderboard/<str:window>/", leaderboard, name="leaderboard"),
    path("leaderboard/<str:window>/me/", my_rank, name="leaderboard-me"),
    path(
        "leaderboard/<str:window>/rank/<int:member_id>/",
        member_rank,
        name="leaderboard-rank",
    ),
    path("channels/<int:channel_id>/leaderboard/", channel_leaderboard, name="channel-leaderboard"),
]
