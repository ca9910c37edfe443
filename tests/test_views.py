from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.leaderboard.models import Channel, Member, Post

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def community():
    """Three posters in a shared channel, all posting just now."""
    now = timezone.now()
    channel = Channel.objects.create(name="general", created_at=now)
    members = {}
    for name, days_ago, count in [("alice", 30, 4), ("bob", 20, 4), ("carol", 40, 2)]:
        member = Member.objects.create(name=name, created_at=now - timedelta(days=days_ago))
        Post.objects.bulk_create([
            Post(author=member, channel=channel, created_at=now) for _ in range(count)
        ])
        members[name] = member
    return members


def test_health(api_client):
    response = api_client.get("/api/health/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_home_lists_windows(api_client):
    body = api_client.get("/api/").json()
    assert body["windows"] == ["today", "month", "year", "all_time"]


def test_leaderboard(api_client, community):
    response = api_client.get("/api/leaderboard/all_time/")

    assert response.status_code == 200
    body = response.json()
    assert body["window"] == "all_time"
    assert body["limit"] == 10
    assert [(e["position"], e["display_name"], e["metric"]) for e in body["results"]] == [
        (1, "alice", 4),
        (2, "bob", 4),
        (3, "carol", 2),
    ]
    assert body["results"][0]["member_id"] == community["alice"].pk


def test_leaderboard_limit(api_client, community):
    body = api_client.get("/api/leaderboard/today/?limit=2").json()
    assert body["limit"] == 2
    assert len(body["results"]) == 2


@pytest.mark.parametrize("raw, expected", [("abc", 10), ("0", 10), ("5000", 100)])
def test_leaderboard_limit_is_sanitised(api_client, raw, expected):
    body = api_client.get(f"/api/leaderboard/month/?limit={raw}").json()
    assert body["limit"] == expected


def test_unknown_window_is_a_bad_request(api_client):
    response = api_client.get("/api/leaderboard/fortnight/")
    assert response.status_code == 400
    assert "fortnight" in response.json()["detail"]


def test_member_rank(api_client, community):
    response = api_client.get(f"/api/leaderboard/all_time/rank/{community['carol'].pk}/")

    assert response.status_code == 200
    assert response.json() == {
        "member_id": community["carol"].pk,
        "window": "all_time",
        "rank": 3,
    }


def test_unknown_member_rank_is_null(api_client, community):
    response = api_client.get("/api/leaderboard/year/rank/999999/")

    assert response.status_code == 200
    assert response.json()["rank"] is None


def test_my_rank_requires_authentication(api_client):
    response = api_client.get("/api/leaderboard/today/me/")
    assert response.status_code == 401


def test_my_rank_from_cached_leaderboard(api_client, community, django_user_model):
    user = django_user_model.objects.create_user(username="bob", password="pw-123456")
    community["bob"].user = user
    community["bob"].save()
    api_client.force_authenticate(user=user)

    body = api_client.get("/api/leaderboard/all_time/me/").json()

    assert body == {
        "member_id": community["bob"].pk,
        "window": "all_time",
        "rank": 2,
        "in_top": True,
    }


def test_my_rank_for_member_outside_the_leaderboard(api_client, community, django_user_model):
    user = django_user_model.objects.create_user(username="dave", password="pw-123456")
    dave = Member.objects.create(name="dave", user=user, created_at=timezone.now())
    api_client.force_authenticate(user=user)

    body = api_client.get("/api/leaderboard/month/me/").json()

    assert body["member_id"] == dave.pk
    assert body["rank"] == 4
    assert body["in_top"] is False


def test_my_rank_without_member_profile(api_client, django_user_model):
    user = django_user_model.objects.create_user(username="ghost", password="pw-123456")
    api_client.force_authenticate(user=user)

    response = api_client.get("/api/leaderboard/today/me/")

    assert response.status_code == 404


def test_stats(api_client, community):
    body = api_client.get("/api/stats/").json()
    assert body == {
        "total_members": 3,
        "total_posts": 10,
        "total_posters": 3,
        "total_channels": 1,
    }


def test_invalidate_requires_admin(api_client, community, django_user_model):
    user = django_user_model.objects.create_user(username="regular", password="pw-123456")
    api_client.force_authenticate(user=user)

    response = api_client.post("/api/leaderboard/invalidate/", {"purpose": "top_posters"}, format="json")

    assert response.status_code == 403


def test_invalidate_forces_recompute(api_client, community, admin_user):
    assert api_client.get("/api/leaderboard/all_time/?limit=1").json()["results"][0]["display_name"] == "alice"

    carol = community["carol"]
    channel = Channel.objects.get(name="general")
    Post.objects.bulk_create([
        Post(author=carol, channel=channel, created_at=timezone.now()) for _ in range(5)
    ])
    # Still served from cache
    assert api_client.get("/api/leaderboard/all_time/?limit=1").json()["results"][0]["display_name"] == "alice"

    api_client.force_authenticate(user=admin_user)
    response = api_client.post(
        "/api/leaderboard/invalidate/",
        {"purpose": "top_posters", "window": "all_time"},
        format="json",
    )
    assert response.status_code == 204

    assert api_client.get("/api/leaderboard/all_time/?limit=1").json()["results"][0]["display_name"] == "carol"


def test_invalidate_all(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    response = api_client.post("/api/leaderboard/invalidate/", {"purpose": "all"}, format="json")
    assert response.status_code == 204


def test_invalidate_rejects_unknown_purpose(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    response = api_client.post("/api/leaderboard/invalidate/", {"purpose": "heatmap"}, format="json")
    assert response.status_code == 400


def test_metrics_endpoint(api_client, community):
    api_client.get("/api/leaderboard/year/")

    response = api_client.get("/api/metrics/")

    assert response.status_code == 200
    assert response["Content-Type"].startswith("text/plain")
    text = response.content.decode()
    assert 'leaderboard_cache_misses_total{purpose="top_posters",window="year"} 1.00' in text
    assert "leaderboard_compute_seconds_count" in text


def test_leaderboard_reports_current_period(api_client, community):
    body = api_client.get("/api/leaderboard/month/").json()
    assert body["period"] == timezone.now().strftime("%Y-%m")
    assert api_client.get("/api/leaderboard/all_time/").json()["period"] is None


def test_leaderboard_for_a_past_period(api_client, community):
    channel = Channel.objects.get(name="general")
    march_10 = datetime(2024, 3, 10, 9, 0, tzinfo=dt_timezone.utc)
    Post.objects.bulk_create([
        Post(author=community["carol"], channel=channel, created_at=march_10)
        for _ in range(3)
    ])

    body = api_client.get("/api/leaderboard/month/?period=2024-03").json()

    assert body["period"] == "2024-03"
    assert [(e["display_name"], e["metric"]) for e in body["results"]] == [("carol", 3)]
    assert api_client.get("/api/leaderboard/today/?period=2024-03-10").json()["results"][0]["metric"] == 3
    assert api_client.get("/api/leaderboard/year/?period=2023").json()["results"] == []


@pytest.mark.parametrize("url", [
    "/api/leaderboard/month/?period=2024",
    "/api/leaderboard/today/?period=yesterday",
    "/api/leaderboard/all_time/?period=2024",
])
def test_period_must_fit_the_window(api_client, url):
    response = api_client.get(url)
    assert response.status_code == 400
    assert "detail" in response.json()


def test_channel_leaderboard(api_client, community):
    channel = Channel.objects.get(name="general")
    other = Channel.objects.create(name="random", created_at=timezone.now())
    Post.objects.create(author=community["carol"], channel=other, created_at=timezone.now())

    body = api_client.get(f"/api/channels/{channel.pk}/leaderboard/?limit=2").json()

    assert body["channel_id"] == channel.pk
    assert body["name"] == "general"
    assert body["total_posts"] == 10
    assert body["limit"] == 2
    assert [(e["position"], e["display_name"], e["metric"]) for e in body["results"]] == [
        (1, "alice", 4),
        (2, "bob", 4),
    ]

    other_body = api_client.get(f"/api/channels/{other.pk}/leaderboard/").json()
    assert [(e["display_name"], e["metric"]) for e in other_body["results"]] == [("carol", 1)]


def test_private_and_unknown_channels_are_not_found(api_client):
    dm = Channel.objects.create(name="dm", is_private=True, created_at=timezone.now())

    assert api_client.get(f"/api/channels/{dm.pk}/leaderboard/").status_code == 404
    assert api_client.get("/api/channels/999999/leaderboard/").status_code == 404


def test_invalidate_channel_leaderboards(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    response = api_client.post("/api/leaderboard/invalidate/", {"purpose": "channel_top_posters"}, format="json")
    assert response.status_code == 204
