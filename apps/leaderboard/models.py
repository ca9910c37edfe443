"""
apps/leaderboard/models.py
===========================
Read-side view of the member / channel / post stores.

The leaderboard never writes to these tables. It only counts posts, so the
models carry the handful of columns the ranking rules look at:

  Member  — active flag, suspension timestamp, join time
  Channel — private (direct message) or shared
  Post    — author, channel, created_at, active (false once retracted)

A member's join time is COALESCE(membership_started_at, created_at). It is
exposed as the `joined_at` queryset annotation and never stored.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.db.models.functions import Coalesce


# ── Member ────────────────────────────────────────────────────────────────────

class MemberQuerySet(models.QuerySet):
    def eligible(self):
        """Members that may appear on a leaderboard."""
        return self.filter(active=True, suspended_at__isnull=True)

    def with_joined_at(self):
        return self.annotate(
            joined_at=Coalesce("membership_started_at", "created_at"),
        )


class Member(models.Model):
    name = models.CharField(max_length=150)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="member",
    )
    active = models.BooleanField(default=True)
    suspended_at = models.DateTimeField(null=True, blank=True)
    membership_started_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()

    objects = MemberQuerySet.as_manager()

    class Meta:
        db_table = "members"
        ordering = ["id"]

    def __str__(self):
        return self.name


# ── Channel ───────────────────────────────────────────────────────────────────

class Channel(models.Model):
    name = models.CharField(max_length=150, blank=True)
    is_private = models.BooleanField(
        default=False,
        help_text="Direct-message rooms. Posts here never count towards a leaderboard.",
    )
    created_at = models.DateTimeField()

    class Meta:
        db_table = "channels"

    def __str__(self):
        return self.name or f"channel-{self.pk}"


# ── Post ──────────────────────────────────────────────────────────────────────

class PostQuerySet(models.QuerySet):
    def countable(self):
        """Active posts in shared channels."""
        return self.filter(active=True, channel__is_private=False)


class Post(models.Model):
    author = models.ForeignKey(Member, on_delete=models.CASCADE, related_name="posts")
    channel = models.ForeignKey(Channel, on_delete=models.CASCADE, related_name="posts")
    created_at = models.DateTimeField()
    active = models.BooleanField(default=True)

    objects = PostQuerySet.as_manager()

    class Meta:
        db_table = "posts"
        indexes = [
            models.Index(fields=["author", "created_at"], name="posts_author_created_idx"),
            models.Index(fields=["created_at"], name="posts_created_idx"),
        ]


def countable_posts_q(start=None, end=None, prefix="posts__", channel_id=None):
    """
    Q object matching a member's countable posts inside [start, end),
    optionally restricted to one channel.

    Used as the `filter=` argument of a Count() over the reverse relation,
    so members without matching posts still come back with a zero count.
    """
    q = Q(**{
        f"{prefix}active": True,
        f"{prefix}channel__is_private": False,
    })
    if channel_id is not None:
        q &= Q(**{f"{prefix}channel_id": channel_id})
    if start is not None:
        q &= Q(**{f"{prefix}created_at__gte": start})
    if end is not None:
        q &= Q(**{f"{prefix}created_at__lt": end})
    return q
