"""
apps/leaderboard/admin.py
==========================
Member, Channel and Post admin.

Deactivating or suspending a member here does not touch the cache: the
member drops out of cached leaderboards when the entry is rehydrated, and
out of the counts on the next recompute. "Clear all cached leaderboards" forces
that recompute immediately.
"""

from django.contrib import admin
from django.utils import timezone

from .cache import get_leaderboard_cache
from .models import Channel, Member, Post


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display  = ("id", "name", "active", "suspended_at", "membership_started_at", "created_at")
    list_filter   = ("active",)
    search_fields = ("name",)
    raw_id_fields = ("user",)
    ordering      = ("id",)

    fieldsets = (
        ("Member", {
            "fields": ("name", "user", "active", "suspended_at"),
        }),
        ("Membership", {
            "fields": ("membership_started_at", "created_at"),
            "description": (
                "Leaderboard ties are broken by join time: membership start if set, "
                "otherwise account creation."
            ),
        }),
    )

    actions = ["activate_selected", "suspend_selected", "clear_leaderboard_cache"]

    @admin.action(description="Activate selected members")
    def activate_selected(self, request, queryset):
        updated = queryset.update(active=True, suspended_at=None)
        self.message_user(request, f"{updated} member(s) activated.")

    @admin.action(description="Suspend selected members")
    def suspend_selected(self, request, queryset):
        updated = queryset.update(suspended_at=timezone.now())
        self.message_user(request, f"{updated} member(s) suspended.")

    @admin.action(description="Clear all cached leaderboards (selection is ignored)")
    def clear_leaderboard_cache(self, request, queryset):
        # Django only runs an action once a row is ticked; any row will do.
        get_leaderboard_cache().clear_all()
        self.message_user(request, "Leaderboard cache cleared for every member, window and channel.")


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    list_display  = ("id", "name", "is_private", "created_at")
    list_filter   = ("is_private",)
    search_fields = ("name",)


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display  = ("id", "author", "channel", "created_at", "active")
    list_filter   = ("active", "channel__is_private")
    raw_id_fields = ("author", "channel")
