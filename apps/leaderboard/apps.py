from django.apps import AppConfig


class LeaderboardConfig(AppConfig):
    name = "apps.leaderboard"
    label = "leaderboard"
    verbose_name = "Leaderboard"
    default_auto_field = "django.db.models.BigAutoField"

    leaderboard_cache = None

    def ready(self):
        # Built once per process and shared by views, tasks and admin actions.
        from .cache import build_leaderboard_cache

        self.leaderboard_cache = build_leaderboard_cache()
