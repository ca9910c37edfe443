"""
config/urls.py
===============
  - /api/                — leaderboard, rank, stats, metrics, health
  - /api/token/          — obtain JWT access + refresh tokens (POST)
  - /api/token/refresh/  — refresh an access token (POST)
  - /api/token/verify/   — verify a token is still valid (POST)
  - /admin/              — member / channel / post admin, cache clearing

/api/token/ and /api/health/ are unauthenticated (see views.py).
"""

from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("apps.leaderboard.urls")),

    # JWT token endpoints (unauthenticated)
    path("api/token/",         TokenObtainPairView.as_view(),  name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(),     name="token_refresh"),
    path("api/token/verify/",  TokenVerifyView.as_view(),      name="token_verify"),
]
