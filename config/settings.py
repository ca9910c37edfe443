"""
config/settings.py
===================
  - Postgres primary (+ optional replica alias for leaderboard reads)
  - Redis cache backend (django-redis) fronting every leaderboard read
  - Celery beat job that keeps the standard leaderboards warm
  - REST framework with JWT + session authentication
  - Secrets and tunables from environment variables
"""

import os
from pathlib import Path
from datetime import timedelta

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY",
    "django-insecure-dev-key-change-in-production"
)

DEBUG = os.environ.get("DJANGO_DEBUG", "true").lower() == "true"

ALLOWED_HOSTS = os.environ.get(
    "DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1"
).split(",")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "corsheaders",
    "rest_framework_simplejwt",
    "apps.leaderboard",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",   # must be first
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE":   "django.db.backends.postgresql",
        "NAME":     os.environ.get("POSTGRES_DB",       "community"),
        "USER":     os.environ.get("POSTGRES_USER",     "community"),
        "PASSWORD": os.environ.get("POSTGRES_PASSWORD", "community"),
        "HOST":     os.environ.get("POSTGRES_HOST",     "localhost"),
        "PORT":     os.environ.get("POSTGRES_PORT",     "5432"),
        "CONN_MAX_AGE": 600,
    },
}

# Leaderboard queries are read-only and tolerate replica lag, so they can be
# pointed at a streaming replica with LEADERBOARD_DB_ALIAS=replica.
if os.environ.get("POSTGRES_REPLICA_HOST"):
    DATABASES["replica"] = {
        **DATABASES["default"],
        "HOST": os.environ["POSTGRES_REPLICA_HOST"],
        "PORT": os.environ.get("POSTGRES_REPLICA_PORT", "5432"),
    }

# ── Redis Cache ───────────────────────────────────────────────────────────────
_redis_base = os.environ.get("REDIS_URL", "redis://localhost:6379")

CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": f"{_redis_base}/1",
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
            # Redis down reads as a cache miss; leaderboards are computed directly.
            "IGNORE_EXCEPTIONS": True,
            "SOCKET_CONNECT_TIMEOUT": 2,
            "SOCKET_TIMEOUT": 1,
        },
        "KEY_PREFIX": "community",
    }
}

# ── Leaderboard ───────────────────────────────────────────────────────────────
LEADERBOARD = {
    "CACHE_ALIAS": os.environ.get("LEADERBOARD_CACHE_ALIAS", "default"),
    "DB_ALIAS":    os.environ.get("LEADERBOARD_DB_ALIAS",    "default"),
    "KEY_PREFIX":  "stats",
    "TTLS": {
        "today":    int(os.environ.get("LEADERBOARD_TTL_TODAY_S",    "60")),
        "month":    int(os.environ.get("LEADERBOARD_TTL_MONTH_S",    "300")),
        "year":     int(os.environ.get("LEADERBOARD_TTL_YEAR_S",     "900")),
        "all_time": int(os.environ.get("LEADERBOARD_TTL_ALL_TIME_S", "1800")),
    },
    "TOTALS_TTL":         int(os.environ.get("LEADERBOARD_TOTALS_TTL_S", "300")),
    "CHANNEL_TTL":        int(os.environ.get("LEADERBOARD_CHANNEL_TTL_S", "300")),
    "DEFAULT_LIMIT":      10,
    "MAX_LIMIT":          100,
    "REFRESH_INTERVAL_S": int(os.environ.get("LEADERBOARD_REFRESH_INTERVAL_S", "60")),
}

# ── Celery ────────────────────────────────────────────────────────────────────
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", f"{_redis_base}/0")
CELERY_TASK_IGNORE_RESULT = True
CELERY_BEAT_SCHEDULE = {
    "refresh-leaderboards": {
        "task": "apps.leaderboard.tasks.refresh_leaderboards",
        "schedule": float(LEADERBOARD["REFRESH_INTERVAL_S"]),
    },
}

# ── REST Framework ────────────────────────────────────────────────────────────
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",  # browsable API
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    # 100 requests/min per user; counters live in Redis
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.UserRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "user": "100/min",
    },
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME":  timedelta(minutes=60),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "ROTATE_REFRESH_TOKENS":  True,
    "ALGORITHM": "HS256",
    "AUTH_HEADER_TYPES": ("Bearer",),
}

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "apps": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

# ── Auth ──────────────────────────────────────────────────────────────────────
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE     = "UTC"
USE_I18N      = True
USE_TZ        = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CORS_ALLOW_ALL_ORIGINS = DEBUG
CORS_ALLOWED_ORIGINS = os.environ.get(
    "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
).split(",") if not DEBUG else []
