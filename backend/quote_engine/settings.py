"""
Django settings for the quote_engine project.

Engine tunables live in QUOTE_ENGINE and are read through pricing.conf.engine_setting().
"""
import json
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-insecure-change-me")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework.authtoken",
    "accounts",
    "core",
    "customers",
    "pricing",
    "quotes",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "quote_engine.urls"
WSGI_APPLICATION = "quote_engine.wsgi.application"

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

if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

# Shared across workers so a rate-cache bump reaches every process.
# The database backend needs `manage.py createcachetable`.
CACHES = {
    "default": {
        "BACKEND": os.environ.get("QUOTE_ENGINE_CACHE_BACKEND", "django.core.cache.backends.db.DatabaseCache"),
        "LOCATION": os.environ.get("QUOTE_ENGINE_CACHE_LOCATION", "quote_engine_cache"),
    }
}

AUTH_USER_MODEL = "accounts.CustomUser"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True
STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.TokenAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "COERCE_DECIMAL_TO_STRING": True,
}

QUOTE_ENGINE = {
    "BASE_CURRENCY": os.environ.get("QUOTE_BASE_CURRENCY", "INR"),
    "DEFAULT_VOLUMETRIC_DIVISOR": int(os.environ.get("QUOTE_VOLUMETRIC_DIVISOR", 167)),
    "VOLUMETRIC_DIVISORS": json.loads(os.environ.get("QUOTE_VOLUMETRIC_DIVISORS", '{"AIR": 167}')),
    "APPROVAL_COST_THRESHOLD": os.environ.get("QUOTE_APPROVAL_COST_THRESHOLD", "10000"),
    "APPROVAL_MIN_MARGIN_PCT": os.environ.get("QUOTE_APPROVAL_MIN_MARGIN_PCT", "10"),
    "RANK_TOLERANCE": os.environ.get("QUOTE_RANK_TOLERANCE", "0.01"),
    "RATE_CACHE_TIMEOUT": int(os.environ.get("QUOTE_RATE_CACHE_TIMEOUT", 3600)),
    "MAX_EXCHANGE_RATE": os.environ.get("QUOTE_MAX_EXCHANGE_RATE", "999999.999999"),
    "FX_SOURCE_URL": os.environ.get("FX_SOURCE_URL", ""),
    "FX_ANOMALY_PCT": os.environ.get("FX_ANOMALY_PCT", "0.05"),
}

LOG_LEVEL = os.environ.get("QUOTE_ENGINE_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "pricing": {"level": LOG_LEVEL},
        "quotes": {"level": LOG_LEVEL},
    },
}
