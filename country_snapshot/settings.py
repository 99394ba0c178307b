"""
Django settings for the country_snapshot project.

Everything deployment-specific comes from the environment (or a ``.env``
file at the project root): the database connection string, the listen
port, and the upstream API endpoints.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

from .database import parse_database_url

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("SECRET_KEY", "django-insecure-dev-only-change-me")
DEBUG = env_bool("DEBUG", False)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get("ALLOWED_HOSTS", "*").split(",") if h.strip()]

# HTTP listen port used by `manage.py runserver`
PORT = int(os.environ.get("PORT", "8000"))

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "countries",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "country_snapshot.urls"
WSGI_APPLICATION = "country_snapshot.wsgi.application"
APPEND_SLASH = False

DATABASES = {
    "default": parse_database_url(
        os.environ.get("DATABASE_URL", f"sqlite:///{BASE_DIR / 'db.sqlite3'}")
    ),
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "countries.exceptions.exception_handler",
}

# Upstream sources
COUNTRIES_API_URL = os.environ.get(
    "COUNTRIES_API_URL",
    "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
)
EXCHANGE_RATES_API_URL = os.environ.get(
    "EXCHANGE_RATES_API_URL",
    "https://open.er-api.com/v6/latest/USD",
)
EXTERNAL_TIMEOUT = float(os.environ.get("EXTERNAL_TIMEOUT", "15"))

SUMMARY_IMAGE_PATH = os.environ.get(
    "SUMMARY_IMAGE_PATH",
    str(BASE_DIR / "cache" / "summary.png"),
)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "countries": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "ERROR",
            "propagate": False,
        },
    },
}
