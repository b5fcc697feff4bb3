"""Django settings for running the quoting app standalone."""
import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-not-secret")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS: list[str] = []

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "quoting",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

USE_TZ = True
TIME_ZONE = "Europe/Warsaw"
LANGUAGE_CODE = "pl"

QUOTING_DEFAULT_VAT_RATE = Decimal(os.getenv("QUOTING_DEFAULT_VAT_RATE", "23"))
QUOTING_MAX_ALLOCATION_ATTEMPTS = int(os.getenv("QUOTING_MAX_ALLOCATION_ATTEMPTS", "10"))
QUOTING_SERVICE_ITEM_SLOTS = 4
QUOTING_ALLOCATION_FALLBACK = os.getenv("QUOTING_ALLOCATION_FALLBACK", "raise")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "quoting": {
            "handlers": ["console"],
            "level": os.getenv("QUOTING_LOG_LEVEL", "INFO"),
        },
    },
}
