"""
Django settings for the medrun backend.

Everything environment-specific comes from the environment (or a .env file
next to manage.py / at the repo root, loaded with python-dotenv).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Example in .env:
# DJANGO_SECRET_KEY=change-me
# DJANGO_DEBUG=1
# PUSH_GATEWAY_URL=https://push.example.com/notify
load_dotenv()


def _env_bool(name, default="0"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", "1")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "phonenumber_field",
    "rest_framework",
    "users",
    "logistics",
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

ROOT_URLCONF = "medrun_backend.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "medrun_backend.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

AUTH_USER_MODEL = "users.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

PHONENUMBER_DEFAULT_REGION = "IN"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "EXCEPTION_HANDLER": "logistics.exceptions.dispatch_exception_handler",
}

# --- Dispatch core knobs (turned into PricingPolicy / DispatchPolicy by logistics.services) ---
PRICING = {
    "RATE_PER_KM": os.getenv("RATE_PER_KM", "5"),
    "DEFAULT_BASE_FARE": os.getenv("DEFAULT_BASE_FARE", "30"),
    "PLATFORM_FEE": os.getenv("PLATFORM_FEE", "10"),
}

DISPATCH = {
    "RETRY_DELAY_SECONDS": int(os.getenv("RETRY_DELAY_SECONDS", "30")),
    "MAX_ASSIGNMENT_ATTEMPTS": int(os.getenv("MAX_ASSIGNMENT_ATTEMPTS", "3")),
    "PICKUP_PROXIMITY_M": float(os.getenv("PICKUP_PROXIMITY_M", "400")),
}

PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL") or None
PUSH_GATEWAY_TIMEOUT = float(os.getenv("PUSH_GATEWAY_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

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
        "dispatch": {"level": LOG_LEVEL},
        "riders": {"level": LOG_LEVEL},
        "vendors": {"level": LOG_LEVEL},
        "logistics": {"level": LOG_LEVEL},
    },
}
