"""
Django settings for the LocalHood portal.

Todos los valores sensibles vienen de variables de entorno (.env en desarrollo).
"""
import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default=None):
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "core",
    "accounts",
    "guest_access",
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

ROOT_URLCONF = "config.urls"

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

WSGI_APPLICATION = "config.wsgi.application"

# SQLite por defecto; en producción se usa PostgreSQL vía DB_ENGINE/DB_NAME/...
DATABASES = {
    "default": {
        "ENGINE": os.getenv("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.getenv("DB_USER", ""),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", ""),
        "PORT": os.getenv("DB_PORT", ""),
        # Las transiciones de estado deben quedar confirmadas antes de notificar
        # o abrir la barrera.
        "ATOMIC_REQUESTS": False,
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "es-mx"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(seconds=_env_int("JWT_ACCESS_EXPIRY", 900)),
    "REFRESH_TOKEN_LIFETIME": timedelta(seconds=_env_int("JWT_REFRESH_EXPIRY", 2592000)),
}

# --- Gateway SMS (Notification Bridge) ---
SMS_ENABLED = _env_bool("SMS_ENABLED", False)
SMS_API_URL = os.getenv("SMS_API_URL", "https://api.mobizon.kz/service/message/sendsmsmessage")
SMS_API_KEY = os.getenv("SMS_API_KEY", "")
SMS_SENDER = os.getenv("SMS_SENDER", "LocalHood")
SMS_TIMEOUT_SECONDS = _env_int("SMS_TIMEOUT_SECONDS", 10)

# --- Pases de invitado y barreras ---
GUEST_ACCESS = {
    "MAX_DURATION_MINUTES": _env_int("GUEST_MAX_DURATION_MINUTES", 240),
    "DEFAULT_DURATION_MINUTES": _env_int("GUEST_DEFAULT_DURATION_MINUTES", 30),
    "CODE_LENGTH": _env_int("GUEST_CODE_LENGTH", 6),
    "CODE_ALPHABET": os.getenv("GUEST_CODE_ALPHABET", "0123456789"),
    "CODE_MAX_ATTEMPTS": _env_int("GUEST_CODE_MAX_ATTEMPTS", 5),
    # None: el umbral de permanencia es la duración solicitada del pase.
    "OVERSTAY_THRESHOLD_MINUTES": _env_int("GUEST_OVERSTAY_THRESHOLD_MINUTES"),
    "NOTIFY_ON_EXPIRY": _env_bool("GUEST_NOTIFY_ON_EXPIRY", False),
    "CHAIRMAN_NOTIFY_EVENTS": [
        e.strip() for e in os.getenv("GUEST_CHAIRMAN_NOTIFY_EVENTS", "guest_overstay").split(",") if e.strip()
    ],
    "MONITOR_INTERVAL_SECONDS": _env_int("GUEST_MONITOR_INTERVAL_SECONDS", 60),
    "NOTIFIER": os.getenv("GUEST_NOTIFIER", "guest_access.notifications.LoggingNotifier"),
    "BARRIER_DRIVER": os.getenv("GUEST_BARRIER_DRIVER", "guest_access.devices.LoggingBarrierDriver"),
}

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
        "guest_access": {
            "handlers": ["console"],
            "level": os.getenv("GUEST_ACCESS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "accounts": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
