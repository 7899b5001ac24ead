"""
Django settings for solar_crm project.
Workflow service in front of the CRM REST backend: DRF, session identity,
cache-held enquiry board and Celery background sync.
"""

from pathlib import Path
from decouple import config, Csv
from celery.schedules import crontab
import os


# ===============================================================
# Base paths
# ===============================================================
BASE_DIR = Path(__file__).resolve().parent.parent


# ===============================================================
# Security
# ===============================================================
SECRET_KEY = config("SECRET_KEY", default="insecure-key-change-me")
DEBUG = config("DEBUG", default=False, cast=bool)

# "*.domain" -> ".domain" (Django expects a leading dot, not a wildcard)
_raw_hosts = config("ALLOWED_HOSTS", default="127.0.0.1,localhost,testserver")

ALLOWED_HOSTS = [h.strip() for h in str(_raw_hosts).split(",") if h.strip()]

_fixed_hosts = []
for h in ALLOWED_HOSTS:
    if h.startswith("*."):
        _fixed_hosts.append("." + h[2:])
    else:
        _fixed_hosts.append(h)
ALLOWED_HOSTS = _fixed_hosts

if "testserver" not in ALLOWED_HOSTS:
    ALLOWED_HOSTS.append("testserver")


# ---------------------------------------------------------------
# Reverse proxy
# ---------------------------------------------------------------
USE_X_FORWARDED_HOST = True
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = config("SESSION_COOKIE_SECURE", default=not DEBUG, cast=bool)
CSRF_COOKIE_SECURE = SESSION_COOKIE_SECURE

CSRF_TRUSTED_ORIGINS = config("CSRF_TRUSTED_ORIGINS", default="", cast=Csv())


# ===============================================================
# Installed apps
# ===============================================================
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "drf_spectacular",
    "crm_core.apps.CrmCoreConfig",
]


# ===============================================================
# Middleware
# ===============================================================
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "solar_crm.urls"
WSGI_APPLICATION = "solar_crm.wsgi.application"


# ===============================================================
# Templates (browsable API + swagger/redoc)
# ===============================================================
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
            ],
        },
    }
]


# ===============================================================
# Database
# ===============================================================
# Enquiries, users and production workflows live in the backend; the
# local database only serves Django's own contrib apps.
DJANGO_ENV = os.environ.get("DJANGO_ENV", "").lower()

if DJANGO_ENV in {"ci", "test"}:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": ":memory:",
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": config("DB_PATH", default=str(BASE_DIR / "db.sqlite3")),
        }
    }


# ===============================================================
# Sessions
# ===============================================================
# The backend user + token are kept in a signed cookie session.
SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_AGE = config("SESSION_COOKIE_AGE", default=60 * 60 * 12, cast=int)


# ===============================================================
# Cache (enquiry board)
# ===============================================================
# Celery workers and web processes must share the board: set
# REDIS_CACHE_URL wherever more than one process runs.
REDIS_CACHE_URL = config("REDIS_CACHE_URL", default="")

if REDIS_CACHE_URL:
    _board_cache = {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": REDIS_CACHE_URL,
    }
else:
    _board_cache = {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "crm-board",
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "default",
    },
    "board": _board_cache,
}


# ===============================================================
# Internationalization
# ===============================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = config("TIME_ZONE", default="UTC")
USE_I18N = True
USE_TZ = True


# ===============================================================
# Static
# ===============================================================
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ===============================================================
# CORS
# ===============================================================
CORS_ALLOWED_ORIGINS = config("CORS_ALLOWED_ORIGINS", default="", cast=Csv())
CORS_ALLOW_CREDENTIALS = True


# ===============================================================
# CRM backend
# ===============================================================
CRM_BACKEND_URL = config("CRM_BACKEND_URL", default="http://localhost:5000/api")
CRM_BACKEND_TIMEOUT = config("CRM_BACKEND_TIMEOUT", default=10.0, cast=float)
CRM_BACKEND_CLIENT_FACTORY = config(
    "CRM_BACKEND_CLIENT_FACTORY",
    default="crm_core.services.backend_client.default_client_factory",
)

# Shared secret for the push relay (/crm/events/). Empty disables it.
CRM_EVENTS_TOKEN = config("CRM_EVENTS_TOKEN", default="")

# Backend token used by the background board sync.
CRM_SERVICE_TOKEN = config("CRM_SERVICE_TOKEN", default="")

CRM_BOARD_CACHE = "board"
CRM_BOARD_TTL = None


# ===============================================================
# Django REST Framework
# ===============================================================
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "crm_core.authentication.BackendTokenAuthentication",
        "crm_core.authentication.CrmSessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}


# ===============================================================
# OpenAPI / Swagger
# ===============================================================
SPECTACULAR_SETTINGS = {
    "TITLE": "Solar CRM Workflow API",
    "DESCRIPTION": "Role-aware enquiry workflow for the solar fabrication CRM",
    "VERSION": "0.1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# ===============================================================
# Logging
# ===============================================================
CRM_LOG_LEVEL = config("CRM_LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
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
        "crm_core": {
            "handlers": ["console"],
            "level": CRM_LOG_LEVEL,
            "propagate": False,
        },
    },
}


# ===============================================================
# Celery configuration
# ===============================================================
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = config("CELERY_RESULT_BACKEND", default=None)

CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"

CELERY_TIMEZONE = TIME_ZONE

CELERY_BEAT_SCHEDULE = {
    "sync-enquiry-board-every-5-mins": {
        "task": "crm_core.tasks.sync_enquiry_board",
        "schedule": crontab(minute="*/5"),
        "args": (),
    }
}
