"""
Settings for the task board backend.

Everything is read from environment variables; a local ``.env`` file is
loaded first so development machines don't have to export them.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env", override=False)


def _env(name, default=""):
    value = os.getenv(name)
    return default if value is None else value


def _env_flag(name):
    # only the literal "true" switches a flag on
    return _env(name).strip().lower() == "true"


def _env_int(name, default):
    raw = _env(name).strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name, default):
    raw = _env(name).strip()
    if not raw:
        return list(default)
    return [part.strip() for part in raw.replace(",", " ").split() if part.strip()]


SECRET_KEY = _env("DJANGO_SECRET_KEY", "django-insecure-taskboard-development-key")
DEBUG = _env_flag("DJANGO_DEBUG")
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", ["localhost", "127.0.0.1"])

PORT = _env_int("PORT", 5000)

INSTALLED_APPS = [
    "corsheaders",
    "tasks",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "taskboard.urls"
WSGI_APPLICATION = "taskboard.wsgi.application"

# the browser client's development URL is the only allowed origin
CORS_ALLOWED_ORIGINS = [_env("CORS_ORIGIN", "http://localhost:3000")]


def _database_config():
    engine = _env("DB_ENGINE", "mssql").strip() or "mssql"
    name = _env("DB_DATABASE", "TaskManager")

    if engine == "sqlite3":
        return {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / f"{name}.sqlite3",
        }

    # integrated (Windows) authentication: no USER / PASSWORD on purpose
    extra_params = [
        "Trusted_Connection=yes",
        "Encrypt=" + ("yes" if _env_flag("DB_ENCRYPT") else "no"),
        "TrustServerCertificate=" + ("yes" if _env_flag("DB_TRUST_SERVER_CERTIFICATE") else "no"),
    ]
    return {
        "ENGINE": "mssql",
        "NAME": name,
        "HOST": _env("DB_SERVER", "localhost"),
        "OPTIONS": {
            "driver": _env("DB_DRIVER", "ODBC Driver 18 for SQL Server"),
            "extra_params": ";".join(extra_params),
        },
    }


DATABASES = {"default": _database_config()}

DEFAULT_AUTO_FIELD = "django.db.models.AutoField"

USE_TZ = True
TIME_ZONE = "UTC"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
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
        "level": _env("LOG_LEVEL", "INFO").upper(),
    },
}
