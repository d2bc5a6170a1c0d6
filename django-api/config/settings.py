"""Django settings for the station billing API.

Values come from environment variables, parsed by `config.env.BillingEnv`.
"""

from pathlib import Path

from config.env import get_env
from config.logging import build_logging_config, configure_structlog

BASE_DIR = Path(__file__).resolve().parent.parent

ENV = get_env()

SECRET_KEY = ENV.secret_key
DEBUG = ENV.debug
ALLOWED_HOSTS = ENV.host_list

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "billing",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
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

if ENV.is_sqlite:
    DATABASES = {
        "default": {
            "ENGINE": ENV.db_engine,
            "NAME": ENV.db_name or str(BASE_DIR / "db.sqlite3"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": ENV.db_engine,
            "NAME": ENV.db_name or "billing",
            "USER": ENV.db_user,
            "PASSWORD": ENV.db_password,
            "HOST": ENV.db_host,
            "PORT": ENV.db_port,
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = ENV.time_zone
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
}

# Last-resort rounding policy when neither a branch nor a global
# BillingSetting row exists.
BILLING_DEFAULT_RULE = ENV.billing_default_rule()

LOG_LEVEL = ENV.log_level
LOGGING = build_logging_config(LOG_LEVEL, json_output=ENV.log_json)
configure_structlog()
