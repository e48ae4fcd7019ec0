"""Base Django settings for tests."""

SECRET_KEY = "django_tests_secret_key"

# App configs double as namespace owners in the tests
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    },
}

USE_TZ = False

# No server by default; fixtures configure one per test
SHAREDKV_OPTIONS = {}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "django_sharedkv": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": True,
        },
    },
}
