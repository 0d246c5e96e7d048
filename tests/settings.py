"""
Django settings for Rewardman tests.

Includes the admin stack so both the basic and the Unfold admins load.
"""

SECRET_KEY = "test-secret-key-for-rewardman-tests"

DEBUG = True

INSTALLED_APPS = [
    "unfold",
    "django.contrib.admin",
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.sessions",
    "django.contrib.messages",
    "rewardman",
    "rewardman.contrib.admin_unfold",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "America/Sao_Paulo"

REWARDMAN = {
    "ACCRUAL_RATE": "0.1",
    "REFERRER_POINTS": 200,
    "REFERRED_POINTS": 100,
}
