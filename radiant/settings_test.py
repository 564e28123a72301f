# radiant/settings_test.py
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")

from .settings import *  # noqa: E402,F401,F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": [],
}

SADAD_MERCHANT_ID = "7654321"
SADAD_SECRET_KEY = "Kx9/aB&cD+eF=gH1"
SADAD_TEST_MODE = True
SADAD_WEBSITE_DOMAIN = "radiant-matches-app.vercel.app"
SADAD_CALLBACK_BASE_URL = "https://api.radiant.test"
SADAD_PAYMENT_URL = ""
SADAD_VERIFICATION_URL = ""
SADAD_VERIFY_IP = False
SADAD_SKIP_IP_VERIFICATION = False
SADAD_STRICT_CHECKSUM = False
