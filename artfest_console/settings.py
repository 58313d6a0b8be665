from pathlib import Path
import os

# Base Directory
BASE_DIR = Path(__file__).resolve().parent.parent


# Backend API
ARTFEST_API_URL = os.getenv("ARTFEST_API_URL", "http://localhost:5001/api").rstrip("/")
ARTFEST_API_TIMEOUT = float(os.getenv("ARTFEST_API_TIMEOUT", "10"))
ARTFEST_DASHBOARD_WORKERS = int(os.getenv("ARTFEST_DASHBOARD_WORKERS", "8"))

# Printed result headings
ARTFEST_FEST_TITLE = os.getenv("ARTFEST_FEST_TITLE", "MAFEEH 2025")
ARTFEST_FEST_SUBTITLE = os.getenv("ARTFEST_FEST_SUBTITLE", "NAHJ ART FEST")


# Security Settings
SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-key")
DEBUG = os.getenv("DEBUG", "True") == "True"

ALLOWED_HOSTS = ["*"] if DEBUG else [
    host.strip() for host in os.getenv("ALLOWED_HOSTS", "").split(",") if host.strip()
]

CSRF_TRUSTED_ORIGINS = [
    origin.strip() for origin in os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if origin.strip()
]

X_FRAME_OPTIONS = 'SAMEORIGIN'

INSTALLED_APPS = [
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'festadmin',  # Admin console
]


# Middleware
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    "whitenoise.middleware.WhiteNoiseMiddleware",
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'festadmin.auth.ConsoleSessionMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

# URL Configuration
ROOT_URLCONF = 'artfest_console.urls'

# Template Settings
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.messages.context_processors.messages',
                'festadmin.auth.console_user',
            ],
        },
    },
]

# WSGI Application
WSGI_APPLICATION = 'artfest_console.wsgi.application'

# The console keeps no tables of its own; every record lives in the backend.
DATABASES = {}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Kolkata")
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, "staticfiles")

STORAGES = {
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedStaticFilesStorage",
    },
}

# Authentication Settings
LOGIN_URL = '/sign-in/'
LOGIN_REDIRECT_URL = '/'

# Session Settings
SESSION_ENGINE = "django.contrib.sessions.backends.cache"
SESSION_CACHE_ALIAS = "default"
SESSION_COOKIE_AGE = 7 * 24 * 60 * 60

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "artfest-console",
    }
}

MESSAGE_STORAGE = "django.contrib.messages.storage.session.SessionStorage"

# Enforce HTTPS
SECURE_SSL_REDIRECT = False
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG

# Uploads for news, gallery and downloads are relayed to the backend
DATA_UPLOAD_MAX_MEMORY_SIZE = 20 * 1024 * 1024
FILE_UPLOAD_MAX_MEMORY_SIZE = 20 * 1024 * 1024

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "console"},
    },
    "loggers": {
        "festadmin": {
            "handlers": ["console"],
            "level": os.getenv("FESTADMIN_LOG_LEVEL", "INFO"),
        },
    },
}
