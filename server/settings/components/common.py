"""Core Django settings: apps, database and i18n."""

from typing import Final

from server.settings.components import BASE_DIR, config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='change-this-secret-key')

DEBUG = config('DJANGO_DEBUG', cast=bool, default=False)

ALLOWED_HOSTS: list[str] = []

INSTALLED_APPS: Final = (
    'django.contrib.auth',
    'django.contrib.contenttypes',
    # Storage engine
    'server.apps.library',
)

# Single embedded relational catalog
DATABASES: Final = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': config(
            'DATABASE_PATH',
            default=str(BASE_DIR.joinpath('database.sqlite3')),
        ),
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.PBKDF2PasswordHasher',
]

USE_TZ = True
TIME_ZONE = 'UTC'
LANGUAGE_CODE = 'en-us'
