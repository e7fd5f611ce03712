import os

os.environ.setdefault('SECRET_KEY', 'test-only-secret-key')

from .base import *  # noqa: E402

DEBUG = False

# SQLite in memory by default; set TEST_DATABASE_URL to a PostgreSQL URL to
# run the row-locking tests in tests/test_concurrency.py.
DATABASES = {
    'default': dj_database_url.parse(config('TEST_DATABASE_URL', default='sqlite://:memory:')),
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
BOOKING_NOTIFY_EMAILS = ['frontdesk@nailbook.tw']
NOTIFICATION_DISPATCHER = 'apps.notifications.dispatcher.EmailNotificationDispatcher'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

AXES_ENABLED = False

STORE_RETRY_BACKOFF_SECONDS = 0
