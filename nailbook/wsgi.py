"""
WSGI config for the Nailbook booking engine.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'nailbook.settings.production')

application = get_wsgi_application()
