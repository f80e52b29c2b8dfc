"""WSGI config for the Dugbe Stays backend."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dugbe_stays_backend.settings')

application = get_wsgi_application()
