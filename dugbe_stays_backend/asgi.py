"""ASGI config for the Dugbe Stays backend."""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dugbe_stays_backend.settings')

application = get_asgi_application()
