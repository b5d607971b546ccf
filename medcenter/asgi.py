"""
ASGI config for the medical center project.  HTTP only.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "medcenter.settings")

application = get_asgi_application()
