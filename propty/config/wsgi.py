"""
WSGI config for the Propty backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'propty.config.settings')

application = get_wsgi_application()
