"""
WSGI config for the aidat project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'aidat_project.settings')

application = get_wsgi_application()
