"""
WSGI config for the Quantum5ocial project.

Exposes the WSGI callable as a module-level variable named ``application``.
gunicorn picks it up via ``quantum5ocial.wsgi:application``.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'quantum5ocial.settings')

application = get_wsgi_application()
