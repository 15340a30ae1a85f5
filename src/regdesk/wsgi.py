"""WSGI config for the regdesk project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "regdesk.settings")

application = get_wsgi_application()
