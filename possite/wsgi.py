"""
WSGI config for possite.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "possite.settings")

application = get_wsgi_application()
