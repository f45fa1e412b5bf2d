"""
WSGI entry point. The database connection is opened while the module loads,
so a server importing ``application`` never starts serving without it.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "taskboard.settings")

application = get_wsgi_application()

from tasks.db import connect  # noqa: E402  (needs configured settings)

connect()
