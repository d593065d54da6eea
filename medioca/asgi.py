"""
ASGI config for the medioca project.

Only HTTP is served; the dashboard has no WebSocket routes.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "medioca.settings")

from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()
