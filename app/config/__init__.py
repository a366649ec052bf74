# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, ASGI/WSGI applications and the Celery app.
#
# The Celery app is imported here so that shared tasks (the stale job file
# purge in notifications.tasks) bind to it as soon as Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
