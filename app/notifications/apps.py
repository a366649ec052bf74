"""Django app configuration for notifications."""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """
    In-app messages, email preferences and deferred email delivery.

    Request wiring lives in notifications.middleware.DeferredEmailMiddleware,
    which must be listed in MIDDLEWARE.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"
    verbose_name = "Notifications & email delivery"
