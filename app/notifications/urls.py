"""
URL configuration for notifications API.

Routes:
    Messages:
        /messages/                - List messages (GET)
        /messages/{id}/           - Detail (GET), soft delete (DELETE)
        /messages/{id}/read/      - Mark single as read (POST)
        /messages/read-all/       - Mark all as read (POST)
        /messages/unread-count/   - Get unread count (GET)

    Preferences:
        /preferences/             - List (GET), update (PUT)

    Broadcasts:
        /broadcasts/              - History (GET), send broadcast (POST), admin
        /broadcasts/recipients/   - Search target users (GET, admin)
"""

from django.urls import path

from rest_framework.routers import DefaultRouter

from notifications.views import BroadcastViewSet, MessageViewSet, PreferenceViewSet

router = DefaultRouter()
router.register(r"messages", MessageViewSet, basename="message")
router.register(r"broadcasts", BroadcastViewSet, basename="broadcast")

app_name = "notifications"
urlpatterns = router.urls + [
    path(
        "preferences/",
        PreferenceViewSet.as_view({"get": "list", "put": "update"}),
        name="preferences",
    ),
]
