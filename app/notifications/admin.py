"""
Django admin configuration for notification models.

Registers:
- Message
- UserEmailPreference
- MessageBroadcast
"""

from django.contrib import admin

from notifications.models import Message, MessageBroadcast, UserEmailPreference


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """
    Admin configuration for Message.

    Lists soft-deleted rows too, so support can see what a user removed.
    """

    list_display = [
        "id",
        "title",
        "receiver",
        "message_type",
        "priority",
        "is_read",
        "is_deleted",
        "created_at",
    ]
    list_filter = ["message_type", "priority", "is_read", "is_deleted"]
    search_fields = ["title", "receiver__email"]
    raw_id_fields = ["sender", "receiver"]
    readonly_fields = ["created_at", "updated_at", "read_at", "deleted_at"]
    date_hierarchy = "created_at"

    def get_queryset(self, request):
        return Message.all_objects.select_related("sender", "receiver")


@admin.register(UserEmailPreference)
class UserEmailPreferenceAdmin(admin.ModelAdmin):
    list_display = ["user", "disabled_mask", "updated_at"]
    search_fields = ["user__email"]
    raw_id_fields = ["user"]


@admin.register(MessageBroadcast)
class MessageBroadcastAdmin(admin.ModelAdmin):
    """Read-only history of admin broadcasts."""

    list_display = [
        "id",
        "title",
        "priority",
        "scope",
        "target_count",
        "sent_count",
        "email_recipient_count",
        "created_by",
        "created_at",
    ]
    list_filter = ["priority", "scope"]
    search_fields = ["title"]
    readonly_fields = [
        "created_by",
        "title",
        "content",
        "priority",
        "scope",
        "target_count",
        "sent_count",
        "invalid_user_ids",
        "failed_user_ids",
        "email_recipient_count",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request):
        return False
