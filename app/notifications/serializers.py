"""
Serializers for the notification API.

Serializers:
    MessageSerializer: Read-only in-app message
    UnreadCountSerializer: Response for the unread count endpoint
    MarkAllReadResponseSerializer: Response for the read-all endpoint
    PreferenceSerializer: One category row of the preference list
    PreferenceUpdateSerializer: Body of PUT preferences/
    BroadcastRequestSerializer: Body of POST broadcasts/
    BroadcastResponseSerializer: Outcome of a broadcast
    BroadcastHistorySerializer: Stored broadcast for the admin history
    BroadcastRecipientSerializer: User row for recipient search

Usage:
    from notifications.serializers import MessageSerializer

    serializer = MessageSerializer(message)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Message, MessageBroadcast, MessagePriority


class MessageSerializer(serializers.ModelSerializer):
    """
    Serializer for Message model.

    sender_name is None for system messages and for senders that were
    deleted (SET_NULL).
    """

    type = serializers.CharField(source="message_type", read_only=True)
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            "id",
            "title",
            "content",
            "type",
            "priority",
            "sender_name",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields

    def get_sender_name(self, obj: Message) -> str | None:
        if obj.sender is None:
            return None
        return obj.sender.get_display_name()


class UnreadCountSerializer(serializers.Serializer):
    unread_count = serializers.IntegerField()


class MarkAllReadResponseSerializer(serializers.Serializer):
    updated = serializers.IntegerField()


# ============================================================================
# Preference Serializers
# ============================================================================


class PreferenceSerializer(serializers.Serializer):
    """
    One email category as shown to the user.

    Fields:
        category: Category id
        label: Human-readable name
        locked: Mandatory category that cannot be turned off
        enabled: Whether emails of this category are sent
    """

    category = serializers.CharField()
    label = serializers.CharField()
    locked = serializers.BooleanField()
    enabled = serializers.BooleanField()


class PreferenceUpdateSerializer(serializers.Serializer):
    """
    Body of a preference update.

    Entries are passed through as given: unknown and locked categories
    are ignored by the store instead of failing the whole request.
    """

    preferences = serializers.ListField(
        child=serializers.DictField(),
        allow_empty=True,
    )


class PreferenceListSerializer(serializers.Serializer):
    preferences = PreferenceSerializer(many=True)


# ============================================================================
# Broadcast Serializers
# ============================================================================


class BroadcastRequestSerializer(serializers.Serializer):
    """
    Admin broadcast request.

    Fields:
        title: Required, up to 255 characters
        content: Required
        priority: One of low/normal/high/urgent (default normal)
        target_users: Optional list of user ids; omitted targets everyone
    """

    title = serializers.CharField(max_length=255)
    content = serializers.CharField()
    priority = serializers.ChoiceField(
        choices=MessagePriority.choices,
        default=MessagePriority.NORMAL,
    )
    target_users = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        allow_empty=True,
    )


class BroadcastResponseSerializer(serializers.Serializer):
    broadcast_id = serializers.IntegerField(source="pk")
    sent_count = serializers.IntegerField()
    total_targets = serializers.IntegerField(source="target_count")
    failed_user_ids = serializers.ListField(child=serializers.IntegerField())
    invalid_user_ids = serializers.ListField(child=serializers.IntegerField())
    email_recipient_count = serializers.IntegerField()
    priority = serializers.CharField()


class BroadcastHistorySerializer(serializers.ModelSerializer):
    """One stored broadcast in the admin history list."""

    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = MessageBroadcast
        fields = [
            "id",
            "title",
            "content",
            "priority",
            "scope",
            "created_by",
            "created_by_name",
            "target_count",
            "sent_count",
            "invalid_user_ids",
            "failed_user_ids",
            "email_recipient_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_created_by_name(self, obj: MessageBroadcast) -> str | None:
        if obj.created_by is None:
            return None
        return obj.created_by.get_display_name()


class BroadcastRecipientSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    email = serializers.EmailField()
    display_name = serializers.CharField(source="get_display_name")
