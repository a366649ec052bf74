"""
Notification system models.

This module defines the persistent side of the notification pipeline:
- Message: In-app message delivered to one receiver
- UserEmailPreference: Per-user bitmask of disabled optional email categories
- MessageBroadcast: History of admin broadcasts

Design Decisions:
    - Message rows are receiver-scoped and soft deleted per reader
    - Sender uses SET_NULL (preserve the message when the sender is deleted)
    - Preferences are one compact row per user; no row means everything
      is enabled
    - Email jobs are never stored here. They live in memory for the
      duration of a request or in a temp file handed to a worker.

Usage:
    from notifications.models import Message, MessagePriority

    message = Message.objects.create(
        receiver=user,
        title="Your activity was approved",
        content="Cycling to work: +12 points",
        message_type=MessageType.APPROVAL,
        priority=MessagePriority.NORMAL,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel


# =============================================================================
# Enums
# =============================================================================


class MessagePriority(models.TextChoices):
    """Priority of a message. High and urgent prefix the email subject."""

    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class MessageType(models.TextChoices):
    """
    Business event that produced a message.

    Each type maps to a NotificationCategory (see
    notifications.preferences.TYPE_CATEGORY_MAP).
    """

    SYSTEM = "system", "System"
    NOTIFICATION = "notification", "Notification"
    WELCOME = "welcome", "Welcome"
    REMINDER = "reminder", "Reminder"
    APPROVAL = "approval", "Approval"
    REJECTION = "rejection", "Rejection"
    RECORD_SUBMITTED = "record_submitted", "Record submitted"
    RECORD_APPROVED = "record_approved", "Record approved"
    RECORD_REJECTED = "record_rejected", "Record rejected"
    NEW_RECORD_PENDING = "new_record_pending", "New record pending"
    EXCHANGE = "exchange", "Exchange"
    PRODUCT_EXCHANGED = "product_exchanged", "Product exchanged"
    NEW_EXCHANGE_PENDING = "new_exchange_pending", "New exchange pending"
    EXCHANGE_STATUS_UPDATED = "exchange_status_updated", "Exchange status updated"
    DIRECT_MESSAGE = "direct_message", "Direct message"
    MESSAGE = "message", "Message"


class NotificationCategory(models.TextChoices):
    """
    Email preference categories.

    Labels are shown on the preferences screen. Which categories are
    locked (cannot be disabled) is defined in notifications.preferences.
    """

    VERIFICATION = "verification", "Account verification"
    SECURITY = "security", "Security alerts"
    SYSTEM = "system", "System updates"
    TRANSACTION = "transaction", "Point exchanges"
    ACTIVITY = "activity", "Activity reviews"
    ANNOUNCEMENT = "announcement", "Announcements"
    MESSAGE = "message", "Direct messages"


class BroadcastScope(models.TextChoices):
    ALL = "all", "All users"
    SELECTED = "selected", "Selected users"


# =============================================================================
# Models
# =============================================================================


class Message(SoftDeleteMixin, BaseModel):
    """
    In-app message for one receiver.

    Created unconditionally by every notification event; the email copy
    is optional and decided separately.

    Fields:
        sender: User who sent the message (null for system messages)
        receiver: User who sees the message (scopes all queries)
        title: Short heading, also used as the email subject
        content: Message body
        message_type: Business event that produced the message
        priority: low/normal/high/urgent
        is_read: Whether the receiver has opened it
        read_at: When it was first marked read

    Managers:
        objects: Excludes soft-deleted rows
        all_objects: Includes soft-deleted rows
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_messages",
        help_text="User who sent the message, null for system messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="User who receives the message",
    )
    title = models.CharField(
        max_length=255,
        help_text="Message heading",
    )
    content = models.TextField(
        help_text="Message body",
    )
    message_type = models.CharField(
        max_length=32,
        choices=MessageType.choices,
        default=MessageType.SYSTEM,
        help_text="Business event that produced the message",
    )
    priority = models.CharField(
        max_length=10,
        choices=MessagePriority.choices,
        default=MessagePriority.NORMAL,
        help_text="Message priority",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether the receiver has read the message",
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the message was marked read",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        db_table = "notifications_message"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["receiver", "is_read", "-created_at"],
                name="msg_receiver_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} -> {self.receiver_id}"


class UserEmailPreference(BaseModel):
    """
    Per-user email opt-outs for optional categories.

    Fields:
        user: Owner (also the primary key)
        disabled_mask: Bitmask of disabled optional categories

    Note:
        Locked categories have no bit and can never be disabled. The
        bit layout lives in notifications.preferences.CATEGORY_BITS.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="email_preference",
    )
    disabled_mask = models.PositiveIntegerField(
        default=0,
        help_text="Bitmask of disabled optional email categories",
    )

    class Meta:
        db_table = "notifications_user_email_preference"
        verbose_name = "user email preference"
        verbose_name_plural = "user email preferences"

    def __str__(self) -> str:
        return f"EmailPreference(user={self.user_id}, mask={self.disabled_mask})"


class MessageBroadcast(BaseModel):
    """
    Record of one admin broadcast.

    Fields:
        created_by: Admin who sent it
        title/content/priority: What was sent
        scope: Everyone, or an explicit list of users
        target_count: Number of users targeted after validation
        sent_count: In-app messages actually written
        invalid_user_ids: Requested ids that do not exist
        failed_user_ids: Targeted ids whose message could not be written
        email_recipient_count: Distinct addresses in the broadcast email job
    """

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="broadcasts",
    )
    title = models.CharField(max_length=255)
    content = models.TextField()
    priority = models.CharField(
        max_length=10,
        choices=MessagePriority.choices,
        default=MessagePriority.NORMAL,
    )
    scope = models.CharField(
        max_length=10,
        choices=BroadcastScope.choices,
        default=BroadcastScope.ALL,
    )
    target_count = models.PositiveIntegerField(default=0)
    sent_count = models.PositiveIntegerField(default=0)
    invalid_user_ids = models.JSONField(default=list, blank=True)
    failed_user_ids = models.JSONField(default=list, blank=True)
    email_recipient_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "notifications_message_broadcast"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Broadcast({self.title!r}, sent={self.sent_count})"
