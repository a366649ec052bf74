# Generated manually - Messages, email preferences and broadcast history

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

PRIORITY_CHOICES = [
    ("low", "Low"),
    ("normal", "Normal"),
    ("high", "High"),
    ("urgent", "Urgent"),
]

MESSAGE_TYPE_CHOICES = [
    ("system", "System"),
    ("notification", "Notification"),
    ("welcome", "Welcome"),
    ("reminder", "Reminder"),
    ("approval", "Approval"),
    ("rejection", "Rejection"),
    ("record_submitted", "Record submitted"),
    ("record_approved", "Record approved"),
    ("record_rejected", "Record rejected"),
    ("new_record_pending", "New record pending"),
    ("exchange", "Exchange"),
    ("product_exchanged", "Product exchanged"),
    ("new_exchange_pending", "New exchange pending"),
    ("exchange_status_updated", "Exchange status updated"),
    ("direct_message", "Direct message"),
    ("message", "Message"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Message",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "is_deleted",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether this record has been soft deleted",
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True,
                        null=True,
                        help_text="When this record was soft deleted",
                    ),
                ),
                ("title", models.CharField(help_text="Message heading", max_length=255)),
                ("content", models.TextField(help_text="Message body")),
                (
                    "message_type",
                    models.CharField(
                        choices=MESSAGE_TYPE_CHOICES,
                        default="system",
                        help_text="Business event that produced the message",
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=PRIORITY_CHOICES,
                        default="normal",
                        help_text="Message priority",
                        max_length=10,
                    ),
                ),
                (
                    "is_read",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the receiver has read the message",
                    ),
                ),
                (
                    "read_at",
                    models.DateTimeField(
                        blank=True,
                        null=True,
                        help_text="When the message was marked read",
                    ),
                ),
                (
                    "receiver",
                    models.ForeignKey(
                        help_text="User who receives the message",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        help_text="User who sent the message, null for system messages",
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sent_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "notifications_message",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["receiver", "is_read", "-created_at"],
                        name="msg_receiver_unread_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserEmailPreference",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="email_preference",
                        serialize=False,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "disabled_mask",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Bitmask of disabled optional email categories",
                    ),
                ),
            ],
            options={
                "db_table": "notifications_user_email_preference",
                "verbose_name": "user email preference",
                "verbose_name_plural": "user email preferences",
            },
        ),
        migrations.CreateModel(
            name="MessageBroadcast",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("content", models.TextField()),
                (
                    "priority",
                    models.CharField(
                        choices=PRIORITY_CHOICES, default="normal", max_length=10
                    ),
                ),
                (
                    "scope",
                    models.CharField(
                        choices=[("all", "All users"), ("selected", "Selected users")],
                        default="all",
                        max_length=10,
                    ),
                ),
                ("target_count", models.PositiveIntegerField(default=0)),
                ("sent_count", models.PositiveIntegerField(default=0)),
                ("invalid_user_ids", models.JSONField(blank=True, default=list)),
                ("failed_user_ids", models.JSONField(blank=True, default=list)),
                ("email_recipient_count", models.PositiveIntegerField(default=0)),
                (
                    "created_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="broadcasts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "notifications_message_broadcast",
                "ordering": ["-created_at"],
            },
        ),
    ]
