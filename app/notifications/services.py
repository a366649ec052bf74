"""
Notification service layer.

Request-facing operations on a user's messages, preferences and admin
broadcasts. Views call these and map the ServiceResult to a response.

Services:
    MessageService: Read state, deletion and counts for one receiver
    PreferenceService: Email category preferences for one user
    BroadcastService: Admin announcements to all or selected users

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Every query is scoped to the requesting user
    - Sending goes through notifications.dispatcher; nothing here talks
      to the email gateway directly

Usage:
    from notifications.services import BroadcastService, MessageService

    result = MessageService.mark_as_read(request.user, message_id)
    if not result:
        return Response(result.to_response(), status=404)

    result = BroadcastService.send_system_message(
        admin, title="Maintenance", content="Tonight 22:00 UTC",
        priority="high", target_user_ids=[3, 4, 5],
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import DatabaseError
from django.utils import timezone

from core.services import BaseService, ServiceResult

from notifications.dispatcher import get_dispatcher
from notifications.models import (
    BroadcastScope,
    Message,
    MessageBroadcast,
    MessagePriority,
)
from notifications.preferences import PreferenceStore

RECIPIENT_SEARCH_LIMIT = 20

if TYPE_CHECKING:
    from collections.abc import Iterable

    from authentication.models import User
    from notifications.dispatcher import MessageDispatcher


class MessageService(BaseService):
    """
    Service for a receiver's in-app messages.

    Methods:
        mark_as_read: Mark one message as read
        mark_all_as_read: Mark every unread message as read
        delete_message: Soft-delete one message
        unread_count: Number of unread messages
        notify_admins: Same message to every staff user
    """

    @classmethod
    def _get_owned(cls, user: User, message_id: int) -> Message | None:
        return Message.objects.filter(pk=message_id, receiver=user).first()

    @classmethod
    def mark_as_read(cls, user: User, message_id: int) -> ServiceResult[Message]:
        """
        Mark a single message as read.

        Idempotent: read_at keeps the time of the first read.

        Error codes:
            MESSAGE_NOT_FOUND: No such message for this user
        """
        message = cls._get_owned(user, message_id)
        if message is None:
            return ServiceResult.failure(
                "Message not found", error_code="MESSAGE_NOT_FOUND"
            )

        if not message.is_read:
            message.is_read = True
            message.read_at = timezone.now()
            message.save(update_fields=["is_read", "read_at", "updated_at"])
            cls.get_logger().debug(f"Marked message {message.pk} as read")

        return ServiceResult.success(message)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        """Bulk-mark the user's unread messages; returns how many changed."""
        now = timezone.now()
        count = Message.objects.filter(receiver=user, is_read=False).update(
            is_read=True, read_at=now, updated_at=now
        )
        cls.get_logger().info(f"Marked {count} messages as read for user {user.pk}")
        return ServiceResult.success(count)

    @classmethod
    def delete_message(cls, user: User, message_id: int) -> ServiceResult[None]:
        """
        Soft-delete one message.

        Error codes:
            MESSAGE_NOT_FOUND: No such message for this user
        """
        message = cls._get_owned(user, message_id)
        if message is None:
            return ServiceResult.failure(
                "Message not found", error_code="MESSAGE_NOT_FOUND"
            )

        message.soft_delete()
        cls.get_logger().info(f"User {user.pk} deleted message {message.pk}")
        return ServiceResult.success(None)

    @classmethod
    def unread_count(cls, user: User) -> ServiceResult[int]:
        return ServiceResult.success(
            Message.objects.filter(receiver=user, is_read=False).count()
        )

    @classmethod
    def notify_admins(
        cls,
        title: str,
        content: str,
        category: str = "system",
        priority: str = MessagePriority.NORMAL,
        dispatcher: MessageDispatcher | None = None,
    ) -> ServiceResult[int]:
        """
        Send the same message to every active staff user.

        One bulk email job is queued for the whole staff list.

        Returns:
            ServiceResult with the number of in-app messages written
        """
        from authentication.models import User

        admins = User.objects.deliverable().filter(is_staff=True)
        recipients = [
            {"id": admin.pk, "email": admin.email, "name": admin.get_display_name()}
            for admin in admins
        ]
        if not recipients:
            cls.get_logger().info(f"No staff users to notify about '{title}'")
            return ServiceResult.success(0)

        dispatcher = dispatcher or get_dispatcher()
        written = dispatcher.notify_batch(
            recipients, title, content, category, priority
        )
        return ServiceResult.success(written)


class PreferenceService(BaseService):
    """
    Service for email category preferences.

    Methods:
        get_preferences: Preference list for display
        update_preferences: Apply changes and return the new list
    """

    @classmethod
    def get_preferences(cls, user: User) -> ServiceResult[list[dict]]:
        return ServiceResult.success(PreferenceStore().list_for_user(user.pk))

    @classmethod
    def update_preferences(
        cls, user: User, entries: Iterable[dict]
    ) -> ServiceResult[list[dict]]:
        """
        Apply category toggles.

        Unknown and locked categories are ignored rather than rejected.
        """
        store = PreferenceStore()
        store.update_preferences(user.pk, entries)
        return ServiceResult.success(store.list_for_user(user.pk))


class BroadcastService(BaseService):
    """
    Service for admin broadcasts.

    Methods:
        send_system_message: Validate targets, fan out, record the broadcast
        search_recipients: Deliverable users matching a search, for targeting
    """

    @classmethod
    def send_system_message(
        cls,
        sender: User,
        title: str,
        content: str,
        priority: str = MessagePriority.NORMAL,
        target_user_ids: list[int] | None = None,
        dispatcher: MessageDispatcher | None = None,
    ) -> ServiceResult[MessageBroadcast]:
        """
        Send an announcement to selected users, or everyone.

        Implementation:
            1. Resolve targets (explicit ids, or every deliverable user)
            2. Report requested ids that do not resolve
            3. Fan out through the dispatcher (one in-app row per target,
               one broadcast email job)
            4. Store a MessageBroadcast record with the outcome

        Args:
            sender: Admin sending the broadcast
            target_user_ids: None or empty targets every active user

        Returns:
            ServiceResult with the saved MessageBroadcast

        Error codes:
            VALIDATION_ERROR: Missing title or content, or bad priority
            NO_TARGETS: No requested id resolves to a deliverable user
        """
        from authentication.models import User

        validation = cls.validate_required(title=title, content=content)
        if validation:
            return validation
        if priority not in MessagePriority.values:
            return ServiceResult.failure(
                "Invalid priority",
                error_code="VALIDATION_ERROR",
                errors={"priority": [f"Must be one of {', '.join(MessagePriority.values)}."]},
            )

        users = User.objects.deliverable()
        invalid_ids: list[int] = []
        if target_user_ids:
            requested = list(dict.fromkeys(target_user_ids))
            users = users.filter(pk__in=requested)
            found = set(users.values_list("pk", flat=True))
            invalid_ids = [pk for pk in requested if pk not in found]
            scope = BroadcastScope.SELECTED
        else:
            scope = BroadcastScope.ALL

        recipients = [
            {"id": user.pk, "email": user.email, "name": user.get_display_name()}
            for user in users.order_by("pk")
        ]
        if not recipients:
            cls.get_logger().info(f"Broadcast '{title}' has no deliverable targets")
            return ServiceResult.failure(
                "No valid target users", error_code="NO_TARGETS"
            )

        dispatcher = dispatcher or get_dispatcher()
        outcome = dispatcher.broadcast(
            sender.pk, title, content, priority, recipients
        )

        try:
            with cls.atomic():
                broadcast = MessageBroadcast.objects.create(
                    created_by=sender,
                    title=title,
                    content=content,
                    priority=priority,
                    scope=scope,
                    target_count=len(recipients),
                    sent_count=outcome.sent_count,
                    invalid_user_ids=invalid_ids,
                    failed_user_ids=outcome.failed_user_ids,
                    email_recipient_count=outcome.email_recipient_count,
                )
        except DatabaseError as e:
            # Messages and the email job are already out; only the record is lost
            return cls.handle_exception(
                e,
                context=f"Broadcast '{title}' sent but not recorded",
                error_code="BROADCAST_NOT_RECORDED",
            )

        cls.get_logger().info(
            f"Broadcast {broadcast.pk} by user {sender.pk}: "
            f"{outcome.sent_count}/{len(recipients)} sent, "
            f"{len(invalid_ids)} invalid id(s)"
        )
        return ServiceResult.success(broadcast)

    @classmethod
    def search_recipients(
        cls, query: str = "", limit: int = RECIPIENT_SEARCH_LIMIT
    ) -> ServiceResult[list[User]]:
        """
        Find deliverable users to pick as broadcast targets.

        Matches email, username or name (case-insensitive), or the user
        id when the query is numeric. An empty query lists the first
        users by id.

        Args:
            query: Search text
            limit: Maximum results, capped at RECIPIENT_SEARCH_LIMIT
        """
        from django.db.models import Q

        from authentication.models import User

        limit = max(1, min(limit, RECIPIENT_SEARCH_LIMIT))
        users = User.objects.deliverable()

        query = query.strip()
        if query:
            match = (
                Q(email__icontains=query)
                | Q(username__icontains=query)
                | Q(name__icontains=query)
            )
            if query.isdigit():
                match |= Q(pk=int(query))
            users = users.filter(match)

        return ServiceResult.success(list(users.order_by("pk")[:limit]))
