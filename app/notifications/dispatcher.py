"""
Notification dispatch.

MessageDispatcher is the entry point business code calls when something
happens that a user should hear about. Every call writes the in-app
message first. The email copy is decided afterwards and never makes the
call fail.

Single recipient (notify):
    1. Persist the Message (always)
    2. Stop if email is not allowed, no gateway is configured, the message
       type already has a dedicated email, or the user opted out
    3. Resolve address: injected resolver -> user lookup -> fallback address
    4. No address -> skip silently; otherwise queue a message_notification job

Fan-out (notify_batch / broadcast):
    1. Bulk-persist one row per valid recipient id
    2. Deduplicate addresses case-insensitively; recipients without one
       still get their in-app row
    3. Queue a single job for the whole list

Where jobs go:
    With a request-bound queue (see notifications.context) jobs wait for
    the end-of-request flush. Without one (Celery task, script) they run
    immediately.

Usage:
    from notifications.dispatcher import get_dispatcher

    dispatcher = get_dispatcher()
    dispatcher.notify(user.id, "Points credited", "You earned 12 points",
                      "system", priority="high")
    dispatcher.send_exchange_confirmation(user.id, "Bamboo bottle", 1, 300)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError

from notifications.context import get_current_queue
from notifications.jobs import (
    ActivityApprovedJob,
    ActivityRejectedJob,
    BroadcastAnnouncementJob,
    BulkMessageNotificationJob,
    ExchangeConfirmationJob,
    ExchangeStatusUpdateJob,
    MessageNotificationJob,
    Recipient,
)
from notifications.models import MessagePriority, MessageType, NotificationCategory
from notifications.preferences import PreferenceStore, classify
from notifications.runner import JobRunner
from notifications.store import MessageRow, MessageStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import Any

    from notifications.jobs import EmailJob
    from notifications.models import Message
    from toolkit.protocols import EmailGateway, ResolvedRecipient, UserResolver

logger = logging.getLogger(__name__)

# These types send a richer dedicated email from their own flow
SUPPRESSED_EMAIL_TYPES = frozenset(
    {
        MessageType.APPROVAL,
        MessageType.REJECTION,
        MessageType.EXCHANGE,
        MessageType.PRODUCT_EXCHANGED,
        MessageType.EXCHANGE_STATUS_UPDATED,
        MessageType.RECORD_APPROVED,
        MessageType.RECORD_REJECTED,
    }
)

SUBJECT_PREFIXES = {
    MessagePriority.URGENT: "[URGENT] ",
    MessagePriority.HIGH: "[HIGH] ",
}

DEFAULT_REJECTION_REASON = "See in-app notification for details."


def build_subject(title: str, priority: str | None) -> str:
    """Prefix the title with [URGENT]/[HIGH] according to priority."""
    return SUBJECT_PREFIXES.get(normalize_priority(priority), "") + title


def normalize_priority(priority: str | None) -> str:
    value = str(priority or "").strip().lower()
    if value in MessagePriority.values:
        return value
    return str(MessagePriority.NORMAL)


def dedupe_recipients(recipients: Iterable[dict[str, Any]]) -> tuple[Recipient, ...]:
    """
    Collapse recipients sharing an address (case-insensitive).

    The first occurrence wins. Blank addresses are dropped and blank
    names become None.
    """
    seen: set[str] = set()
    unique = []
    for recipient in recipients:
        email = str(recipient.get("email") or "").strip()
        if not email:
            continue
        key = email.lower()
        if key in seen:
            continue
        seen.add(key)
        name = recipient.get("name")
        unique.append(
            Recipient(
                email=email,
                name=str(name) if name not in (None, "") else None,
                user_id=recipient.get("user_id"),
            )
        )
    return tuple(unique)


def _valid_id(value: Any) -> int | None:
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        return None
    return user_id if user_id > 0 else None


def build_gateway(preferences: PreferenceStore | None = None) -> EmailGateway | None:
    """Gateway from settings, or None when email is switched off."""
    if not settings.NOTIFICATION_EMAIL_ENABLED:
        return None

    from notifications.gateway import NotificationEmailGateway

    return NotificationEmailGateway.from_settings(preferences or PreferenceStore())


def build_runner() -> JobRunner:
    return JobRunner(build_gateway())


@dataclass
class BroadcastOutcome:
    """Result of MessageDispatcher.broadcast()."""

    sent_count: int = 0
    failed_user_ids: list[int] = field(default_factory=list)
    email_recipient_count: int = 0


class MessageDispatcher:
    """
    Writes in-app messages and schedules their email copies.

    Args:
        store: Message persistence
        preferences: Email opt-out checks
        gateway: Email sender; None means email is disabled and only
            in-app messages are written
        user_resolver: Optional id -> {email, name} lookup tried before
            the built-in user query
        runner: Executes jobs when there is no request-bound queue
    """

    def __init__(
        self,
        store: MessageStore | None = None,
        preferences: PreferenceStore | None = None,
        gateway: EmailGateway | None = None,
        user_resolver: UserResolver | None = None,
        runner: JobRunner | None = None,
    ):
        self.store = store or MessageStore()
        self.preferences = preferences or PreferenceStore()
        self.gateway = gateway
        self.user_resolver = user_resolver
        self.runner = runner or JobRunner(gateway)

    # -------------------------------------------------------------------------
    # Single recipient
    # -------------------------------------------------------------------------

    def notify(
        self,
        receiver_id: int,
        title: str,
        content: str,
        category: str = "system",
        priority: str = "normal",
        *,
        allow_email: bool = True,
        sender_id: int | None = None,
        fallback_email: str | None = None,
        fallback_name: str | None = None,
    ) -> Message | None:
        """
        Send one in-app message and, if allowed, its email copy.

        Args:
            category: A message type or a category id

        Returns:
            The created Message, or None if it could not be stored
        """
        message_type, category = classify(category)
        priority = normalize_priority(priority)

        message = self._persist(
            receiver_id, title, content,
            sender_id=sender_id, priority=priority, message_type=message_type,
        )
        if message is None:
            return None

        if not allow_email or not self._email_enabled_for(message_type):
            return message

        try:
            self._queue_message_email(
                receiver_id, title, content, category, priority, message_type,
                fallback_email, fallback_name,
            )
        except Exception:
            logger.exception(f"Could not schedule email for message {message.pk}")
        return message

    def _queue_message_email(
        self, receiver_id, title, content, category, priority, message_type,
        fallback_email, fallback_name,
    ) -> None:
        if not self.preferences.should_send(receiver_id, category):
            logger.debug(f"User {receiver_id} opted out of {category} emails")
            return

        recipient = self.resolve_recipient(receiver_id, fallback_email, fallback_name)
        if recipient is None:
            logger.debug(f"No email address for user {receiver_id}, in-app only")
            return

        self._submit(
            MessageNotificationJob(
                email=recipient["email"],
                name=recipient["name"],
                subject=build_subject(title, priority),
                content=content,
                category=category,
                priority=priority,
                message_type=message_type,
            )
        )

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    def notify_batch(
        self,
        recipients: Iterable[dict[str, Any]],
        title: str,
        content: str,
        category: str = "system",
        priority: str = "normal",
        *,
        allow_email: bool = True,
        sender_id: int | None = None,
    ) -> int:
        """
        Same message to many users with a single email job.

        Args:
            recipients: [{"id", "email", "name"}, ...]; entries without a
                positive id are skipped entirely

        Returns:
            Number of in-app messages written
        """
        message_type, category = classify(category)
        priority = normalize_priority(priority)

        rows, addresses = self._rows_and_addresses(
            recipients, title, content, sender_id, priority, message_type
        )
        written = self.store.create_bulk(rows)

        if allow_email and self._email_enabled_for(message_type):
            unique = dedupe_recipients(addresses)
            if unique:
                self._submit(
                    BulkMessageNotificationJob(
                        recipients=unique,
                        subject=build_subject(title, priority),
                        content=content,
                        category=category,
                        priority=priority,
                        message_type=message_type,
                    )
                )

        logger.info(
            f"Batch notification '{title}': {len(written)}/{len(rows)} messages written"
        )
        return len(written)

    def broadcast(
        self,
        sender_id: int | None,
        title: str,
        content: str,
        priority: str,
        recipients: Iterable[dict[str, Any]],
        context: dict[str, Any] | None = None,
    ) -> BroadcastOutcome:
        """
        Admin announcement to many users.

        Email recipients are filtered by the announcement category when
        the email is sent, not here.
        """
        priority = normalize_priority(priority)
        rows, addresses = self._rows_and_addresses(
            recipients, title, content, sender_id, priority, MessageType.NOTIFICATION
        )
        written = self.store.create_bulk(rows)
        written_ids = set(written)

        outcome = BroadcastOutcome(
            sent_count=len(written),
            failed_user_ids=[r.receiver_id for r in rows if r.receiver_id not in written_ids],
        )

        if self.gateway is not None:
            unique = dedupe_recipients(addresses)
            outcome.email_recipient_count = len(unique)
            if unique:
                self._submit(
                    BroadcastAnnouncementJob(
                        recipients=unique,
                        title=title,
                        content=content,
                        subject=build_subject(title, priority),
                        priority=priority,
                        context=context,
                    )
                )

        logger.info(
            f"Broadcast '{title}': {outcome.sent_count} sent, "
            f"{len(outcome.failed_user_ids)} failed, "
            f"{outcome.email_recipient_count} email recipient(s)"
        )
        return outcome

    def _rows_and_addresses(
        self, recipients, title, content, sender_id, priority, message_type
    ) -> tuple[list[MessageRow], list[dict[str, Any]]]:
        rows = []
        addresses = []
        for recipient in recipients:
            user_id = _valid_id(recipient.get("id"))
            if user_id is None:
                logger.debug(f"Skipping batch recipient with invalid id {recipient.get('id')!r}")
                continue
            rows.append(
                MessageRow(
                    receiver_id=user_id,
                    sender_id=sender_id,
                    title=title,
                    content=content,
                    priority=priority,
                    message_type=message_type,
                )
            )
            addresses.append(
                {
                    "email": recipient.get("email"),
                    "name": recipient.get("name"),
                    "user_id": user_id,
                }
            )
        return rows, addresses

    # -------------------------------------------------------------------------
    # Dedicated templates
    # -------------------------------------------------------------------------

    def send_exchange_confirmation(
        self,
        user_id: int,
        product_name: str,
        quantity: int,
        points_spent: float,
    ) -> Message | None:
        message = self._persist(
            user_id,
            "Exchange confirmed",
            f"You exchanged {quantity} x {product_name} for {points_spent:g} points.",
            message_type=MessageType.EXCHANGE,
        )
        self._queue_dedicated(
            user_id,
            NotificationCategory.TRANSACTION,
            lambda r: ExchangeConfirmationJob(
                user_id=user_id,
                email=r["email"],
                name=r["name"],
                product_name=product_name,
                quantity=int(quantity),
                points_spent=float(points_spent),
            ),
        )
        return message

    def send_exchange_status_update(
        self,
        user_id: int,
        product_name: str,
        status: str,
        *,
        tracking_number: str | None = None,
        admin_notes: str | None = None,
    ) -> Message | None:
        notes = []
        if tracking_number:
            notes.append(f"Tracking number: {tracking_number}")
        if admin_notes:
            notes.append(admin_notes)
        notes_text = "\n".join(notes)

        content = f"Your order for {product_name} is now {status}."
        if notes_text:
            content = f"{content}\n{notes_text}"

        message = self._persist(
            user_id,
            "Exchange status updated",
            content,
            message_type=MessageType.EXCHANGE_STATUS_UPDATED,
        )
        self._queue_dedicated(
            user_id,
            NotificationCategory.TRANSACTION,
            lambda r: ExchangeStatusUpdateJob(
                user_id=user_id,
                email=r["email"],
                name=r["name"],
                product_name=product_name,
                status=status,
                notes=notes_text,
            ),
        )
        return message

    def send_activity_approved(
        self, user_id: int, activity_name: str, points: float
    ) -> Message | None:
        message = self._persist(
            user_id,
            "Activity approved",
            f'Your activity "{activity_name}" was approved. +{points:g} points.',
            message_type=MessageType.APPROVAL,
        )
        self._queue_dedicated(
            user_id,
            NotificationCategory.ACTIVITY,
            lambda r: ActivityApprovedJob(
                user_id=user_id,
                email=r["email"],
                name=r["name"],
                activity_name=activity_name,
                points=float(points),
            ),
        )
        return message

    def send_activity_rejected(
        self, user_id: int, activity_name: str, reason: str | None = None
    ) -> Message | None:
        content = f'Your activity "{activity_name}" was not approved.'
        if reason:
            content = f"{content} Reason: {reason}"

        message = self._persist(
            user_id, "Activity rejected", content, message_type=MessageType.REJECTION
        )
        self._queue_dedicated(
            user_id,
            NotificationCategory.ACTIVITY,
            lambda r: ActivityRejectedJob(
                user_id=user_id,
                email=r["email"],
                name=r["name"],
                activity_name=activity_name,
                reason=reason or DEFAULT_REJECTION_REASON,
            ),
        )
        return message

    def _queue_dedicated(
        self,
        user_id: int,
        category: str,
        build: Callable[[ResolvedRecipient], EmailJob],
    ) -> None:
        if self.gateway is None:
            return
        try:
            if not self.preferences.should_send(user_id, category):
                logger.debug(f"User {user_id} opted out of {category} emails")
                return
            recipient = self.resolve_recipient(user_id)
            if recipient is None:
                return
            self._submit(build(recipient))
        except Exception:
            logger.exception(f"Could not schedule {category} email for user {user_id}")

    # -------------------------------------------------------------------------
    # Shared helpers
    # -------------------------------------------------------------------------

    def resolve_recipient(
        self,
        user_id: int,
        fallback_email: str | None = None,
        fallback_name: str | None = None,
    ) -> ResolvedRecipient | None:
        """
        Find where to send a user's email.

        Order: injected resolver, direct user lookup, fallback address.
        """
        if user_id and user_id > 0:
            if self.user_resolver is not None:
                try:
                    resolved = self.user_resolver(user_id)
                except Exception as e:
                    logger.warning(f"User resolver failed for user {user_id}: {e}")
                    resolved = None
                email = str((resolved or {}).get("email") or "").strip()
                if email:
                    return {"email": email, "name": resolved.get("name") or email}

            user = self._lookup_user(user_id)
            if user is not None and user.email:
                return {"email": user.email, "name": user.get_display_name()}

        email = (fallback_email or "").strip()
        if email:
            return {"email": email, "name": fallback_name or email}
        return None

    @staticmethod
    def _lookup_user(user_id: int):
        from authentication.models import User

        try:
            return User.objects.deliverable().filter(pk=user_id).first()
        except DatabaseError as e:
            logger.warning(f"User lookup failed for user {user_id}: {e}")
            return None

    def _email_enabled_for(self, message_type: str) -> bool:
        return self.gateway is not None and message_type not in SUPPRESSED_EMAIL_TYPES

    def _persist(self, receiver_id, title, content, **kwargs) -> Message | None:
        try:
            return self.store.create(receiver_id, title, content, **kwargs)
        except Exception:
            logger.exception(f"Failed to store message for receiver {receiver_id}")
            return None

    def _submit(self, job: EmailJob) -> None:
        queue = get_current_queue()
        if queue is None:
            self.runner.run(job)
            return
        queue.enqueue(job)


def get_dispatcher() -> MessageDispatcher:
    """Dispatcher wired from settings, with fresh per-call caches."""
    preferences = PreferenceStore()
    return MessageDispatcher(
        store=MessageStore(),
        preferences=preferences,
        gateway=build_gateway(preferences),
    )
