"""
In-app message persistence.

MessageStore writes Message rows for the dispatcher. The bulk path is
built for admin fan-out: one bad row must never drop the whole batch.

Bulk strategy:
    1. One multi-row INSERT (bulk_create) inside a transaction
    2. On any failure, log it and insert rows one at a time, each in its
       own savepoint, logging and skipping the rows that still fail

Usage:
    from notifications.store import MessageRow, MessageStore

    store = MessageStore()
    message = store.create(receiver_id=42, title="Hi", content="body")

    created = store.create_bulk([
        MessageRow(receiver_id=1, title="Heads up", content="..."),
        MessageRow(receiver_id=2, title="Heads up", content="..."),
    ])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction

from notifications.models import Message, MessagePriority, MessageType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageRow:
    """One message to insert via create_bulk()."""

    receiver_id: int
    title: str
    content: str
    sender_id: int | None = None
    priority: str = MessagePriority.NORMAL
    message_type: str = MessageType.SYSTEM

    def to_instance(self) -> Message:
        return Message(
            receiver_id=self.receiver_id,
            sender_id=self.sender_id,
            title=self.title,
            content=self.content,
            priority=self.priority,
            message_type=self.message_type,
        )


class MessageStore:
    """Creates Message rows, singly or in bulk."""

    def create(
        self,
        receiver_id: int,
        title: str,
        content: str,
        *,
        sender_id: int | None = None,
        priority: str = MessagePriority.NORMAL,
        message_type: str = MessageType.SYSTEM,
    ) -> Message:
        """
        Insert one message.

        Raises:
            DatabaseError: Propagated; the single path has no fallback
        """
        return Message.objects.create(
            receiver_id=receiver_id,
            sender_id=sender_id,
            title=title,
            content=content,
            priority=priority,
            message_type=message_type,
        )

    def create_bulk(self, rows: list[MessageRow]) -> list[int]:
        """
        Insert many messages, isolating failures per row.

        Returns:
            Receiver ids whose message was written, in input order
        """
        if not rows:
            return []

        try:
            with transaction.atomic():
                Message.objects.bulk_create([row.to_instance() for row in rows])
            return [row.receiver_id for row in rows]
        except Exception as e:
            logger.error(
                f"Bulk insert of {len(rows)} messages failed, "
                f"falling back to per-row inserts: {e}"
            )

        written = []
        for row in rows:
            try:
                with transaction.atomic():
                    row.to_instance().save()
            except Exception as e:
                logger.error(
                    f"Failed to create message for receiver {row.receiver_id}: {e}"
                )
                continue
            written.append(row.receiver_id)

        logger.info(f"Per-row fallback wrote {len(written)}/{len(rows)} messages")
        return written
