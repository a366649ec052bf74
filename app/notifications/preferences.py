"""
Email preference resolution.

This module decides, per user and per category, whether an email copy of
a notification may be sent.

Categories:
    verification, security, message  -> locked (always sent)
    system, transaction, activity, announcement -> optional (user can opt out)

Storage:
    One UserEmailPreference row per user holding a bitmask of disabled
    optional categories. No row means every category is enabled.

Design Decisions:
    - Fail open: unknown categories, unknown addresses and read errors
      all resolve to "send"
    - Locked categories are enforced on read and on write; an attempt to
      disable one is dropped without error
    - Reads are cached on the PreferenceStore instance. A write only
      invalidates that user's entry. Other processes may see a stale
      value until their own store instance is discarded.

Usage:
    from notifications.preferences import PreferenceStore

    store = PreferenceStore()
    if store.should_send(user.id, "transaction"):
        ...

    store.update_preferences(user.id, [
        {"category": "announcement", "enabled": False},
    ])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import DatabaseError

from notifications.models import MessageType, NotificationCategory

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryDefinition:
    """
    One entry of the category catalog.

    Attributes:
        id: Category key (NotificationCategory value)
        label: Human readable label
        locked: True if users cannot opt out
    """

    id: str
    label: str
    locked: bool


_LOCKED = {
    NotificationCategory.VERIFICATION,
    NotificationCategory.SECURITY,
    NotificationCategory.MESSAGE,
}

CATEGORIES: dict[str, CategoryDefinition] = {
    choice.value: CategoryDefinition(
        id=choice.value,
        label=choice.label,
        locked=choice in _LOCKED,
    )
    for choice in NotificationCategory
}

# Bit positions are persisted; never renumber.
CATEGORY_BITS: dict[str, int] = {
    NotificationCategory.SYSTEM: 1 << 0,
    NotificationCategory.TRANSACTION: 1 << 1,
    NotificationCategory.ACTIVITY: 1 << 2,
    NotificationCategory.ANNOUNCEMENT: 1 << 3,
}

TYPE_CATEGORY_MAP: dict[str, str] = {
    MessageType.SYSTEM: NotificationCategory.SYSTEM,
    MessageType.NOTIFICATION: NotificationCategory.SYSTEM,
    MessageType.WELCOME: NotificationCategory.SYSTEM,
    MessageType.REMINDER: NotificationCategory.SYSTEM,
    MessageType.APPROVAL: NotificationCategory.ACTIVITY,
    MessageType.REJECTION: NotificationCategory.ACTIVITY,
    MessageType.RECORD_SUBMITTED: NotificationCategory.ACTIVITY,
    MessageType.RECORD_APPROVED: NotificationCategory.ACTIVITY,
    MessageType.RECORD_REJECTED: NotificationCategory.ACTIVITY,
    MessageType.NEW_RECORD_PENDING: NotificationCategory.ACTIVITY,
    MessageType.EXCHANGE: NotificationCategory.TRANSACTION,
    MessageType.PRODUCT_EXCHANGED: NotificationCategory.TRANSACTION,
    MessageType.NEW_EXCHANGE_PENDING: NotificationCategory.TRANSACTION,
    MessageType.EXCHANGE_STATUS_UPDATED: NotificationCategory.TRANSACTION,
    MessageType.DIRECT_MESSAGE: NotificationCategory.MESSAGE,
    MessageType.MESSAGE: NotificationCategory.MESSAGE,
}

# Message type stored when a caller names a category instead of a type.
CATEGORY_DEFAULT_TYPE: dict[str, str] = {
    NotificationCategory.VERIFICATION: MessageType.SYSTEM,
    NotificationCategory.SECURITY: MessageType.SYSTEM,
    NotificationCategory.SYSTEM: MessageType.SYSTEM,
    NotificationCategory.TRANSACTION: MessageType.NEW_EXCHANGE_PENDING,
    NotificationCategory.ACTIVITY: MessageType.NEW_RECORD_PENDING,
    NotificationCategory.ANNOUNCEMENT: MessageType.NOTIFICATION,
    NotificationCategory.MESSAGE: MessageType.MESSAGE,
}


def _normalize(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def resolve_category(message_type: str | None) -> str:
    """
    Map a message type to its preference category.

    Empty or unknown types resolve to "system".
    """
    return str(
        TYPE_CATEGORY_MAP.get(_normalize(message_type), NotificationCategory.SYSTEM)
    )


def classify(value: str | None) -> tuple[str, str]:
    """
    Accept either a message type or a category and return both.

    Message types win when a value is both (e.g. "system", "message").

    Returns:
        (message_type, category)
    """
    key = _normalize(value)
    if key in TYPE_CATEGORY_MAP:
        return key, str(TYPE_CATEGORY_MAP[key])
    if key in CATEGORIES:
        return str(CATEGORY_DEFAULT_TYPE[key]), key
    return str(MessageType.SYSTEM), str(NotificationCategory.SYSTEM)


def is_locked(category: str | None) -> bool:
    definition = CATEGORIES.get(_normalize(category))
    return definition is not None and definition.locked


class PreferenceStore:
    """
    Per-user, per-category email opt-out state.

    One instance is meant to live for a single request (or a single worker
    run). Its caches are plain dicts with no cross-process invalidation.
    """

    def __init__(self) -> None:
        self._mask_cache: dict[int, int] = {}
        # email -> user id, 0 meaning "no account"
        self._email_cache: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def should_send(self, user_id: int, category: str | None) -> bool:
        """
        Check whether `user_id` accepts emails in `category`.

        Unknown and locked categories always return True.
        """
        key = _normalize(category)
        definition = CATEGORIES.get(key)
        if definition is None or definition.locked:
            return True

        return not (self._get_mask(user_id) & CATEGORY_BITS[key])

    def should_send_by_email(self, email: str | None, category: str | None) -> bool:
        """
        Same check as should_send(), keyed by address.

        Addresses that belong to no active account default to True.
        """
        key = _normalize(category)
        definition = CATEGORIES.get(key)
        if definition is None or definition.locked:
            return True

        address = _normalize(email)
        if not address:
            return True

        user_id = self._user_id_for_email(address)
        if not user_id:
            return True

        return self.should_send(user_id, key)

    def list_for_user(self, user_id: int) -> list[dict[str, Any]]:
        """
        Full category list with the user's current state.

        Returns:
            [{"category", "label", "locked", "enabled"}, ...] in catalog order
        """
        mask = self._get_mask(user_id)
        preferences = []
        for definition in CATEGORIES.values():
            if definition.locked:
                enabled = True
            else:
                enabled = not (mask & CATEGORY_BITS[definition.id])
            preferences.append(
                {
                    "category": definition.id,
                    "label": definition.label,
                    "locked": definition.locked,
                    "enabled": enabled,
                }
            )
        return preferences

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def update_preferences(
        self,
        user_id: int,
        entries: Iterable[dict[str, Any]],
    ) -> None:
        """
        Apply a list of {category, enabled} toggles.

        Entries for unknown or locked categories are dropped. The row is
        only written when the resulting mask differs from the stored one.
        `email_enabled` is accepted as an alias of `enabled`.

        Raises:
            DatabaseError: If the write fails (logged first)
        """
        from notifications.models import UserEmailPreference

        stored = (
            UserEmailPreference.objects.filter(user_id=user_id)
            .values_list("disabled_mask", flat=True)
            .first()
        )
        current = stored or 0
        mask = current

        for entry in entries:
            if not isinstance(entry, dict):
                continue
            key = _normalize(entry.get("category"))
            definition = CATEGORIES.get(key)
            if definition is None or definition.locked:
                continue

            if "enabled" in entry:
                enabled = bool(entry["enabled"])
            else:
                enabled = bool(entry.get("email_enabled", True))

            if enabled:
                mask &= ~CATEGORY_BITS[key]
            else:
                mask |= CATEGORY_BITS[key]

        if mask != current:
            try:
                UserEmailPreference.objects.update_or_create(
                    user_id=user_id,
                    defaults={"disabled_mask": mask},
                )
            except DatabaseError as e:
                logger.error(f"Failed to update email preferences for user {user_id}: {e}")
                raise
            logger.info(f"Email preferences for user {user_id} set to mask {mask}")

        self._mask_cache[user_id] = mask

    def invalidate(self, user_id: int) -> None:
        """Drop the cached mask for one user."""
        self._mask_cache.pop(user_id, None)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _get_mask(self, user_id: int) -> int:
        if user_id in self._mask_cache:
            return self._mask_cache[user_id]

        from notifications.models import UserEmailPreference

        try:
            stored = (
                UserEmailPreference.objects.filter(user_id=user_id)
                .values_list("disabled_mask", flat=True)
                .first()
            )
        except DatabaseError as e:
            # Not cached, so the next call retries
            logger.warning(
                f"Could not read email preferences for user {user_id}, "
                f"assuming all enabled: {e}"
            )
            return 0

        mask = stored or 0
        self._mask_cache[user_id] = mask
        return mask

    def _user_id_for_email(self, address: str) -> int:
        if address in self._email_cache:
            return self._email_cache[address]

        from authentication.models import User

        try:
            user_id = (
                User.objects.filter(email__iexact=address, is_deleted=False)
                .values_list("id", flat=True)
                .first()
            )
        except DatabaseError as e:
            logger.warning(f"User lookup by email failed, allowing send: {e}")
            return 0

        self._email_cache[address] = user_id or 0
        return user_id or 0
