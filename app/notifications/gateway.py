"""
Concrete EmailGateway for notification jobs.

NotificationEmailGateway maps each job type to a template under
`notifications/emails/` and sends it with toolkit's EmailService. Every
send is checked against the recipient's email preferences by address,
so a job that was queued before the user opted out is still suppressed.

Multi-recipient jobs (bulk and broadcast) go out as one message to
DEFAULT_FROM_EMAIL with everyone else in BCC.

Settings:
    NOTIFICATION_EMAIL_SUBJECTS: Overrides for the dedicated-template
        subjects, keyed by job type
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings

from notifications.models import NotificationCategory
from toolkit.helpers import mask_email
from toolkit.services.email import EmailService

if TYPE_CHECKING:
    from typing import Any

    from toolkit.protocols import PreferenceGateway

logger = logging.getLogger(__name__)

TEMPLATE_PREFIX = "notifications/emails"

DEFAULT_SUBJECTS = {
    "exchange_confirmation": "Your Exchange Order Confirmed",
    "exchange_status_update": "Your Exchange Order Status Updated",
    "activity_approved_notification": "Your Carbon Activity Approved!",
    "activity_rejected_notification": "Your Carbon Activity Rejected",
}

# Dedicated jobs carry no category of their own
DEDICATED_CATEGORIES = {
    "exchange_confirmation": NotificationCategory.TRANSACTION,
    "exchange_status_update": NotificationCategory.TRANSACTION,
    "activity_approved_notification": NotificationCategory.ACTIVITY,
    "activity_rejected_notification": NotificationCategory.ACTIVITY,
}


class NotificationEmailGateway:
    """
    Renders and sends the email for one job.

    Args:
        preferences: Used to drop recipients who opted out of the job's
            category. None disables the check.
        subjects: Subject overrides for dedicated templates
    """

    def __init__(
        self,
        preferences: PreferenceGateway | None = None,
        subjects: dict[str, str] | None = None,
    ):
        self.preferences = preferences
        self.subjects = {**DEFAULT_SUBJECTS, **(subjects or {})}
        self._handlers = {
            "message_notification": self._send_message,
            "message_notification_bulk": self._send_bulk,
            "broadcast_announcement": self._send_broadcast,
        }
        for job_type in DEDICATED_CATEGORIES:
            self._handlers[job_type] = self._send_dedicated

    @classmethod
    def from_settings(cls, preferences: PreferenceGateway | None) -> NotificationEmailGateway:
        return cls(
            preferences=preferences,
            subjects=getattr(settings, "NOTIFICATION_EMAIL_SUBJECTS", None),
        )

    def send(self, job_type: str, payload: dict[str, Any]) -> bool:
        handler = self._handlers.get(job_type)
        if handler is None:
            logger.warning(f"No email template for job type {job_type!r}")
            return False
        return handler(job_type, payload)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _send_message(self, job_type: str, payload: dict[str, Any]) -> bool:
        email = payload.get("email")
        if not self._allowed(email, payload.get("category")):
            logger.debug(
                f"{mask_email(email)} opted out of {payload.get('category')} emails"
            )
            return False

        return EmailService.send(
            to=email,
            subject=payload.get("subject") or "",
            template_name=f"{TEMPLATE_PREFIX}/message_notification",
            context=payload,
        )

    def _send_bulk(self, job_type: str, payload: dict[str, Any]) -> bool:
        addresses = self._filter_recipients(
            payload.get("recipients"), payload.get("category")
        )
        if not addresses:
            logger.debug("Bulk message email has no remaining recipients")
            return False

        return EmailService.send_bcc(
            recipients=addresses,
            subject=payload.get("subject") or "",
            template_name=f"{TEMPLATE_PREFIX}/message_notification",
            context={**payload, "name": None},
        )

    def _send_broadcast(self, job_type: str, payload: dict[str, Any]) -> bool:
        addresses = self._filter_recipients(
            payload.get("recipients"), NotificationCategory.ANNOUNCEMENT
        )
        if not addresses:
            logger.debug("Broadcast email has no remaining recipients")
            return False

        context = dict(payload.get("context") or {})
        context.update(
            title=payload.get("title"),
            content=payload.get("content"),
            priority=payload.get("priority"),
        )
        return EmailService.send_bcc(
            recipients=addresses,
            subject=payload.get("subject") or payload.get("title") or "",
            template_name=f"{TEMPLATE_PREFIX}/broadcast_announcement",
            context=context,
        )

    def _send_dedicated(self, job_type: str, payload: dict[str, Any]) -> bool:
        email = payload.get("email")
        category = DEDICATED_CATEGORIES[job_type]
        if not self._allowed(email, category):
            logger.debug(f"{mask_email(email)} opted out of {category} emails")
            return False

        return EmailService.send(
            to=email,
            subject=self.subjects[job_type],
            template_name=f"{TEMPLATE_PREFIX}/{job_type}",
            context=payload,
        )

    # -------------------------------------------------------------------------
    # Preference filtering
    # -------------------------------------------------------------------------

    def _allowed(self, email: str | None, category: str | None) -> bool:
        if self.preferences is None or not email:
            return bool(email)
        return self.preferences.should_send_by_email(email, category or "system")

    def _filter_recipients(self, recipients: Any, category: str | None) -> list[str]:
        if not isinstance(recipients, list):
            return []
        addresses = []
        for recipient in recipients:
            email = recipient.get("email") if isinstance(recipient, dict) else None
            if email and self._allowed(email, category):
                addresses.append(email)
        return addresses
