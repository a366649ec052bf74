"""
Email job variants and their wire format.

Each job type is its own frozen dataclass. Jobs are built by the
dispatcher, held in memory for the rest of the request, and optionally
written to a temp file for a worker process.

Job types:
    message_notification              MessageNotificationJob
    message_notification_bulk         BulkMessageNotificationJob
    broadcast_announcement            BroadcastAnnouncementJob
    exchange_confirmation             ExchangeConfirmationJob
    exchange_status_update            ExchangeStatusUpdateJob
    activity_approved_notification    ActivityApprovedJob
    activity_rejected_notification    ActivityRejectedJob

Wire format (one file per flush batch, UTF-8 JSON):
    {"jobs": [{"job_type": "...", "payload": {...}}, ...]}

Parsing is lenient about optional fields (name defaults to the address,
priority to "normal", ...). Missing required fields are left empty and
rejected by the runner, which logs and skips the job. Structural problems
raise JobFormatError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

logger = logging.getLogger(__name__)


class JobFormatError(ValidationError):
    """A job or job document could not be parsed."""

    default_error_code = "INVALID_JOB"


# =============================================================================
# Payload helpers
# =============================================================================


def _text(payload: dict, key: str, default: str = "") -> str:
    value = payload.get(key)
    if value is None:
        return default
    return str(value).strip()


def _number(payload: dict, key: str, cast=float):
    try:
        return cast(payload.get(key) or 0)
    except (TypeError, ValueError):
        return cast(0)


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Recipient:
    """One address in a multi-recipient job."""

    email: str
    name: str | None = None
    user_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {"email": self.email, "name": self.name}
        if self.user_id is not None:
            data["user_id"] = self.user_id
        return data

    @classmethod
    def from_payload(cls, data: Any) -> Recipient | None:
        if not isinstance(data, dict):
            return None
        email = _text(data, "email")
        if not email:
            return None
        return cls(
            email=email,
            name=_text(data, "name") or None,
            user_id=_optional_int(data.get("user_id")),
        )


def _recipients(payload: dict) -> tuple[Recipient, ...]:
    raw = payload.get("recipients")
    if not isinstance(raw, list):
        return ()
    parsed = (Recipient.from_payload(item) for item in raw)
    return tuple(r for r in parsed if r is not None)


# =============================================================================
# Job variants
# =============================================================================


@dataclass(frozen=True)
class EmailJob:
    """Base class for all job variants."""

    job_type: ClassVar[str] = ""

    def to_payload(self) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> EmailJob:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return {"job_type": self.job_type, "payload": self.to_payload()}


@dataclass(frozen=True)
class MessageNotificationJob(EmailJob):
    """Email copy of one in-app message."""

    job_type: ClassVar[str] = "message_notification"

    email: str
    name: str
    subject: str
    content: str
    category: str = "system"
    priority: str = "normal"
    message_type: str = "system"

    def to_payload(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "name": self.name,
            "subject": self.subject,
            "content": self.content,
            "category": self.category,
            "priority": self.priority,
            "type": self.message_type,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> MessageNotificationJob:
        email = _text(payload, "email")
        return cls(
            email=email,
            name=_text(payload, "name") or email,
            subject=_text(payload, "subject"),
            content=str(payload.get("content") or ""),
            category=_text(payload, "category") or "system",
            priority=_text(payload, "priority") or "normal",
            message_type=_text(payload, "type") or "system",
        )


@dataclass(frozen=True)
class BulkMessageNotificationJob(EmailJob):
    """One email for a deduplicated set of message receivers."""

    job_type: ClassVar[str] = "message_notification_bulk"

    recipients: tuple[Recipient, ...]
    subject: str
    content: str
    category: str = "system"
    priority: str = "normal"
    message_type: str = "system"

    def to_payload(self) -> dict[str, Any]:
        return {
            "recipients": [r.to_payload() for r in self.recipients],
            "subject": self.subject,
            "content": self.content,
            "category": self.category,
            "priority": self.priority,
            "type": self.message_type,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> BulkMessageNotificationJob:
        return cls(
            recipients=_recipients(payload),
            subject=_text(payload, "subject"),
            content=str(payload.get("content") or ""),
            category=_text(payload, "category") or "system",
            priority=_text(payload, "priority") or "normal",
            message_type=_text(payload, "type") or "system",
        )


@dataclass(frozen=True)
class BroadcastAnnouncementJob(EmailJob):
    """Admin broadcast, sent as a single BCC email."""

    job_type: ClassVar[str] = "broadcast_announcement"

    recipients: tuple[Recipient, ...]
    title: str
    content: str
    subject: str
    priority: str = "normal"
    context: dict[str, Any] | None = field(default=None, compare=False)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "recipients": [r.to_payload() for r in self.recipients],
            "title": self.title,
            "content": self.content,
            "priority": self.priority,
            "subject": self.subject,
        }
        if self.context:
            payload["context"] = dict(self.context)
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> BroadcastAnnouncementJob:
        title = _text(payload, "title")
        context = payload.get("context")
        return cls(
            recipients=_recipients(payload),
            title=title,
            content=str(payload.get("content") or ""),
            subject=_text(payload, "subject") or title,
            priority=_text(payload, "priority") or "normal",
            context=context if isinstance(context, dict) else None,
        )


@dataclass(frozen=True)
class ExchangeConfirmationJob(EmailJob):
    """Receipt for a points-for-product exchange."""

    job_type: ClassVar[str] = "exchange_confirmation"

    user_id: int | None
    email: str
    name: str
    product_name: str
    quantity: int
    points_spent: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "points_spent": self.points_spent,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ExchangeConfirmationJob:
        email = _text(payload, "email")
        return cls(
            user_id=_optional_int(payload.get("user_id")),
            email=email,
            name=_text(payload, "name") or email,
            product_name=_text(payload, "product_name"),
            quantity=_number(payload, "quantity", int),
            points_spent=_number(payload, "points_spent"),
        )


@dataclass(frozen=True)
class ExchangeStatusUpdateJob(EmailJob):
    """Status change (shipped, cancelled, ...) on an exchange order."""

    job_type: ClassVar[str] = "exchange_status_update"

    user_id: int | None
    email: str
    name: str
    product_name: str
    status: str
    notes: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "product_name": self.product_name,
            "status": self.status,
            "notes": self.notes,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ExchangeStatusUpdateJob:
        email = _text(payload, "email")
        return cls(
            user_id=_optional_int(payload.get("user_id")),
            email=email,
            name=_text(payload, "name") or email,
            product_name=_text(payload, "product_name"),
            status=_text(payload, "status"),
            notes=str(payload.get("notes") or ""),
        )


@dataclass(frozen=True)
class ActivityApprovedJob(EmailJob):
    """A carbon activity was approved and points were awarded."""

    job_type: ClassVar[str] = "activity_approved_notification"

    user_id: int | None
    email: str
    name: str
    activity_name: str
    points: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "activity_name": self.activity_name,
            "points": self.points,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ActivityApprovedJob:
        email = _text(payload, "email")
        return cls(
            user_id=_optional_int(payload.get("user_id")),
            email=email,
            name=_text(payload, "name") or email,
            activity_name=_text(payload, "activity_name"),
            points=_number(payload, "points"),
        )


@dataclass(frozen=True)
class ActivityRejectedJob(EmailJob):
    """A carbon activity was rejected by a reviewer."""

    job_type: ClassVar[str] = "activity_rejected_notification"

    user_id: int | None
    email: str
    name: str
    activity_name: str
    reason: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "activity_name": self.activity_name,
            "reason": self.reason,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ActivityRejectedJob:
        email = _text(payload, "email")
        return cls(
            user_id=_optional_int(payload.get("user_id")),
            email=email,
            name=_text(payload, "name") or email,
            activity_name=_text(payload, "activity_name"),
            reason=_text(payload, "reason"),
        )


JOB_TYPES: dict[str, type[EmailJob]] = {
    job_class.job_type: job_class
    for job_class in (
        MessageNotificationJob,
        BulkMessageNotificationJob,
        BroadcastAnnouncementJob,
        ExchangeConfirmationJob,
        ExchangeStatusUpdateJob,
        ActivityApprovedJob,
        ActivityRejectedJob,
    )
}


# =============================================================================
# Wire format
# =============================================================================


def job_from_dict(data: Any) -> EmailJob:
    """
    Rebuild one job from its {"job_type", "payload"} form.

    Raises:
        JobFormatError: Not a dict, unknown job type, or payload not a dict
    """
    if not isinstance(data, dict):
        raise JobFormatError("Job entry is not an object")

    job_type = str(data.get("job_type") or "").strip()
    if not job_type:
        raise JobFormatError("Job entry has no job_type", error_code="MISSING_JOB_TYPE")

    job_class = JOB_TYPES.get(job_type)
    if job_class is None:
        raise JobFormatError(
            f"Unknown job type: {job_type}",
            error_code="UNKNOWN_JOB_TYPE",
            details={"job_type": job_type},
        )

    payload = data.get("payload")
    if not isinstance(payload, dict):
        raise JobFormatError(
            f"Payload for {job_type} is not an object",
            details={"job_type": job_type},
        )

    return job_class.from_payload(payload)


def serialize_batch(jobs: Iterable[EmailJob]) -> str:
    """Encode a batch as the job-file JSON document."""
    return json.dumps(
        {"jobs": [job.to_dict() for job in jobs]},
        ensure_ascii=False,
    )


def deserialize_batch(text: str) -> list[EmailJob]:
    """
    Decode a job-file document.

    Entries that fail to parse are logged and skipped so one bad entry
    doesn't cost the rest of the batch.

    Raises:
        JobFormatError: Invalid JSON, or no top-level "jobs" list
    """
    try:
        document = json.loads(text)
    except ValueError as e:
        raise JobFormatError(f"Job file is not valid JSON: {e}", error_code="BAD_JOB_FILE")

    if not isinstance(document, dict) or not isinstance(document.get("jobs"), list):
        raise JobFormatError("Job file has no 'jobs' list", error_code="BAD_JOB_FILE")

    jobs = []
    for index, entry in enumerate(document["jobs"]):
        try:
            jobs.append(job_from_dict(entry))
        except JobFormatError as e:
            logger.warning(f"Skipping job #{index} in batch: {e}")
    return jobs
