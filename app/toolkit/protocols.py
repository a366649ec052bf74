"""
Protocol definitions (interfaces) for the notification pipeline's collaborators.

The dispatch core never imports a concrete mailer or user lookup. It is
handed objects that satisfy these protocols, which keeps the core testable
with plain fakes and lets the worker process build its own instances.

Available Protocols:
    EmailGateway: Performs the send for one job (render + transport)
    UserResolver: Maps a user id to a delivery address and display name
    PreferenceGateway: Per-category email opt-out check by address

Usage:
    from toolkit.protocols import EmailGateway

    class RecordingGateway:
        def __init__(self):
            self.sent = []

        def send(self, job_type: str, payload: dict) -> bool:
            self.sent.append((job_type, payload))
            return True

    gateway: EmailGateway = RecordingGateway()

Note:
    - @runtime_checkable allows isinstance() checks
    - Implementations live in notifications.gateway, notifications.dispatcher
      and notifications.preferences
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypedDict, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


class ResolvedRecipient(TypedDict):
    """Delivery address and greeting name for one user."""

    email: str
    name: str


@runtime_checkable
class EmailGateway(Protocol):
    """
    Protocol for the component that actually sends job emails.

    The same gateway is used whether a job runs inline after the response,
    inside a detached worker, or synchronously as a fallback.
    """

    def send(self, job_type: str, payload: dict[str, Any]) -> bool:
        """
        Send the email described by one job.

        Args:
            job_type: Job type tag (e.g. "message_notification")
            payload: Flat, JSON-serializable job payload

        Returns:
            True if an email went out, False if it was skipped or failed
        """
        ...


@runtime_checkable
class UserResolver(Protocol):
    """
    Protocol for user id -> delivery address lookups.

    Example:
        def resolve(user_id: int) -> ResolvedRecipient | None:
            user = User.objects.filter(pk=user_id).first()
            if user is None:
                return None
            return {"email": user.email, "name": user.get_display_name()}
    """

    def __call__(self, user_id: int) -> ResolvedRecipient | None: ...


@runtime_checkable
class PreferenceGateway(Protocol):
    """
    Protocol exposed to the EmailGateway so sends can be suppressed
    per category when only an address is known.
    """

    def should_send_by_email(self, email: str, category: str) -> bool:
        """
        Check whether the account owning `email` accepts `category` emails.

        Returns:
            True when no account owns the address
        """
        ...
