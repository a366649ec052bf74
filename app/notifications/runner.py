"""
Job execution.

JobRunner turns one EmailJob into one EmailGateway.send() call. It is the
only code that runs jobs, whichever path got them here (inline after the
response, the detached worker, the synchronous fallback, or an offline
context with no request at all).

Failure rules:
    - A job missing its address or recipients is logged and skipped
    - A gateway returning False is logged at debug (usually a preference skip)
    - A gateway raising is logged with traceback and swallowed, so sibling
      jobs in the same batch still run
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notifications.jobs import (
    ActivityApprovedJob,
    ActivityRejectedJob,
    BroadcastAnnouncementJob,
    BulkMessageNotificationJob,
    ExchangeConfirmationJob,
    ExchangeStatusUpdateJob,
    MessageNotificationJob,
)
from toolkit.helpers import mask_email

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from notifications.jobs import EmailJob
    from toolkit.protocols import EmailGateway

logger = logging.getLogger(__name__)


class JobRunner:
    """
    Executes email jobs against a gateway.

    Usage:
        runner = JobRunner(gateway)
        runner.run(job)            # -> bool
        runner.run_batch(jobs)     # -> number of successful sends
    """

    def __init__(self, gateway: EmailGateway | None):
        self.gateway = gateway
        self._validators: dict[type[EmailJob], Callable[[EmailJob], str | None]] = {
            MessageNotificationJob: self._check_single,
            ExchangeConfirmationJob: self._check_single,
            ExchangeStatusUpdateJob: self._check_single,
            ActivityApprovedJob: self._check_single,
            ActivityRejectedJob: self._check_single,
            BulkMessageNotificationJob: self._check_recipients,
            BroadcastAnnouncementJob: self._check_recipients,
        }

    def run(self, job: EmailJob) -> bool:
        """
        Run one job. Never raises.

        Returns:
            True only if the gateway reported a send
        """
        if self.gateway is None:
            logger.debug(f"Email gateway disabled, dropping {job.job_type} job")
            return False

        validator = self._validators.get(type(job))
        if validator is None:
            logger.warning(f"No handler for email job {type(job).__name__}, skipping")
            return False

        problem = validator(job)
        if problem:
            logger.warning(f"Skipping {job.job_type} job: {problem}")
            return False

        try:
            sent = self.gateway.send(job.job_type, job.to_payload())
        except Exception:
            logger.exception(f"Email job {job.job_type} failed")
            return False

        if not sent:
            logger.debug(
                f"Email job {job.job_type} was not sent "
                f"(preference opt-out or transport failure)"
            )
        return bool(sent)

    def run_batch(self, jobs: Iterable[EmailJob]) -> int:
        """Run every job in order; returns how many were sent."""
        sent = 0
        total = 0
        for job in jobs:
            total += 1
            if self.run(job):
                sent += 1
        if total:
            logger.info(f"Ran {total} email job(s), {sent} sent")
        return sent

    @staticmethod
    def _check_single(job) -> str | None:
        if not job.email:
            return "no recipient email"
        logger.debug(f"Running {job.job_type} for {mask_email(job.email)}")
        return None

    @staticmethod
    def _check_recipients(job) -> str | None:
        if not job.recipients:
            return "no recipients"
        return None
