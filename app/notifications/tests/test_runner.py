"""
Tests for JobRunner.
"""

from notifications.jobs import (
    BulkMessageNotificationJob,
    ExchangeConfirmationJob,
    MessageNotificationJob,
    Recipient,
)
from notifications.runner import JobRunner
from notifications.tests.fakes import RecordingGateway


def _message_job(email="a@example.com"):
    return MessageNotificationJob(email=email, name="A", subject="S", content="C")


class TestRun:
    """Tests for JobRunner.run()."""

    def test_sends_payload_through_gateway(self):
        """The gateway receives the job type and payload."""
        gateway = RecordingGateway()
        job = _message_job()

        assert JobRunner(gateway).run(job) is True
        assert gateway.sent == [("message_notification", job.to_payload())]

    def test_no_gateway_drops_job(self):
        """With email disabled nothing is sent."""
        assert JobRunner(None).run(_message_job()) is False

    def test_missing_address_is_skipped(self):
        """Single-address jobs without an email never reach the gateway."""
        gateway = RecordingGateway()

        assert JobRunner(gateway).run(_message_job(email="")) is False
        assert gateway.sent == []

    def test_empty_recipient_list_is_skipped(self):
        """Bulk jobs need at least one recipient."""
        gateway = RecordingGateway()
        job = BulkMessageNotificationJob(recipients=(), subject="S", content="C")

        assert JobRunner(gateway).run(job) is False
        assert gateway.sent == []

    def test_gateway_error_is_swallowed(self):
        """A raising gateway is logged and reported as not sent."""
        gateway = RecordingGateway(error=RuntimeError("smtp down"))

        assert JobRunner(gateway).run(_message_job()) is False

    def test_gateway_false_is_not_sent(self):
        """A skipped send (e.g. opted out) returns False."""
        assert JobRunner(RecordingGateway(result=False)).run(_message_job()) is False


class TestRunBatch:
    """Tests for JobRunner.run_batch()."""

    def test_failure_does_not_stop_siblings(self, mocker):
        """Every job runs even if an earlier one raises."""
        gateway = mocker.Mock()
        gateway.send.side_effect = [RuntimeError("boom"), True, True]
        jobs = [
            _message_job("a@example.com"),
            BulkMessageNotificationJob(
                recipients=(Recipient("b@example.com"),), subject="S", content="C"
            ),
            ExchangeConfirmationJob(
                user_id=1,
                email="c@example.com",
                name="C",
                product_name="Bottle",
                quantity=1,
                points_spent=300.0,
            ),
        ]

        sent = JobRunner(gateway).run_batch(jobs)

        assert sent == 2
        assert gateway.send.call_count == 3
