"""
Tests for email job variants and the job-file format.

Test Classes:
    TestPayloads: Field layout of each job type
    TestJobFromDict: Parsing single entries
    TestBatchDocument: serialize_batch() / deserialize_batch()
"""

import json

import pytest

from notifications.jobs import (
    JOB_TYPES,
    ActivityRejectedJob,
    BroadcastAnnouncementJob,
    BulkMessageNotificationJob,
    ExchangeStatusUpdateJob,
    JobFormatError,
    MessageNotificationJob,
    Recipient,
    deserialize_batch,
    job_from_dict,
    serialize_batch,
)


class TestPayloads:
    """Tests for to_payload()/to_dict()."""

    def test_message_notification_uses_type_key(self):
        """The message type is carried under 'type'."""
        job = MessageNotificationJob(
            email="a@example.com",
            name="A",
            subject="[HIGH] Hi",
            content="body",
            priority="high",
            message_type="welcome",
        )

        assert job.to_dict() == {
            "job_type": "message_notification",
            "payload": {
                "email": "a@example.com",
                "name": "A",
                "subject": "[HIGH] Hi",
                "content": "body",
                "category": "system",
                "priority": "high",
                "type": "welcome",
            },
        }

    def test_recipient_omits_missing_user_id(self):
        """user_id is only written when known."""
        assert Recipient("a@example.com").to_payload() == {
            "email": "a@example.com",
            "name": None,
        }
        assert Recipient("a@example.com", "A", 7).to_payload()["user_id"] == 7

    def test_broadcast_context_is_optional(self):
        """An empty context is not written to the payload."""
        job = BroadcastAnnouncementJob(
            recipients=(Recipient("a@example.com"),),
            title="T",
            content="C",
            subject="T",
        )

        assert "context" not in job.to_payload()

    def test_registry_covers_every_job_type(self):
        """All seven job types are registered under their wire names."""
        assert set(JOB_TYPES) == {
            "message_notification",
            "message_notification_bulk",
            "broadcast_announcement",
            "exchange_confirmation",
            "exchange_status_update",
            "activity_approved_notification",
            "activity_rejected_notification",
        }


class TestJobFromDict:
    """Tests for job_from_dict()."""

    def test_optional_fields_get_defaults(self):
        """Name falls back to the address; category/priority to defaults."""
        job = job_from_dict(
            {
                "job_type": "message_notification",
                "payload": {"email": " a@example.com ", "subject": "S", "content": "C"},
            }
        )

        assert job == MessageNotificationJob(
            email="a@example.com",
            name="a@example.com",
            subject="S",
            content="C",
        )

    def test_bulk_drops_recipients_without_address(self):
        """Recipient entries with no email are dropped while parsing."""
        job = job_from_dict(
            {
                "job_type": "message_notification_bulk",
                "payload": {
                    "recipients": [
                        {"email": "a@example.com", "name": "A", "user_id": "3"},
                        {"email": ""},
                        "junk",
                    ],
                    "subject": "S",
                    "content": "C",
                },
            }
        )

        assert isinstance(job, BulkMessageNotificationJob)
        assert job.recipients == (Recipient("a@example.com", "A", 3),)

    def test_status_update_keeps_multiline_notes(self):
        """Notes are kept verbatim."""
        job = job_from_dict(
            {
                "job_type": "exchange_status_update",
                "payload": {
                    "email": "a@example.com",
                    "product_name": "Bottle",
                    "status": "shipped",
                    "notes": "Tracking number: X1\nLeft at door",
                },
            }
        )

        assert isinstance(job, ExchangeStatusUpdateJob)
        assert job.notes == "Tracking number: X1\nLeft at door"

    def test_missing_job_type(self):
        """An entry without job_type is rejected."""
        with pytest.raises(JobFormatError) as exc_info:
            job_from_dict({"payload": {}})

        assert exc_info.value.error_code == "MISSING_JOB_TYPE"

    def test_unknown_job_type(self):
        """Unregistered job types are rejected."""
        with pytest.raises(JobFormatError) as exc_info:
            job_from_dict({"job_type": "fax", "payload": {}})

        assert exc_info.value.error_code == "UNKNOWN_JOB_TYPE"

    def test_non_dict_payload(self):
        """The payload must be an object."""
        with pytest.raises(JobFormatError):
            job_from_dict({"job_type": "message_notification", "payload": []})


class TestBatchDocument:
    """Tests for serialize_batch()/deserialize_batch()."""

    def test_document_shape(self):
        """The batch is a single object with a 'jobs' list."""
        job = ActivityRejectedJob(
            user_id=5,
            email="a@example.com",
            name="A",
            activity_name="Cycling",
            reason="Blurry photo",
        )

        document = json.loads(serialize_batch([job]))

        assert document == {"jobs": [job.to_dict()]}

    def test_preserves_non_ascii_text(self):
        """Text is written as UTF-8, not escaped."""
        job = MessageNotificationJob(
            email="a@example.com", name="Zoë", subject="Grüße", content="☀"
        )

        text = serialize_batch([job])

        assert "Grüße" in text
        assert deserialize_batch(text) == [job]

    def test_bad_entries_are_skipped(self):
        """One unknown entry does not cost the rest of the batch."""
        good = {
            "job_type": "message_notification",
            "payload": {"email": "a@example.com", "subject": "S", "content": "C"},
        }
        text = json.dumps({"jobs": [{"job_type": "fax", "payload": {}}, good]})

        jobs = deserialize_batch(text)

        assert len(jobs) == 1
        assert jobs[0].email == "a@example.com"

    @pytest.mark.parametrize("text", ["not json", "[]", '{"jobs": {}}', "{}"])
    def test_malformed_document(self, text):
        """Invalid JSON or a missing jobs list raises BAD_JOB_FILE."""
        with pytest.raises(JobFormatError) as exc_info:
            deserialize_batch(text)

        assert exc_info.value.error_code == "BAD_JOB_FILE"
