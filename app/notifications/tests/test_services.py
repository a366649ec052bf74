"""
Tests for notification services.

Test Classes:
    TestMessageService: Read state, deletion, counts, admin fan-out
    TestPreferenceService: Preference list and updates
    TestBroadcastService: Target validation and broadcast records
    TestRecipientSearch: Finding users to target
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

import pytest
from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import UserFactory
from notifications.models import Message, MessageBroadcast
from notifications.services import (
    RECIPIENT_SEARCH_LIMIT,
    BroadcastService,
    MessageService,
    PreferenceService,
)
from notifications.tests.factories import MessageFactory


class TestMessageService:
    """Tests for MessageService."""

    def test_mark_as_read(self, user):
        """Unread message becomes read with a timestamp."""
        message = MessageFactory(receiver=user)

        with freeze_time("2026-03-01 10:00:00"):
            result = MessageService.mark_as_read(user, message.pk)

        assert result.success
        message.refresh_from_db()
        assert message.is_read is True
        assert message.read_at == datetime(2026, 3, 1, 10, 0, tzinfo=dt_timezone.utc)

    def test_mark_as_read_keeps_first_read_time(self, user):
        """Marking twice does not move read_at."""
        first_read = timezone.now() - timedelta(days=1)
        message = MessageFactory(receiver=user, is_read=True, read_at=first_read)

        MessageService.mark_as_read(user, message.pk)

        message.refresh_from_db()
        assert message.read_at == first_read

    def test_mark_as_read_other_users_message(self, user, other_user):
        """Messages of another receiver are not found."""
        message = MessageFactory(receiver=other_user)

        result = MessageService.mark_as_read(user, message.pk)

        assert not result
        assert result.error_code == "MESSAGE_NOT_FOUND"

    def test_mark_all_as_read(self, user, other_user):
        """Only the caller's unread messages change."""
        MessageFactory.create_batch(3, receiver=user)
        MessageFactory(receiver=user, is_read=True)
        foreign = MessageFactory(receiver=other_user)

        result = MessageService.mark_all_as_read(user)

        assert result.data == 3
        assert not Message.objects.filter(receiver=user, is_read=False).exists()
        foreign.refresh_from_db()
        assert foreign.is_read is False

    def test_delete_message_soft_deletes(self, user):
        """Deleted messages leave the default manager but stay stored."""
        message = MessageFactory(receiver=user)

        result = MessageService.delete_message(user, message.pk)

        assert result.success
        assert not Message.objects.filter(pk=message.pk).exists()
        assert Message.all_objects.get(pk=message.pk).is_deleted is True

    def test_delete_missing_message(self, user):
        """Unknown ids fail with MESSAGE_NOT_FOUND."""
        result = MessageService.delete_message(user, 999999)

        assert result.error_code == "MESSAGE_NOT_FOUND"

    def test_unread_count_excludes_deleted(self, user):
        """Soft-deleted messages are not counted."""
        MessageFactory.create_batch(2, receiver=user)
        MessageFactory(receiver=user).soft_delete()

        assert MessageService.unread_count(user).data == 2

    def test_notify_admins(self, admin_user, user, dispatcher, job_queue):
        """Every active staff member gets a row; one bulk email."""
        second_admin = UserFactory(is_staff=True)
        UserFactory(is_staff=True, is_active=False)

        result = MessageService.notify_admins(
            "Exchange pending", "Order #12 needs review", "new_exchange_pending",
            dispatcher=dispatcher,
        )

        assert result.data == 2
        receivers = set(Message.objects.values_list("receiver_id", flat=True))
        assert receivers == {admin_user.pk, second_admin.pk}
        assert len(job_queue) == 1
        assert {r.email for r in job_queue.pending[0].recipients} == {
            admin_user.email,
            second_admin.email,
        }

    def test_notify_admins_without_staff(self, user, dispatcher, job_queue):
        """No staff means nothing to send."""
        result = MessageService.notify_admins("T", "C", dispatcher=dispatcher)

        assert result.data == 0
        assert Message.objects.count() == 0


class TestPreferenceService:
    """Tests for PreferenceService."""

    def test_defaults_all_enabled(self, user):
        """Users without a row see every category enabled."""
        result = PreferenceService.get_preferences(user)

        assert all(entry["enabled"] for entry in result.data)
        assert [entry["category"] for entry in result.data][:2] == [
            "verification",
            "security",
        ]

    def test_update_returns_new_state(self, user):
        """The response reflects the saved toggles."""
        result = PreferenceService.update_preferences(
            user, [{"category": "announcement", "enabled": False}]
        )

        states = {entry["category"]: entry["enabled"] for entry in result.data}
        assert states["announcement"] is False
        assert states["system"] is True

    def test_locked_category_cannot_be_disabled(self, user):
        """Attempts to disable locked categories are ignored."""
        result = PreferenceService.update_preferences(
            user, [{"category": "security", "enabled": False}]
        )

        states = {entry["category"]: entry["enabled"] for entry in result.data}
        assert states["security"] is True


class TestBroadcastService:
    """Tests for BroadcastService.send_system_message()."""

    def test_selected_targets(self, admin_user, dispatcher, job_queue):
        """Explicit targets get rows; unknown ids are reported."""
        targets = UserFactory.create_batch(2)

        result = BroadcastService.send_system_message(
            admin_user, "Maintenance", "Tonight 22:00 UTC", "high",
            target_user_ids=[targets[0].pk, targets[1].pk, 987654],
            dispatcher=dispatcher,
        )

        assert result.success
        broadcast = result.data
        assert broadcast.scope == "selected"
        assert broadcast.target_count == 2
        assert broadcast.sent_count == 2
        assert broadcast.invalid_user_ids == [987654]
        assert broadcast.failed_user_ids == []
        assert broadcast.email_recipient_count == 2
        assert job_queue.pending[0].subject == "[HIGH] Maintenance"
        assert Message.objects.filter(sender=admin_user).count() == 2

    def test_duplicate_target_ids(self, admin_user, user, dispatcher, job_queue):
        """Repeated ids target the user once."""
        result = BroadcastService.send_system_message(
            admin_user, "T", "C", target_user_ids=[user.pk, user.pk],
            dispatcher=dispatcher,
        )

        assert result.data.target_count == 1
        assert Message.objects.filter(receiver=user).count() == 1

    def test_all_users(self, admin_user, user, other_user, dispatcher, job_queue):
        """No targets means every deliverable user, the sender included."""
        UserFactory(is_active=False)

        result = BroadcastService.send_system_message(
            admin_user, "Season", "Challenges are live", dispatcher=dispatcher
        )

        assert result.data.scope == "all"
        assert result.data.target_count == 3
        assert MessageBroadcast.objects.count() == 1

    def test_no_valid_targets(self, admin_user, dispatcher, job_queue):
        """Only unknown ids fails with NO_TARGETS and records nothing."""
        result = BroadcastService.send_system_message(
            admin_user, "T", "C", target_user_ids=[987654], dispatcher=dispatcher
        )

        assert result.error_code == "NO_TARGETS"
        assert MessageBroadcast.objects.count() == 0
        assert len(job_queue) == 0

    @pytest.mark.parametrize(
        "title,content,priority",
        [("", "C", "normal"), ("T", "  ", "normal"), ("T", "C", "critical")],
    )
    def test_validation(self, admin_user, dispatcher, title, content, priority):
        """Blank fields and unknown priorities fail before any write."""
        result = BroadcastService.send_system_message(
            admin_user, title, content, priority, dispatcher=dispatcher
        )

        assert result.error_code == "VALIDATION_ERROR"
        assert Message.objects.count() == 0

    def test_email_disabled(self, admin_user, user, in_app_only_dispatcher, job_queue):
        """Broadcasts still write rows without a gateway."""
        result = BroadcastService.send_system_message(
            admin_user, "T", "C", target_user_ids=[user.pk],
            dispatcher=in_app_only_dispatcher,
        )

        assert result.data.sent_count == 1
        assert result.data.email_recipient_count == 0
        assert len(job_queue) == 0

    def test_record_failure_after_sending(
        self, admin_user, user, dispatcher, job_queue, mocker
    ):
        """A failed history write keeps the messages and reports the failure."""
        from django.db import DatabaseError

        mocker.patch.object(
            MessageBroadcast.objects, "create", side_effect=DatabaseError("disk full")
        )

        result = BroadcastService.send_system_message(
            admin_user, "T", "C", target_user_ids=[user.pk], dispatcher=dispatcher
        )

        assert not result
        assert result.error_code == "BROADCAST_NOT_RECORDED"
        assert result.error == "disk full"
        assert Message.objects.filter(receiver=user).count() == 1
        assert len(job_queue) == 1


class TestRecipientSearch:
    """Tests for BroadcastService.search_recipients()."""

    def test_empty_query_lists_first_users(self, user, other_user):
        result = BroadcastService.search_recipients("")

        assert [u.pk for u in result.data] == sorted([user.pk, other_user.pk])

    def test_query_is_trimmed(self, user, other_user):
        result = BroadcastService.search_recipients("  receiver@  ")

        assert result.data == [user]

    def test_deleted_users_excluded(self, user):
        UserFactory(email="receiver.old@example.com", is_deleted=True)

        result = BroadcastService.search_recipients("receiver")

        assert result.data == [user]

    def test_limit_is_capped(self, db):
        UserFactory.create_batch(RECIPIENT_SEARCH_LIMIT + 5)

        assert len(BroadcastService.search_recipients("", limit=500).data) == (
            RECIPIENT_SEARCH_LIMIT
        )
        assert len(BroadcastService.search_recipients("", limit=0).data) == 1
