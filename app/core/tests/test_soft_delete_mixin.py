"""
Tests for SoftDeleteMixin in core/model_mixins.py.

This module tests:
- soft_delete() method sets is_deleted and deleted_at
- restore() method clears is_deleted and deleted_at
- hard_delete() permanently removes the record
- Idempotency of soft_delete and restore
- Optional hook methods (on_soft_delete, on_restore)

Message is the concrete soft-deletable model used throughout.
"""

from unittest.mock import patch

import pytest
from django.utils import timezone

from notifications.models import Message
from notifications.tests.factories import MessageFactory


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def message(db):
    return MessageFactory()


# =============================================================================
# soft_delete() Tests
# =============================================================================


@pytest.mark.django_db
class TestSoftDelete:
    """Tests for soft_delete() method."""

    def test_soft_delete_sets_flags(self, message):
        """soft_delete should set is_deleted and a timestamp."""
        before = timezone.now()

        message.soft_delete()

        assert message.is_deleted is True
        assert message.deleted_at >= before

    def test_soft_delete_persists_to_database(self, message):
        message.soft_delete()

        stored = Message.all_objects.get(pk=message.pk)
        assert stored.is_deleted is True
        assert stored.deleted_at is not None

    def test_soft_delete_is_idempotent(self, message):
        """A second call keeps the original deletion time."""
        message.soft_delete()
        first_deleted_at = message.deleted_at

        message.soft_delete()

        assert message.deleted_at == first_deleted_at

    def test_soft_delete_calls_hook(self, message):
        """on_soft_delete runs when defined by the model."""
        with patch.object(Message, "on_soft_delete", create=True) as hook:
            message.soft_delete()
            message.soft_delete()

        hook.assert_called_once()


# =============================================================================
# restore() Tests
# =============================================================================


@pytest.mark.django_db
class TestRestore:
    """Tests for restore() method."""

    def test_restore_clears_flags(self, message):
        message.soft_delete()

        message.restore()

        stored = Message.objects.get(pk=message.pk)
        assert stored.is_deleted is False
        assert stored.deleted_at is None

    def test_restore_is_noop_when_not_deleted(self, message):
        """Restoring a live row does not call the hook."""
        with patch.object(Message, "on_restore", create=True) as hook:
            message.restore()

        hook.assert_not_called()

    def test_restore_calls_hook(self, message):
        message.soft_delete()

        with patch.object(Message, "on_restore", create=True) as hook:
            message.restore()

        hook.assert_called_once()


# =============================================================================
# hard_delete() Tests
# =============================================================================


@pytest.mark.django_db
class TestHardDelete:
    """Tests for hard_delete() method."""

    def test_hard_delete_removes_row(self, message):
        message.hard_delete()

        assert not Message.all_objects.filter(pk=message.pk).exists()

    def test_hard_delete_works_on_soft_deleted_row(self, message):
        message.soft_delete()

        message.hard_delete()

        assert not Message.all_objects.filter(pk=message.pk).exists()
