"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin
    from core.managers import SoftDeleteManager

    class Message(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()
        all_objects = models.Manager()

Note:
    - Always list mixins before BaseModel in inheritance
    - SoftDeleteMixin requires SoftDeleteManager (see core.managers)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteMixin(models.Model):
    """
    Mark rows as deleted instead of removing them.

    Fields:
        is_deleted: True once the row has been soft deleted
        deleted_at: When the soft delete happened

    Hooks:
        Subclasses may define on_soft_delete() / on_restore(); they are
        called before the flags change.
    """

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this record was soft deleted",
    )

    class Meta:
        abstract = True

    def soft_delete(self) -> None:
        """
        Mark this row as deleted.

        Idempotent: calling it on an already deleted row does nothing.
        """
        if self.is_deleted:
            return
        if hasattr(self, "on_soft_delete"):
            self.on_soft_delete()
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])

    def restore(self) -> None:
        """Undo a soft delete."""
        if not self.is_deleted:
            return
        if hasattr(self, "on_restore"):
            self.on_restore()
        self.is_deleted = False
        self.deleted_at = None
        self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])

    def hard_delete(self) -> None:
        """Permanently remove the row. Cannot be undone."""
        super().delete()
