"""
Authentication models.

This module defines the platform's user model:
- User: Custom user model with email-based authentication

The notification pipeline only reads from this model: it resolves a
user's delivery address and display name, and looks users up by email
when checking email preferences.

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login and delivery
        username: Optional public handle shown to other users
        name: Optional display name
        is_active: Whether the user account is active
        is_staff: Whether the user is an administrator
        is_deleted: Account was deleted; kept for referential integrity
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    username = models.CharField(
        max_length=30,
        blank=True,
        default="",
        help_text="Public handle, optional",
    )
    name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Display name, optional",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site and admin APIs.",
    )
    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Deleted accounts receive no notifications",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_display_name(self) -> str:
        """
        Name used in email greetings.

        Falls back from username to name to email, so it is never empty
        for a user with an address.
        """
        return self.username or self.name or self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.username or self.email.split("@")[0]
