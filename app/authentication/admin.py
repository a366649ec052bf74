"""
Django admin configuration for the user model.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin for the email-based User model."""

    list_display = (
        "email",
        "username",
        "is_active",
        "is_staff",
        "is_deleted",
        "date_joined",
    )
    list_filter = ("is_active", "is_staff", "is_superuser", "is_deleted")
    search_fields = ("email", "username", "name")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        ("Identity", {"fields": ("username", "name")}),
        (
            "Status",
            {"fields": ("is_active", "is_staff", "is_superuser", "is_deleted")},
        ),
        ("Permissions", {"fields": ("groups", "user_permissions")}),
        ("Important dates", {"fields": ("date_joined", "last_login")}),
    )
    readonly_fields = ("date_joined", "last_login")

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2"),
            },
        ),
    )
