"""
Tests for the User model's naming helpers.
"""

from authentication.tests.factories import UserFactory


class TestDisplayName:
    """Tests for User.get_display_name()."""

    def test_prefers_username(self, user):
        """Username wins when present."""
        assert user.get_display_name() == "greenrider"

    def test_falls_back_to_name(self, db):
        """Name is used when there is no username."""
        user = UserFactory(username="", name="Green Rider")

        assert user.get_display_name() == "Green Rider"

    def test_falls_back_to_email(self, db):
        """Email is the last resort."""
        user = UserFactory(username="", name="", email="last@example.com")

        assert user.get_display_name() == "last@example.com"


class TestShortName:
    """Tests for User.get_short_name()."""

    def test_uses_email_local_part_without_username(self, db):
        """Short name is derived from the email when username is blank."""
        user = UserFactory(username="", email="local@example.com")

        assert user.get_short_name() == "local"
