"""Tests for init_users management command."""

from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError

User = get_user_model()


@pytest.mark.django_db
class TestInitUsersCommand:
    """Tests for init_users management command."""

    def test_creates_users(self):
        """Test every listed user is created with the password."""
        out = StringIO()
        call_command(
            'init_users',
            'alice',
            'bob',
            '--password',
            's3cret-pass',
            stdout=out,
        )

        for username in ('alice', 'bob'):
            created = User.objects.get(username=username)
            assert created.check_password('s3cret-pass')
            assert f'Created user: {username}' in out.getvalue()
        assert 'User initialization complete' in out.getvalue()

    def test_updates_existing_password(self, user):
        """Test existing users keep their ID and get the new password."""
        out = StringIO()
        call_command(
            'init_users',
            user.username,
            '--password',
            'rotated-pass',
            stdout=out,
        )

        user.refresh_from_db()
        assert user.check_password('rotated-pass')
        assert User.objects.filter(username=user.username).count() == 1
        assert f'Updated password for user: {user.username}' in out.getvalue()

    def test_empty_password_is_rejected(self):
        """Test an empty password aborts the command."""
        with pytest.raises(CommandError):
            call_command('init_users', 'alice', '--password', '')

        assert not User.objects.filter(username='alice').exists()
