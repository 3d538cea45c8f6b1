"""Management command to provision library users."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Create users, or rotate the password of existing ones."""

    help = 'Create library users or reset their passwords'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            'usernames',
            nargs='+',
            help='Usernames to create or update',
        )
        parser.add_argument(
            '--password',
            required=True,
            help='Password assigned to every listed user',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the provisioning command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        password = options['password']
        if not password:
            raise CommandError('Password must not be empty')

        user_model = get_user_model()
        for username in options['usernames']:
            with transaction.atomic():
                user, created = user_model.objects.get_or_create(
                    username=username,
                )
                user.set_password(password)
                user.save(update_fields=['password'])

            if created:
                self.stdout.write(f'Created user: {username} (ID: {user.pk})')
                logger.info('Created user: %s (ID: %d)', username, user.pk)
            else:
                self.stdout.write(f'Updated password for user: {username}')
                logger.info('Updated password for user: %s', username)

        self.stdout.write(self.style.SUCCESS('User initialization complete'))
