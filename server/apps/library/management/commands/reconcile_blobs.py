"""Management command to sweep orphaned blobs from the blob store."""

import logging
from typing import Any, Final

from django.core.management.base import BaseCommand

from server.apps.library.exceptions import LibraryError
from server.apps.library.logic.ingestion import get_storage
from server.apps.library.logic.reconciliation import (
    find_missing_blobs,
    find_orphan_blobs,
    purge_orphan_blobs,
)

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Compare catalog keys with blob store contents and purge orphans."""

    help = 'Delete blobs not referenced by the catalog and report missing blobs'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max blobs to purge (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reconciliation command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        self.stdout.write(
            'Reconciling catalog against {root}'.format(
                root=get_storage().describe()['root'],
            ),
        )

        for key in find_missing_blobs():
            self.stderr.write(f'Missing blob for catalog row: {key}')
            logger.warning('Catalog references missing blob: %s', key)

        orphans = find_orphan_blobs()[:batch_size]

        if dry_run:
            for key in orphans:
                self.stdout.write(f'Would delete: {key}')
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {len(orphans)} orphan blobs'),
            )
            return

        try:
            purged = purge_orphan_blobs(orphans)
        except LibraryError as exc:
            self.stderr.write(f'Failed to purge orphan blobs: {exc}')
            logger.exception('Orphan sweep aborted')
            raise

        self.stdout.write(
            self.style.SUCCESS(f'Purged {purged} orphan blobs'),
        )
