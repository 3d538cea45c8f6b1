"""Local filesystem blob store for media bytes."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any, final, override

from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import File as DjangoFile
from django.core.files.storage import FileSystemStorage

from server.apps.library.exceptions import (
    AccessDeniedError,
    ConflictError,
    LibraryError,
    NotFoundError,
    StorageFailureError,
)

logger = logging.getLogger(__name__)


@final
class BlobStorage(FileSystemStorage):
    """Flat blob store under a single storage root.

    Extends Django's FileSystemStorage with:
    - Canonical path checks against the storage root on every access
    - Key-exact writes that never overwrite or rename
    - Transaction rollback support for failed catalog registration
    - Enhanced error logging
    """

    @override
    def path(self, name: str) -> str:
        """Resolve a storage key to an absolute path inside the root.

        Symlinks and ``..`` segments are resolved before the boundary
        check, so a key can never point outside the storage root.

        Args:
            name: Storage key.

        Returns:
            Canonical absolute path of the blob.

        Raises:
            AccessDeniedError: If the key resolves outside the root.
        """
        try:
            joined = super().path(name)
        except SuspiciousFileOperation as exc:
            logger.warning('Rejected storage key outside root: %r', name)
            raise AccessDeniedError(name) from exc

        root = Path(self.location).resolve()
        resolved = Path(joined).resolve()
        if resolved == root or not resolved.is_relative_to(root):
            logger.warning('Rejected storage key outside root: %r', name)
            raise AccessDeniedError(name)
        return str(resolved)

    def put(self, key: str, content: IO[bytes] | DjangoFile) -> int:
        """Write a stream to the blob store under exactly ``key``.

        A partially written blob is removed before the error propagates.

        Args:
            key: Storage key to write.
            content: File-like object to read bytes from.

        Returns:
            Number of bytes written.

        Raises:
            AccessDeniedError: If the key escapes the storage root.
            ConflictError: If a blob with this key already exists.
            StorageFailureError: If the write fails (disk full, I/O).
        """
        if os.path.lexists(self.path(key)):
            raise ConflictError(f'Blob already exists: {key}')

        try:
            logger.info('Writing blob to storage: %s', key)
            saved_name = self.save(key, content)
        except SuspiciousFileOperation as exc:
            raise AccessDeniedError(key) from exc
        except Exception as exc:
            # Disk errors and inbound streams failing mid-read alike
            logger.exception('Failed to write blob to storage: %s', key)
            self.rollback_upload(key)
            raise StorageFailureError(f'Failed to write blob {key}: {exc}') from exc

        if saved_name != key:
            # Another writer claimed the key between the check and the write
            self.rollback_upload(saved_name)
            raise ConflictError(f'Blob already exists: {key}')

        size = self.size(saved_name)
        logger.info('Successfully wrote blob: %s (%d bytes)', saved_name, size)
        return size

    def get(self, key: str) -> DjangoFile:
        """Open a blob for streaming reads.

        Args:
            key: Storage key to read.

        Returns:
            Open binary file; the caller closes it.

        Raises:
            AccessDeniedError: If the key escapes the storage root.
            NotFoundError: If no blob exists under the key.
            StorageFailureError: If the blob cannot be opened.
        """
        try:
            return self.open(key, 'rb')
        except FileNotFoundError as exc:
            raise NotFoundError('blob', key) from exc
        except OSError as exc:
            logger.exception('Failed to open blob: %s', key)
            raise StorageFailureError(f'Failed to read blob {key}: {exc}') from exc

    @override
    def delete(self, name: str) -> None:
        """Delete blob from disk with error handling and logging.

        Deleting a missing blob is a no-op.

        Args:
            name: Storage key of blob to delete.

        Raises:
            AccessDeniedError: If the key escapes the storage root.
            StorageFailureError: If the delete fails.
        """
        try:
            logger.info('Deleting blob from storage: %s', name)
            super().delete(name)
        except OSError as exc:
            logger.exception('Failed to delete blob from storage: %s', name)
            raise StorageFailureError(f'Failed to delete blob {name}: {exc}') from exc

    def rollback_upload(self, name: str) -> None:
        """Delete a just-written blob after a failed registration.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, and the blob is left for the
        reconciliation sweep.

        Args:
            name: Storage key of blob to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting blob: %s', name)
            self.delete(name)
        except LibraryError:
            logger.exception('Failed to rollback upload, orphaned blob: %s', name)

    def iter_keys(self) -> Iterator[str]:
        """Iterate over the keys of all blobs in the storage root.

        Yields:
            Storage keys of regular files directly under the root.
        """
        root = Path(self.location)
        if not root.is_dir():
            return
        with os.scandir(root) as entries:
            for entry in entries:
                if entry.is_file(follow_symlinks=False):
                    yield entry.name

    def describe(self) -> dict[str, Any]:
        """Describe the storage backend for diagnostics.

        Returns:
            Backend class name and resolved root.
        """
        return {
            'backend': type(self).__name__,
            'root': str(Path(self.location).resolve()),
        }
