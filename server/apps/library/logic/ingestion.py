"""Ingestion pipeline: validate, persist, then register uploads.

Each upload moves through ``RECEIVED -> VALIDATED -> PERSISTED ->
REGISTERED``. Validation failures and storage failures exit to
``REJECTED``. Bytes are written before the catalog row exists, and a
row is only registered once the full stream is on disk.

The two stores are not updated atomically: a failed registration
triggers a best-effort blob delete, and a crash between persisting and
registering leaves an orphan blob for ``reconcile_blobs`` to sweep.
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING, TypeVar

from django.conf import settings
from django.core.files.base import File as DjangoFile
from django.core.files.storage import default_storage
from django.db import transaction

from server.apps.library.exceptions import (
    LibraryError,
    PayloadTooLargeError,
    UnsupportedMediaError,
)
from server.apps.library.infrastructure.metadata import (
    generate_storage_key,
    get_content_size,
    is_allowed_mime_type,
)

if TYPE_CHECKING:
    from server.apps.library.infrastructure.storage import BlobStorage

logger = logging.getLogger(__name__)

_Registered = TypeVar('_Registered')


class UploadStage(enum.StrEnum):
    """Stages of a single upload."""

    RECEIVED = 'received'
    VALIDATED = 'validated'
    PERSISTED = 'persisted'
    REGISTERED = 'registered'
    REJECTED = 'rejected'


@dataclass(frozen=True, slots=True)
class Upload:
    """Inbound upload as declared by the caller."""

    content: IO[bytes] | DjangoFile
    filename: str
    mime_type: str
    size_bytes: int


@dataclass(frozen=True, slots=True)
class PersistedBlob:
    """Blob written to the store, not yet referenced by the catalog."""

    storage_name: str
    size_bytes: int
    mime_type: str


def get_storage() -> 'BlobStorage':
    """Get the configured default storage backend.

    Returns:
        BlobStorage instance rooted at the configured storage root.
    """
    return default_storage  # type: ignore[return-value]


def receive(
    content: IO[bytes] | DjangoFile,
    filename: str,
    mime_type: str,
    size_bytes: int | None = None,
) -> Upload:
    """Wrap an inbound stream with its declared metadata.

    Args:
        content: File-like object holding the bytes.
        filename: Filename declared by the uploader.
        mime_type: Declared content type.
        size_bytes: Declared size; measured from the stream if omitted.

    Returns:
        Upload in the RECEIVED stage.
    """
    if size_bytes is None:
        size_bytes = get_content_size(content)
    return Upload(
        content=content,
        filename=filename,
        mime_type=mime_type,
        size_bytes=size_bytes,
    )


def validate(upload: Upload) -> None:
    """Check declared size and type before any byte is written.

    Args:
        upload: Upload to check.

    Raises:
        PayloadTooLargeError: If the size exceeds the configured limit.
        UnsupportedMediaError: If the type is not allow-listed.
    """
    max_bytes = settings.LIBRARY_MAX_UPLOAD_BYTES
    if upload.size_bytes > max_bytes:
        logger.warning(
            'Upload rejected (%s): %s is %d bytes, limit %d',
            UploadStage.REJECTED,
            upload.filename,
            upload.size_bytes,
            max_bytes,
        )
        raise PayloadTooLargeError(upload.size_bytes, max_bytes)

    if not is_allowed_mime_type(
        upload.mime_type,
        settings.LIBRARY_ALLOWED_MIME_TYPES,
    ):
        logger.warning(
            'Upload rejected (%s): %s has unsupported type %s',
            UploadStage.REJECTED,
            upload.filename,
            upload.mime_type,
        )
        raise UnsupportedMediaError(upload.mime_type)


def persist(upload: Upload) -> PersistedBlob:
    """Write validated bytes to the blob store under a fresh key.

    Args:
        upload: Validated upload.

    Returns:
        Location and measured size of the written blob.

    Raises:
        StorageFailureError: If the blob store cannot write the bytes.
        PayloadTooLargeError: If the stream turned out larger than the
            limit; the blob is removed again.
    """
    storage = get_storage()
    storage_name = generate_storage_key(upload.filename)
    written = storage.put(storage_name, upload.content)

    max_bytes = settings.LIBRARY_MAX_UPLOAD_BYTES
    if written > max_bytes:
        # Declared size understated the stream
        storage.rollback_upload(storage_name)
        raise PayloadTooLargeError(written, max_bytes)

    logger.debug(
        'Upload %s (%s): %s -> %s',
        UploadStage.PERSISTED,
        upload.mime_type,
        upload.filename,
        storage_name,
    )
    return PersistedBlob(
        storage_name=storage_name,
        size_bytes=written,
        mime_type=upload.mime_type,
    )


def register(
    blob: PersistedBlob,
    registrar: Callable[[PersistedBlob], _Registered],
) -> _Registered:
    """Create the catalog row for a persisted blob.

    The registrar runs inside a transaction. If it fails, the blob is
    deleted (best effort) and the original error propagates.

    Args:
        blob: Blob already written to the store.
        registrar: Callable inserting the File or FileVersion row.

    Returns:
        Whatever the registrar returns.
    """
    try:
        with transaction.atomic():
            registered = registrar(blob)
    except Exception:
        logger.exception(
            'Catalog registration failed, rolling back blob: %s',
            blob.storage_name,
        )
        get_storage().rollback_upload(blob.storage_name)
        raise

    logger.debug('Upload %s: %s', UploadStage.REGISTERED, blob.storage_name)
    return registered


def ingest(
    upload: Upload,
    registrar: Callable[[PersistedBlob], _Registered],
) -> _Registered:
    """Run an upload through every stage of the pipeline.

    Args:
        upload: Received upload.
        registrar: Callable inserting the catalog row for the blob.

    Returns:
        Whatever the registrar returns.

    Raises:
        LibraryError: Validation, storage or registration failures.
    """
    try:
        validate(upload)
        blob = persist(upload)
    except LibraryError:
        logger.info('Upload %s: %s', UploadStage.REJECTED, upload.filename)
        raise
    return register(blob, registrar)
