"""Business logic for files and their version history.

A File row's own storage fields describe version 1 only. Every read of
"the current content" resolves ``File.current_version`` against the
version table, so restoring a version never rewrites File metadata.
"""

import logging
from collections.abc import Iterable
from typing import IO, Final

from django.conf import settings
from django.core.files.base import File as DjangoFile
from django.db import IntegrityError, transaction
from django.db.models import Max, Q, Sum, Value  # noqa: WPS347
from django.db.models.functions import StrIndex

from server.apps.library.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from server.apps.library.infrastructure.metadata import sanitize_filename
from server.apps.library.logic.ingestion import (
    PersistedBlob,
    get_storage,
    ingest,
    receive,
)
from server.apps.library.logic.records import (
    DownloadHandle,
    FileEntry,
    FilePage,
    StorageStats,
    StoredContent,
    VersionInfo,
)
from server.apps.library.models import (
    IMPLICIT_VERSION,
    File,
    FileVersion,
    Folder,
)

logger = logging.getLogger(__name__)

_DEFAULT_PAGE_SIZE: Final = 50
_MAX_PAGE_SIZE: Final = 500


def get_file(file_id: int) -> File:
    """Get file by ID.

    Args:
        file_id: ID of the file.

    Returns:
        File instance.

    Raises:
        NotFoundError: If file not found.
    """
    try:
        return File.objects.select_related('uploaded_by').get(id=file_id)
    except File.DoesNotExist as exc:
        raise NotFoundError('file', file_id) from exc


def _ensure_folder(folder_id: int | None) -> None:
    if folder_id is not None and not Folder.objects.filter(id=folder_id).exists():
        raise NotFoundError('folder', folder_id)


def create_file(  # noqa: WPS211
    file_obj: IO[bytes] | DjangoFile,
    original_name: str,
    mime_type: str,
    folder_id: int | None,
    uploader_id: int,
    size_bytes: int | None = None,
) -> File:
    """Upload a new file and register it with ``current_version = 1``.

    Args:
        file_obj: Stream holding the bytes.
        original_name: Filename declared by the uploader.
        mime_type: Declared content type.
        folder_id: Target folder, or None for root level.
        uploader_id: Caller identity.
        size_bytes: Declared size; measured from the stream if omitted.

    Returns:
        Created File instance.

    Raises:
        InvalidInputError: If the sanitized filename is empty.
        NotFoundError: If the target folder does not exist.
        PayloadTooLargeError: If the upload is too large.
        UnsupportedMediaError: If the type is not allowed.
        StorageFailureError: If the bytes cannot be written.
    """
    filename = sanitize_filename(original_name)
    if not filename:
        raise InvalidInputError('Filename is required')
    _ensure_folder(folder_id)

    upload = receive(file_obj, original_name, mime_type, size_bytes)

    def _register(blob: PersistedBlob) -> File:
        return File.objects.create(
            storage_name=blob.storage_name,
            original_filename=filename,
            size_bytes=blob.size_bytes,
            mime_type=blob.mime_type,
            folder_id=folder_id,
            uploaded_by_id=uploader_id,
            current_version=IMPLICIT_VERSION,
        )

    file_instance = ingest(upload, _register)
    logger.info(
        'File created: %s (ID: %d, blob: %s)',
        file_instance.original_filename,
        file_instance.id,
        file_instance.storage_name,
    )
    return file_instance


def next_version_number(file_instance: File) -> int:
    """Compute the number the next uploaded version receives.

    Args:
        file_instance: File whose history is extended.

    Returns:
        ``max(existing version numbers, current_version) + 1``.
    """
    highest = FileVersion.objects.filter(file=file_instance).aggregate(
        highest=Max('version_number'),
    )['highest'] or IMPLICIT_VERSION
    return max(highest, file_instance.current_version) + 1


def add_version(
    file_id: int,
    file_obj: IO[bytes] | DjangoFile,
    uploader_id: int,
    mime_type: str | None = None,
    size_bytes: int | None = None,
) -> FileVersion:
    """Upload a new version and make it current immediately.

    The bytes are persisted once. Registration locks the File row,
    computes the next number and inserts the version; if a concurrent
    upload took the same number, the unique constraint rejects the row
    and registration retries with a fresh number.

    Args:
        file_id: File to extend.
        file_obj: Stream holding the new bytes.
        uploader_id: Caller identity.
        mime_type: Declared content type; defaults to the file's type.
        size_bytes: Declared size; measured from the stream if omitted.

    Returns:
        Created FileVersion instance.

    Raises:
        NotFoundError: If the file does not exist.
        ConflictError: If no free version number was won in time.
        PayloadTooLargeError: If the upload is too large.
        UnsupportedMediaError: If the type is not allowed.
        StorageFailureError: If the bytes cannot be written.
    """
    file_instance = get_file(file_id)
    upload = receive(
        file_obj,
        file_instance.original_filename,
        mime_type or file_instance.mime_type,
        size_bytes,
    )
    attempts = settings.LIBRARY_VERSION_RETRY_ATTEMPTS

    def _register(blob: PersistedBlob) -> FileVersion:
        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic():
                    return _insert_next_version(file_id, blob, uploader_id)
            except IntegrityError:
                logger.warning(
                    'Version number race on file %d (attempt %d/%d)',
                    file_id,
                    attempt,
                    attempts,
                )
        raise ConflictError(
            f'Could not allocate a version number for file {file_id}',
        )

    version = ingest(upload, _register)
    logger.info(
        'Version uploaded: file %d v%d (blob: %s)',
        file_id,
        version.version_number,
        version.storage_name,
    )
    return version


def _insert_next_version(
    file_id: int,
    blob: PersistedBlob,
    uploader_id: int,
) -> FileVersion:
    # Row lock serialises version allocation per file
    try:
        locked = File.objects.select_for_update().get(id=file_id)
    except File.DoesNotExist as exc:
        raise NotFoundError('file', file_id) from exc
    version_number = next_version_number(locked)
    version = FileVersion.objects.create(
        file=locked,
        version_number=version_number,
        storage_name=blob.storage_name,
        size_bytes=blob.size_bytes,
        mime_type=blob.mime_type,
        uploaded_by_id=uploader_id,
    )
    File.objects.filter(id=file_id).update(current_version=version_number)
    return version


def restore_version(file_id: int, version_number: int) -> File:
    """Make an earlier (or later) version current again.

    Metadata only: no bytes move and File's own fields stay untouched.

    Args:
        file_id: File to update.
        version_number: Version to make current.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If the file or the version does not exist.
    """
    with transaction.atomic():
        try:
            file_instance = File.objects.select_for_update().get(id=file_id)
        except File.DoesNotExist as exc:
            raise NotFoundError('file', file_id) from exc

        version_exists = version_number == IMPLICIT_VERSION or (
            FileVersion.objects.filter(
                file=file_instance,
                version_number=version_number,
            ).exists()
        )
        if not version_exists:
            raise NotFoundError('version', f'{file_id}/v{version_number}')

        file_instance.current_version = version_number
        file_instance.save(update_fields=['current_version'])

    logger.info('File %d restored to version %d', file_id, version_number)
    return file_instance


def move_file(
    file_id: int,
    target_folder_id: int | None,
    requester_id: int,
) -> File:
    """Move a file to another folder or to root level.

    Args:
        file_id: File to move.
        target_folder_id: Destination folder, or None for root level.
        requester_id: Caller identity; must be the original uploader.

    Returns:
        Updated File instance.

    Raises:
        NotFoundError: If the file or target folder does not exist.
        PermissionDeniedError: If the requester did not upload the file.
    """
    file_instance = get_file(file_id)

    if file_instance.uploaded_by_id != requester_id:
        logger.warning(
            'User %d denied moving file %d (uploader: %d)',
            requester_id,
            file_id,
            file_instance.uploaded_by_id,
        )
        raise PermissionDeniedError(requester_id, 'move this file')

    _ensure_folder(target_folder_id)

    file_instance.folder_id = target_folder_id
    file_instance.save(update_fields=['folder'])
    logger.info('File %d moved to folder %s', file_id, target_folder_id)
    return file_instance


def delete_file(file_id: int, requester_id: int) -> None:
    """Hard-delete a file, all its versions and their blobs.

    Only available when ``LIBRARY_FILE_DELETE_ENABLED`` is set. Blob
    cleanup is handled by the post_delete signal handlers once the
    transaction commits.

    Args:
        file_id: File to delete.
        requester_id: Caller identity; must be the original uploader.

    Raises:
        PermissionDeniedError: If deletion is disabled or the requester
            did not upload the file.
        NotFoundError: If the file does not exist.
    """
    if not settings.LIBRARY_FILE_DELETE_ENABLED:
        raise PermissionDeniedError(requester_id, 'delete files')

    file_instance = get_file(file_id)
    if file_instance.uploaded_by_id != requester_id:
        logger.warning(
            'User %d denied deleting file %d (uploader: %d)',
            requester_id,
            file_id,
            file_instance.uploaded_by_id,
        )
        raise PermissionDeniedError(requester_id, 'delete this file')

    with transaction.atomic():
        file_instance.delete()
    logger.info('File deleted: ID=%d', file_id)


def resolve_content(
    file_instance: File,
    version_number: int | None = None,
) -> StoredContent:
    """Find the blob holding a version of a file.

    Args:
        file_instance: File to resolve.
        version_number: Version to resolve; the current one if None.

    Returns:
        Storage key and metadata of the version's bytes.

    Raises:
        NotFoundError: If the version does not exist.
    """
    if version_number is None:
        version_number = file_instance.current_version

    if version_number == IMPLICIT_VERSION:
        return StoredContent(
            version_number=IMPLICIT_VERSION,
            storage_name=file_instance.storage_name,
            size_bytes=file_instance.size_bytes,
            mime_type=file_instance.mime_type,
        )

    try:
        version = FileVersion.objects.get(
            file=file_instance,
            version_number=version_number,
        )
    except FileVersion.DoesNotExist as exc:
        raise NotFoundError(
            'version',
            f'{file_instance.id}/v{version_number}',
        ) from exc
    return StoredContent(
        version_number=version.version_number,
        storage_name=version.storage_name,
        size_bytes=version.size_bytes,
        mime_type=version.mime_type,
    )


def open_version(
    file_id: int,
    version_number: int | None = None,
) -> DownloadHandle:
    """Open a version of a file for streaming download.

    The catalog is only read while resolving the blob; no lock is held
    while the caller consumes the stream.

    Args:
        file_id: File to download.
        version_number: Version to download; the current one if None.

    Returns:
        Handle wrapping the open blob stream.

    Raises:
        NotFoundError: If the file, version or blob does not exist.
        AccessDeniedError: If the stored key escapes the storage root.
    """
    file_instance = get_file(file_id)
    content = resolve_content(file_instance, version_number)
    stream = get_storage().get(content.storage_name)
    return DownloadHandle(
        filename=file_instance.original_filename,
        version_number=content.version_number,
        size_bytes=content.size_bytes,
        mime_type=content.mime_type,
        stream=stream,
    )


def open_current_content(file_id: int) -> DownloadHandle:
    """Open the current version of a file for streaming download.

    Args:
        file_id: File to download.

    Returns:
        Handle wrapping the open blob stream.
    """
    return open_version(file_id)


def list_versions(file_id: int) -> list[VersionInfo]:
    """List the version history of a file, newest first.

    The implicit version 1 (the File row itself) is included.

    Args:
        file_id: File whose history to list.

    Returns:
        Version records; exactly one has ``is_current`` set.

    Raises:
        NotFoundError: If the file does not exist.
    """
    file_instance = get_file(file_id)
    current = file_instance.current_version

    history = [
        VersionInfo(
            version_number=version.version_number,
            size_bytes=version.size_bytes,
            mime_type=version.mime_type,
            uploaded_at=version.uploaded_at,
            uploaded_by=version.uploaded_by.get_username(),
            is_current=version.version_number == current,
        )
        for version in FileVersion.objects.filter(
            file=file_instance,
        ).select_related('uploaded_by').order_by('-version_number')
    ]
    history.append(
        VersionInfo(
            version_number=IMPLICIT_VERSION,
            size_bytes=file_instance.size_bytes,
            mime_type=file_instance.mime_type,
            uploaded_at=file_instance.uploaded_at,
            uploaded_by=file_instance.uploaded_by.get_username(),
            is_current=current == IMPLICIT_VERSION,
        ),
    )
    return history


def build_file_entries(files: Iterable[File]) -> list[FileEntry]:
    """Convert file rows to listing records showing current content.

    Current-version metadata is fetched with one extra query for all
    files whose current version is not the implicit one.

    Args:
        files: File instances with ``uploaded_by`` loaded.

    Returns:
        Listing records in the given order.
    """
    files = list(files)
    wanted = Q()
    for file_instance in files:
        if file_instance.current_version != IMPLICIT_VERSION:
            wanted |= Q(
                file_id=file_instance.id,
                version_number=file_instance.current_version,
            )

    current_versions: dict[int, FileVersion] = {}
    if wanted:
        current_versions = {
            version.file_id: version
            for version in FileVersion.objects.filter(wanted)
        }

    entries = []
    for file_instance in files:
        version = current_versions.get(file_instance.id)
        entries.append(
            FileEntry(
                id=file_instance.id,
                filename=file_instance.original_filename,
                size_bytes=(
                    version.size_bytes if version else file_instance.size_bytes
                ),
                mime_type=(
                    version.mime_type if version else file_instance.mime_type
                ),
                uploaded_at=file_instance.uploaded_at,
                uploaded_by=file_instance.uploaded_by.get_username(),
                current_version=file_instance.current_version,
                folder_id=file_instance.folder_id,
            ),
        )
    return entries


def list_files(
    offset: int = 0,
    limit: int = _DEFAULT_PAGE_SIZE,
) -> FilePage:
    """List all files, newest first.

    Args:
        offset: Number of files to skip.
        limit: Maximum number of files to return.

    Returns:
        Page of files with the total file count.

    Raises:
        InvalidInputError: If offset or limit is out of range.
    """
    if offset < 0 or not 1 <= limit <= _MAX_PAGE_SIZE:
        raise InvalidInputError(
            f'Invalid page: offset={offset}, limit={limit}',
        )

    files = File.objects.select_related('uploaded_by').order_by(
        '-uploaded_at',
        '-id',
    )[offset:offset + limit]
    return FilePage(
        files=build_file_entries(files),
        offset=offset,
        limit=limit,
        total=File.objects.count(),
    )


def search_files(query: str) -> list[FileEntry]:
    """Find files whose filename contains the query, newest first.

    Case sensitivity follows ``LIBRARY_SEARCH_CASE_SENSITIVE``.

    Args:
        query: Substring to look for.

    Returns:
        Matching files.

    Raises:
        InvalidInputError: If the query is blank.
    """
    term = query.strip()
    if not term:
        raise InvalidInputError('Search query is required')

    if settings.LIBRARY_SEARCH_CASE_SENSITIVE:
        # LIKE ignores case on SQLite; INSTR does not
        matches = File.objects.annotate(
            match_position=StrIndex('original_filename', Value(term)),
        ).filter(match_position__gt=0)
    else:
        matches = File.objects.filter(original_filename__icontains=term)

    logger.debug('Searching files for %r', term)
    return build_file_entries(
        matches.select_related('uploaded_by').order_by('-uploaded_at', '-id'),
    )


def compute_storage_stats() -> StorageStats:
    """Sum the sizes of every blob the catalog retains.

    Each File row owns one blob (its original upload) and each
    FileVersion row owns one more, whether or not it is current.

    Returns:
        Storage usage totals.
    """
    file_totals = File.objects.aggregate(total=Sum('size_bytes'))
    version_totals = FileVersion.objects.aggregate(total=Sum('size_bytes'))
    return StorageStats(
        file_bytes=file_totals['total'] or 0,
        version_bytes=version_totals['total'] or 0,
        file_count=File.objects.count(),
        version_count=FileVersion.objects.count(),
    )
