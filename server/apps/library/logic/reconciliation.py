"""Out-of-band reconciliation between catalog and blob store.

Registration is not atomic across the two stores, so blobs can outlive
their catalog rows (or never get one). This module finds and removes
such orphans and reports rows whose blob is gone.
"""

import itertools
import logging

from server.apps.library.logic.ingestion import get_storage
from server.apps.library.models import File, FileVersion

logger = logging.getLogger(__name__)


def referenced_keys() -> set[str]:
    """Collect every storage key referenced by the catalog.

    Returns:
        Keys of File rows (original uploads) and FileVersion rows.
    """
    file_keys = File.objects.values_list('storage_name', flat=True)
    version_keys = FileVersion.objects.values_list('storage_name', flat=True)
    return set(itertools.chain(file_keys, version_keys))


def find_orphan_blobs() -> list[str]:
    """Find blobs that no catalog row references.

    Returns:
        Sorted storage keys of orphaned blobs.
    """
    known = referenced_keys()
    return sorted(
        key for key in get_storage().iter_keys()
        if key not in known
    )


def find_missing_blobs() -> list[str]:
    """Find catalog rows whose blob does not exist.

    Returns:
        Sorted storage keys referenced by the catalog but absent on disk.
    """
    stored = set(get_storage().iter_keys())
    return sorted(referenced_keys() - stored)


def purge_orphan_blobs(keys: list[str]) -> int:
    """Delete orphaned blobs, re-checking each against the catalog.

    A key that became referenced since it was listed is skipped.

    Args:
        keys: Candidate orphan keys from ``find_orphan_blobs``.

    Returns:
        Number of blobs deleted.
    """
    storage = get_storage()
    deleted = 0
    for key in keys:
        still_orphaned = not (
            File.objects.filter(storage_name=key).exists()
            or FileVersion.objects.filter(storage_name=key).exists()
        )
        if not still_orphaned:
            logger.info('Skipping blob referenced since listing: %s', key)
            continue
        storage.delete(key)
        deleted += 1
        logger.info('Purged orphan blob: %s', key)
    return deleted
