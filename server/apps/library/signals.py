"""Signal handlers for library app."""

import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.library.exceptions import LibraryError
from server.apps.library.logic.ingestion import get_storage
from server.apps.library.models import File, FileVersion

logger = logging.getLogger(__name__)


def delete_blob(storage_name: str) -> None:
    """Delete a blob whose catalog row is gone.

    Args:
        storage_name: Storage key of the blob.
    """
    storage = get_storage()
    try:
        if storage.exists(storage_name):
            storage.delete(storage_name)
            logger.info('Blob deleted after catalog delete: %s', storage_name)
        else:
            logger.warning(
                'Blob not found in storage (already deleted?): %s',
                storage_name,
            )
    except LibraryError:
        # Log error but don't raise - catalog delete already committed
        # Orphaned blob is left for reconcile_blobs
        logger.exception(
            'Failed to delete blob from storage (orphaned): %s',
            storage_name,
        )


@receiver(post_delete, sender=File)
@receiver(post_delete, sender=FileVersion)
def delete_blob_from_storage(
    sender: type[File] | type[FileVersion],
    instance: File | FileVersion,
    **kwargs: object,
) -> None:
    """Delete the row's blob once the deleting transaction commits.

    Args:
        sender: The File or FileVersion model class.
        instance: The instance being deleted.
        **kwargs: Additional signal arguments.
    """
    if not instance.storage_name:
        return
    transaction.on_commit(partial(delete_blob, instance.storage_name))
