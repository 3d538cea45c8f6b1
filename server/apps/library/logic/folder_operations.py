"""Business logic for the folder hierarchy."""

import logging
from typing import Final

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from server.apps.library.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
)
from server.apps.library.infrastructure.metadata import sanitize_filename
from server.apps.library.logic.file_operations import build_file_entries
from server.apps.library.logic.records import (
    FolderContents,
    FolderEntry,
    PathEntry,
)
from server.apps.library.models import File, Folder

logger = logging.getLogger(__name__)

FOLDER_POLICY_DETACH: Final = 'detach'
FOLDER_POLICY_CASCADE: Final = 'cascade'
FOLDER_POLICY_BLOCK: Final = 'block'


def _ensure_folder(folder_id: int | None) -> None:
    if folder_id is not None and not Folder.objects.filter(id=folder_id).exists():
        raise NotFoundError('folder', folder_id)


def _raise_for_rejected_insert(
    name: str,
    parent_id: int | None,
    creator_id: int,
    exc: IntegrityError,
) -> None:
    # The insert may also fail on a foreign key, e.g. a parent deleted
    # after the existence check
    if Folder.objects.filter(parent_id=parent_id, name=name).exists():
        logger.warning(
            'Folder name conflict: %r under parent %s',
            name,
            parent_id,
        )
        raise ConflictError(
            f'Folder with name {name!r} already exists',
        ) from exc
    if parent_id is not None and not Folder.objects.filter(id=parent_id).exists():
        logger.warning('Parent folder %d vanished during create', parent_id)
        raise NotFoundError('folder', parent_id) from exc
    if not get_user_model().objects.filter(pk=creator_id).exists():
        raise NotFoundError('user', creator_id) from exc


def create_folder(
    name: str,
    parent_id: int | None,
    creator_id: int,
) -> Folder:
    """Create a folder under a parent folder or at root level.

    Sibling uniqueness is left to the catalog constraints, so two
    concurrent creations of the same name yield exactly one folder.

    Args:
        name: Requested folder name (trimmed and sanitized).
        parent_id: Parent folder ID, or None for a root-level folder.
        creator_id: Caller identity.

    Returns:
        Created Folder instance.

    Raises:
        InvalidInputError: If the sanitized name is empty.
        NotFoundError: If the parent folder or the creator does not exist.
        ConflictError: If a sibling with the same name exists.
    """
    sanitized_name = sanitize_filename(name.strip())
    if not sanitized_name:
        raise InvalidInputError('Folder name is required')

    _ensure_folder(parent_id)

    try:
        with transaction.atomic():
            folder = Folder.objects.create(
                name=sanitized_name,
                parent_id=parent_id,
                created_by_id=creator_id,
            )
    except IntegrityError as exc:
        _raise_for_rejected_insert(sanitized_name, parent_id, creator_id, exc)
        raise

    logger.info(
        'Folder created: %s (ID: %d, parent: %s)',
        folder.name,
        folder.id,
        parent_id,
    )
    return folder


def list_contents(folder_id: int | None = None) -> FolderContents:
    """List direct subfolders and files of a folder.

    Args:
        folder_id: Folder to list, or None for the root level.

    Returns:
        Subfolders ordered by name, files newest first.

    Raises:
        NotFoundError: If the folder does not exist.
    """
    _ensure_folder(folder_id)

    folders = (
        Folder.objects.filter(parent_id=folder_id)
        .select_related('created_by')
        .order_by('name')
    )
    files = (
        File.objects.filter(folder_id=folder_id)
        .select_related('uploaded_by')
        .order_by('-uploaded_at', '-id')
    )

    return FolderContents(
        folder_id=folder_id,
        folders=[
            FolderEntry(
                id=folder.id,
                name=folder.name,
                created_at=folder.created_at,
                created_by=folder.created_by.get_username(),
            )
            for folder in folders
        ],
        files=build_file_entries(files),
    )


def resolve_path(folder_id: int) -> list[PathEntry]:
    """Build breadcrumbs from the root down to a folder.

    Best effort: a missing ancestor (or a cycle) ends the walk and the
    path found so far is returned.

    Args:
        folder_id: Folder at the end of the path.

    Returns:
        Path entries ordered root first. Empty if the folder is missing.
    """
    path: list[PathEntry] = []
    seen: set[int] = set()
    current_id: int | None = folder_id

    while current_id is not None and current_id not in seen:
        seen.add(current_id)
        row = Folder.objects.filter(id=current_id).values(
            'id',
            'name',
            'parent_id',
        ).first()
        if row is None:
            logger.warning(
                'Folder path truncated at missing folder %d',
                current_id,
            )
            break
        path.append(PathEntry(id=row['id'], name=row['name']))
        current_id = row['parent_id']

    path.reverse()
    return path


def collect_descendant_ids(folder_id: int) -> list[int]:
    """Collect a folder and all its descendants, breadth first.

    Args:
        folder_id: Root of the subtree.

    Returns:
        Folder IDs, starting with ``folder_id``.
    """
    collected = [folder_id]
    frontier = [folder_id]
    while frontier:
        frontier = [
            child_id
            for child_id in Folder.objects.filter(
                parent_id__in=frontier,
            ).values_list('id', flat=True)
            if child_id not in collected
        ]
        collected.extend(frontier)
    return collected


def delete_folder(folder_id: int, requester_id: int) -> int:
    """Delete a folder and every descendant folder.

    Files inside the subtree follow ``LIBRARY_FOLDER_DELETE_POLICY``:
    ``detach`` moves them to root level, ``cascade`` deletes them with
    their blobs, ``block`` refuses the deletion while any file remains.

    Args:
        folder_id: Folder to delete.
        requester_id: Caller identity; must be the folder's creator.

    Returns:
        Number of folders deleted.

    Raises:
        NotFoundError: If the folder does not exist.
        PermissionDeniedError: If the requester did not create it.
        ConflictError: If the policy is ``block`` and files remain.
    """
    policy = settings.LIBRARY_FOLDER_DELETE_POLICY

    with transaction.atomic():
        try:
            folder = Folder.objects.select_for_update().get(id=folder_id)
        except Folder.DoesNotExist as exc:
            raise NotFoundError('folder', folder_id) from exc

        if folder.created_by_id != requester_id:
            logger.warning(
                'User %d denied deleting folder %d (creator: %d)',
                requester_id,
                folder_id,
                folder.created_by_id,
            )
            raise PermissionDeniedError(requester_id, 'delete this folder')

        subtree_ids = collect_descendant_ids(folder_id)
        contained_files = File.objects.filter(folder_id__in=subtree_ids)

        if policy == FOLDER_POLICY_BLOCK and contained_files.exists():
            raise ConflictError(
                f'Folder {folder_id} still contains files',
            )
        if policy == FOLDER_POLICY_CASCADE:
            file_count = contained_files.count()
            # post_delete signals remove the blobs
            contained_files.delete()
            logger.info(
                'Deleted %d files inside folder %d',
                file_count,
                folder_id,
            )
        else:
            contained_files.update(folder=None)

        Folder.objects.filter(id__in=subtree_ids).delete()
        deleted_count = len(subtree_ids)

    logger.info(
        'Folder deleted: ID=%d with %d folders (policy: %s)',
        folder_id,
        deleted_count,
        policy,
    )
    return deleted_count
