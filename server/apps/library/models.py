"""Database models for library app.

The catalog is the single source of truth for the folder tree, for where
each logical file's bytes live and for which version is current.
"""

from typing import Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_STORAGE_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255

# Version 1 is the File row's own upload
IMPLICIT_VERSION: Final = 1


@final
class Folder(models.Model):
    """A node in the folder tree.

    Folders without a parent are root nodes; several roots coexist as
    siblings under an implicit null parent. Sibling names are unique,
    including among root nodes.
    """

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        related_name='children',
        null=True,
        blank=True,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='folders',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']

        constraints = [
            models.UniqueConstraint(
                fields=['parent', 'name'],
                condition=models.Q(parent__isnull=False),
                name='folders_parent_name_unique',
            ),
            # NULL parents compare as distinct, so roots need their own rule
            models.UniqueConstraint(
                fields=['name'],
                condition=models.Q(parent__isnull=True),
                name='folders_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class File(models.Model):
    """Logical document identity, stable across versions.

    ``storage_name``, ``size_bytes`` and ``mime_type`` describe the
    original upload (version 1) and are never rewritten. Use
    ``current_version`` to find the authoritative content.
    """

    storage_name = models.CharField(
        max_length=_STORAGE_NAME_MAX_LENGTH,
        unique=True,
        help_text='Blob store key of the original upload',
    )

    original_filename = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        db_index=True,
        help_text='Sanitized filename shown to users',
    )

    size_bytes = models.BigIntegerField(
        help_text='Size of the original upload in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Declared MIME type of the original upload',
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.SET_NULL,
        related_name='files',
        null=True,
        blank=True,
    )

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='files',
    )

    uploaded_at = models.DateTimeField(auto_now_add=True)

    current_version = models.PositiveIntegerField(default=IMPLICIT_VERSION)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at', '-id']

        indexes = [
            models.Index(
                fields=['folder', '-uploaded_at'],
                name='files_folder_recent_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_version__gte=IMPLICIT_VERSION),
                name='files_current_version_positive',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.original_filename} (v{self.current_version})'


@final
class FileVersion(models.Model):
    """Immutable record of one later upload of a File.

    Version numbers start at 2; version 1 is the File row itself.
    """

    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='versions',
    )

    version_number = models.PositiveIntegerField()

    storage_name = models.CharField(
        max_length=_STORAGE_NAME_MAX_LENGTH,
        unique=True,
        help_text='Blob store key of this version',
    )

    size_bytes = models.BigIntegerField()

    mime_type = models.CharField(max_length=_MIME_TYPE_MAX_LENGTH)

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='file_versions',
    )

    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File version'  # type: ignore[mutable-override]
        verbose_name_plural = 'File versions'  # type: ignore[mutable-override]
        ordering = ['file', '-version_number']

        constraints = [
            models.UniqueConstraint(
                fields=['file', 'version_number'],
                name='file_versions_file_number_unique',
            ),
            models.CheckConstraint(
                condition=models.Q(version_number__gt=IMPLICIT_VERSION),
                name='file_versions_number_after_implicit',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.file_id}:v{self.version_number}'
