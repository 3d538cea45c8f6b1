"""Exceptions for library app.

Every failure of a library operation is raised as a subclass of
``LibraryError`` so callers can map each kind to a distinct outcome.
"""


class LibraryError(Exception):
    """Base class for all media library errors."""


class InvalidInputError(LibraryError):
    """Raised for malformed identifiers, empty names or blank queries."""


class NotFoundError(LibraryError):
    """Raised when a folder, file, version or blob does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        """Initialize NotFoundError.

        Args:
            entity: Kind of missing object (e.g., 'folder', 'file').
            identifier: Identifier that failed to resolve.
        """
        self.entity = entity
        self.identifier = identifier
        super().__init__(f'{entity.capitalize()} not found: {identifier}')


class ConflictError(LibraryError):
    """Raised on duplicate sibling names or lost version races."""


class PermissionDeniedError(LibraryError):
    """Raised when a non-owner attempts a mutating operation."""

    def __init__(self, requester_id: int, action: str) -> None:
        """Initialize PermissionDeniedError.

        Args:
            requester_id: Caller identity that was refused.
            action: Short description of the refused action.
        """
        self.requester_id = requester_id
        self.action = action
        super().__init__(f'User {requester_id} is not allowed to {action}')


class UnsupportedMediaError(LibraryError):
    """Raised when the declared content type is not allow-listed."""

    def __init__(self, mime_type: str) -> None:
        """Initialize UnsupportedMediaError.

        Args:
            mime_type: Rejected declared MIME type.
        """
        self.mime_type = mime_type
        super().__init__(
            f'File type {mime_type} is not allowed. '
            'Only video, audio, and image files are permitted.',
        )


class PayloadTooLargeError(LibraryError):
    """Raised when an upload exceeds the configured maximum size."""

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        """Initialize PayloadTooLargeError.

        Args:
            size_bytes: Size of the rejected upload in bytes.
            max_bytes: Configured upload limit in bytes.
        """
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__(
            f'Upload of {size_bytes} bytes exceeds the limit '
            f'of {max_bytes} bytes',
        )


class StorageFailureError(LibraryError):
    """Raised when the blob store cannot write, read or delete bytes."""


class AccessDeniedError(LibraryError):
    """Raised when a storage key resolves outside the storage root."""

    def __init__(self, key: str) -> None:
        """Initialize AccessDeniedError.

        Args:
            key: Offending storage key.
        """
        self.key = key
        super().__init__(f'Storage key escapes the storage root: {key!r}')
