"""Result records returned by library operations.

Plain frozen dataclasses, detached from the ORM, so callers never hold
querysets or lazy relations.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import IO


@dataclass(frozen=True, slots=True)
class FolderEntry:
    """Subfolder row in a folder listing."""

    id: int
    name: str
    created_at: datetime
    created_by: str


@dataclass(frozen=True, slots=True)
class FileEntry:
    """File row in a listing or search result.

    ``size_bytes`` and ``mime_type`` describe the current version.
    """

    id: int
    filename: str
    size_bytes: int
    mime_type: str
    uploaded_at: datetime
    uploaded_by: str
    current_version: int
    folder_id: int | None


@dataclass(frozen=True, slots=True)
class FolderContents:
    """Direct children of a folder (or of the root level)."""

    folder_id: int | None
    folders: list[FolderEntry] = field(default_factory=list)
    files: list[FileEntry] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PathEntry:
    """One breadcrumb step."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class FilePage:
    """Slice of the all-files listing."""

    files: list[FileEntry]
    offset: int
    limit: int
    total: int


@dataclass(frozen=True, slots=True)
class VersionInfo:
    """One entry of a file's version history."""

    version_number: int
    size_bytes: int
    mime_type: str
    uploaded_at: datetime
    uploaded_by: str
    is_current: bool


@dataclass(frozen=True, slots=True)
class StorageStats:
    """Storage usage across all retained blobs.

    Attributes:
        file_bytes: Bytes of every file's original upload.
        version_bytes: Bytes of every later version.
        file_count: Number of logical files.
        version_count: Number of explicit version rows.
    """

    file_bytes: int
    version_bytes: int
    file_count: int
    version_count: int

    @property
    def total_bytes(self) -> int:
        """Total bytes held by the blob store for catalogued content."""
        return self.file_bytes + self.version_bytes


@dataclass(frozen=True, slots=True)
class StoredContent:
    """Blob store location and metadata of one version's bytes."""

    version_number: int
    storage_name: str
    size_bytes: int
    mime_type: str


@dataclass(slots=True)
class DownloadHandle:
    """Open stream of a file version plus what a response needs."""

    filename: str
    version_number: int
    size_bytes: int
    mime_type: str
    stream: IO[bytes]

    def chunks(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Read the stream in chunks and close it when exhausted.

        Args:
            chunk_size: Bytes per chunk.

        Yields:
            Consecutive chunks of the blob.
        """
        try:
            while chunk := self.stream.read(chunk_size):
                yield chunk
        finally:
            self.stream.close()

    def close(self) -> None:
        """Close the underlying stream."""
        self.stream.close()
