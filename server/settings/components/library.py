"""Media library settings: ingestion limits and catalog policies."""

from decouple import Choices

from server.settings.components import config

# 10 GB default upload limit
LIBRARY_MAX_UPLOAD_BYTES = config(
    'LIBRARY_MAX_UPLOAD_BYTES',
    cast=int,
    default=10 * 1024 * 1024 * 1024,
)

LIBRARY_ALLOWED_MIME_TYPES = frozenset((
    # Video
    'video/mp4',
    'video/mpeg',
    'video/quicktime',
    'video/x-msvideo',
    'video/x-ms-wmv',
    'video/webm',
    # Audio
    'audio/mpeg',
    'audio/mp4',
    'audio/wav',
    'audio/x-wav',
    'audio/ogg',
    'audio/webm',
    # Image
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/svg+xml',
    'image/bmp',
))

LIBRARY_SEARCH_CASE_SENSITIVE = config(
    'LIBRARY_SEARCH_CASE_SENSITIVE',
    cast=bool,
    default=False,
)

# What happens to files inside a deleted folder subtree:
# detach - files move to root level
# cascade - files (and their blobs) are deleted with the folders
# block - deletion is refused while the subtree contains files
LIBRARY_FOLDER_DELETE_POLICY = config(
    'LIBRARY_FOLDER_DELETE_POLICY',
    cast=Choices(['detach', 'cascade', 'block']),
    default='detach',
)

LIBRARY_FILE_DELETE_ENABLED = config(
    'LIBRARY_FILE_DELETE_ENABLED',
    cast=bool,
    default=False,
)

LIBRARY_VERSION_RETRY_ATTEMPTS = config(
    'LIBRARY_VERSION_RETRY_ATTEMPTS',
    cast=int,
    default=3,
)
