"""Django storage configuration for the local blob store.

User media is written as flat files under a single storage root on the
local disk. The root is the only directory the blob store may touch.
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

LIBRARY_STORAGE_ROOT = config(
    'LIBRARY_STORAGE_ROOT',
    default=str(BASE_DIR.joinpath('uploads')),
)

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.library.infrastructure.storage.BlobStorage',
        'OPTIONS': {
            'location': LIBRARY_STORAGE_ROOT,
        },
    },
}
