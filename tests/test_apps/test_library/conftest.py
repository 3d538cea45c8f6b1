"""Shared fixtures for library app tests."""

import io

import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import storages

User = get_user_model()


class InterruptedStream(io.RawIOBase):
    """Non-seekable upload stream that fails after its first chunk."""

    def __init__(self, first_chunk: bytes) -> None:
        super().__init__()
        self._first_chunk = first_chunk
        self._sent = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._sent:
            raise RuntimeError('client disconnected')
        self._sent = True
        size = min(len(buffer), len(self._first_chunk))
        buffer[:size] = self._first_chunk[:size]
        return size


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for ownership tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
    )


@pytest.fixture(autouse=True)
def storage_root(settings, tmp_path):
    """Point the blob store at a temporary directory.

    Returns:
        Path of the temporary storage root.
    """
    root = tmp_path / 'blobs'
    root.mkdir()
    settings.STORAGES = {
        'default': {
            'BACKEND': 'server.apps.library.infrastructure.storage.BlobStorage',
            'OPTIONS': {'location': str(root)},
        },
    }
    return root


@pytest.fixture
def blob_storage(storage_root):
    """Configured blob store bound to the temporary root.

    Returns:
        BlobStorage instance.
    """
    return storages['default']


@pytest.fixture
def sample_video():
    """Small video upload.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'fake mp4 payload', name='clip.mp4')


@pytest.fixture
def sample_image():
    """Small image upload.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'\x89PNG fake image', name='photo.png')


@pytest.fixture
def interrupted_stream():
    """Upload stream whose client drops after 1000 bytes.

    Returns:
        InterruptedStream instance.
    """
    return InterruptedStream(b'x' * 1000)
