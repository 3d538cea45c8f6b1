"""Tests for catalog and blob store reconciliation."""

import pytest
from django.core.files.base import ContentFile

from server.apps.library.logic.file_operations import add_version, create_file
from server.apps.library.logic.reconciliation import (
    find_missing_blobs,
    find_orphan_blobs,
    purge_orphan_blobs,
    referenced_keys,
)
from server.apps.library.models import File


@pytest.fixture
def catalogued_file(user):
    """File with one explicit version.

    Returns:
        File instance.
    """
    file_instance = create_file(
        ContentFile(b'first'),
        'clip.mp4',
        'video/mp4',
        None,
        user.id,
    )
    add_version(file_instance.id, ContentFile(b'second'), user.id)
    return file_instance


@pytest.mark.django_db
class TestReconciliation:
    """Tests for orphan and missing blob detection."""

    def test_referenced_keys_cover_files_and_versions(self, catalogued_file):
        """Test every retained blob key is referenced."""
        version_key = catalogued_file.versions.get().storage_name

        assert referenced_keys() == {
            catalogued_file.storage_name,
            version_key,
        }

    def test_consistent_store_has_no_orphans(self, catalogued_file):
        """Test a clean store reports nothing."""
        assert find_orphan_blobs() == []
        assert find_missing_blobs() == []

    def test_finds_orphan_blobs(self, catalogued_file, storage_root):
        """Test unreferenced blobs are reported sorted."""
        (storage_root / 'zz_orphan.mp4').write_bytes(b'z')
        (storage_root / 'aa_orphan.mp4').write_bytes(b'a')

        assert find_orphan_blobs() == ['aa_orphan.mp4', 'zz_orphan.mp4']

    def test_finds_missing_blobs(self, catalogued_file, storage_root):
        """Test rows whose blob vanished are reported."""
        (storage_root / catalogued_file.storage_name).unlink()

        assert find_missing_blobs() == [catalogued_file.storage_name]

    def test_purge_deletes_orphans(self, catalogued_file, storage_root):
        """Test orphans are removed and catalogued blobs survive."""
        (storage_root / 'orphan.mp4').write_bytes(b'o')

        purged = purge_orphan_blobs(find_orphan_blobs())

        assert purged == 1
        assert not (storage_root / 'orphan.mp4').exists()
        assert (storage_root / catalogued_file.storage_name).exists()

    def test_purge_skips_keys_referenced_since_listing(
        self,
        catalogued_file,
        storage_root,
    ):
        """Test a blob registered after listing is kept."""
        (storage_root / 'late.mp4').write_bytes(b'late')
        candidates = find_orphan_blobs()
        File.objects.create(
            storage_name='late.mp4',
            original_filename='late.mp4',
            size_bytes=4,
            mime_type='video/mp4',
            uploaded_by=catalogued_file.uploaded_by,
        )

        purged = purge_orphan_blobs(candidates)

        assert purged == 0
        assert (storage_root / 'late.mp4').exists()
