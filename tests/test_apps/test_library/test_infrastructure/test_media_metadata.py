"""Tests for filename and MIME helpers."""

import re
from io import BytesIO

import pytest
from django.core.files.base import ContentFile

from server.apps.library.exceptions import InvalidInputError
from server.apps.library.infrastructure.metadata import (
    generate_storage_key,
    get_content_size,
    get_file_extension,
    is_allowed_mime_type,
    sanitize_filename,
)


@pytest.mark.parametrize(('raw', 'expected'), [
    ('holiday.mp4', 'holiday.mp4'),
    ('  spaced name  ', 'spaced name'),
    ('a/b\\c', 'a_b_c'),
    ('../../etc/passwd', '____etc_passwd'),
    ('what?<>:"|*.png', 'what_______.png'),
    ('..', '_'),
    ('   ', ''),
])
def test_sanitize_filename(raw, expected):
    """Test separators, traversal and reserved characters are replaced."""
    assert sanitize_filename(raw) == expected


def test_generate_storage_key_keeps_extension():
    """Test generated keys preserve the original extension."""
    key = generate_storage_key('holiday clip.mp4')

    assert re.fullmatch(r'holiday clip_\d+_[0-9a-f]{8}\.mp4', key)


def test_generate_storage_key_is_unique():
    """Test keys for the same filename differ."""
    keys = {generate_storage_key('clip.mp4') for _ in range(50)}

    assert len(keys) == 50


def test_generate_storage_key_strips_directories():
    """Test keys never contain path separators or traversal."""
    key = generate_storage_key('../../etc/passwd.png')

    assert '/' not in key
    assert '..' not in key
    assert key.startswith('passwd_')
    assert key.endswith('.png')


def test_generate_storage_key_falls_back_for_empty_stem():
    """Test a filename without a usable stem still yields a key."""
    key = generate_storage_key('???')

    assert '?' not in key
    assert key


def test_generate_storage_key_drops_unsafe_extension():
    """Test extensions with odd characters are not carried over."""
    key = generate_storage_key('clip.mp4 ')

    assert not key.endswith(' ')


def test_get_file_extension():
    """Test extension is lowercased and keeps its dot."""
    assert get_file_extension('clip.MP4') == '.mp4'
    assert get_file_extension('README') == ''


@pytest.mark.parametrize(('mime_type', 'allowed'), [
    ('video/mp4', True),
    ('VIDEO/MP4', True),
    ('audio/mpeg; charset=binary', True),
    ('application/pdf', False),
    ('text/plain', False),
])
def test_is_allowed_mime_type(mime_type, allowed):
    """Test allow-list matching ignores case and parameters."""
    assert is_allowed_mime_type(
        mime_type,
        {'video/mp4', 'audio/mpeg'},
    ) is allowed


def test_get_content_size_uses_size_attribute():
    """Test Django files report their own size."""
    assert get_content_size(ContentFile(b'12345')) == 5


def test_get_content_size_measures_stream_without_consuming():
    """Test plain streams are measured and rewound."""
    stream = BytesIO(b'abcdef')
    stream.read(2)

    assert get_content_size(stream) == 4
    assert stream.read() == b'cdef'


def test_get_content_size_rejects_non_seekable_stream(interrupted_stream):
    """Test streams that cannot be measured need a declared size."""
    with pytest.raises(InvalidInputError):
        get_content_size(interrupted_stream)
