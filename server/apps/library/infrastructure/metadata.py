"""Metadata utilities for uploaded media."""

import io
import os
import re
import secrets
import time
from collections.abc import Collection
from pathlib import Path
from typing import IO, Final

from server.apps.library.exceptions import InvalidInputError

_SEPARATORS: Final = re.compile(r'[\\/]')
_TRAVERSAL: Final = re.compile(r'\.\.')
_RESERVED: Final = re.compile(r'[<>:"|?*\x00-\x1f]')
_SAFE_EXTENSION: Final = re.compile(r'^\.[A-Za-z0-9]{1,16}$')
_REPLACEMENT: Final = '_'
_FALLBACK_STEM: Final = 'upload'
_RANDOM_BYTES: Final = 4  # 8 hex chars
_MAX_STEM_LENGTH: Final = 200


def sanitize_filename(filename: str) -> str:
    """Make a raw name safe for filesystems and display.

    Path separators, parent-directory sequences and characters that are
    reserved on common filesystems are replaced with underscores.

    Args:
        filename: Raw name supplied by a client.

    Returns:
        Sanitized name, stripped of surrounding whitespace. May be empty.
    """
    sanitized = _SEPARATORS.sub(_REPLACEMENT, filename)
    sanitized = _TRAVERSAL.sub(_REPLACEMENT, sanitized)
    sanitized = _RESERVED.sub(_REPLACEMENT, sanitized)
    return sanitized.strip()


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'clip.MP4').

    Returns:
        Extension with dot, lowercase (e.g., '.mp4').
        Returns empty string if no extension.
    """
    return Path(filename).suffix.lower()


def generate_storage_key(original_filename: str) -> str:
    """Generate a collision-free blob store key for an upload.

    Example: 'holiday clip.mp4' -> 'holiday clip_1718000000000_9f1c2a7b.mp4'

    Args:
        original_filename: Filename as supplied by the uploader.

    Returns:
        Flat key: sanitized stem, millisecond timestamp, random hex and
        the original extension.
    """
    basename = _SEPARATORS.split(original_filename)[-1]
    path = Path(basename)
    stem = sanitize_filename(path.stem)[:_MAX_STEM_LENGTH] or _FALLBACK_STEM
    extension = path.suffix if _SAFE_EXTENSION.match(path.suffix) else ''
    timestamp = time.time_ns() // 1_000_000
    random_part = secrets.token_hex(_RANDOM_BYTES)
    return f'{stem}_{timestamp}_{random_part}{extension}'


def is_allowed_mime_type(mime_type: str, allowed: Collection[str]) -> bool:
    """Check a declared MIME type against the allow-list.

    Parameters such as ``; charset=...`` are ignored and the comparison
    is case-insensitive.

    Args:
        mime_type: Declared content type.
        allowed: Allowed MIME types.

    Returns:
        True if the type is allowed.
    """
    essence = mime_type.split(';', 1)[0].strip().lower()
    return essence in allowed


def get_content_size(file_obj: IO[bytes]) -> int:
    """Get size of file-like object without consuming it.

    Args:
        file_obj: File-like object (Django File or binary stream).

    Returns:
        Size in bytes.

    Raises:
        InvalidInputError: If the stream cannot be measured.
    """
    size = getattr(file_obj, 'size', None)
    if size is not None:
        return int(size)
    try:
        position = file_obj.tell()
        file_obj.seek(0, os.SEEK_END)
        end = file_obj.tell()
        file_obj.seek(position)
    except io.UnsupportedOperation as exc:
        raise InvalidInputError(
            'Declared size is required for non-seekable streams',
        ) from exc
    return end - position
