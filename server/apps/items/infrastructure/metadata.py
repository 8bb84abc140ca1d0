"""Metadata extraction utilities for uploaded content."""

import hashlib
import mimetypes
from pathlib import PurePosixPath
from typing import BinaryIO, Final

from django.core.exceptions import ValidationError

_CHUNK_SIZE: Final = 8192  # 8KB chunks for checksum calculation
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_IGNORED_PARTS: Final = frozenset(('', '.', '..'))


def detect_mime_type(filename: str, content_type: str | None = None) -> str:
    """Detect MIME type of uploaded content.

    Prefers the content type reported by the client and falls back to
    guessing from the filename extension.

    Args:
        filename: Filename with extension.
        content_type: Content type sent with the upload, if any.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    if content_type and content_type != _DEFAULT_MIME_TYPE:
        return content_type
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def calculate_checksum(file_obj: BinaryIO) -> str:
    """Calculate SHA256 checksum of file.

    Reads file in chunks to handle large files efficiently.
    Resets file pointer to beginning after calculation.

    Args:
        file_obj: File-like object to checksum.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    sha256_hash = hashlib.sha256()

    file_obj.seek(0)

    for chunk in iter(lambda: file_obj.read(_CHUNK_SIZE), b''):
        sha256_hash.update(chunk)

    # Reset file pointer to beginning for subsequent operations
    file_obj.seek(0)

    return sha256_hash.hexdigest()


def extract_filename(path: str) -> str:
    """Extract filename from a client-side path.

    Args:
        path: Path as sent by the client (e.g., 'docs/file.pdf').

    Returns:
        Filename (e.g., 'file.pdf').
    """
    return PurePosixPath(path.replace('\\', '/')).name


def split_relative_path(
    relative_path: str,
    root_name: str = '',
) -> tuple[tuple[str, ...], str]:
    """Split a relative upload path into folder components and filename.

    Browsers prefix directory uploads with the selected folder's name;
    when the first component equals ``root_name`` it is dropped so the
    remaining components are relative to the destination folder.

    Example: ('photos/2024/a.jpg', 'photos') -> (('2024',), 'a.jpg')

    Args:
        relative_path: Path of the file inside the uploaded tree.
        root_name: Name of the destination folder.

    Returns:
        Tuple of (folder components, filename).

    Raises:
        ValidationError: If the path has no filename component.
    """
    parts = [
        part
        for part in relative_path.replace('\\', '/').split('/')
        if part.strip() not in _IGNORED_PARTS
    ]
    if not parts:
        raise ValidationError(f'Invalid upload path: {relative_path!r}')

    *folders, filename = parts
    if folders and folders[0] == root_name:
        folders = folders[1:]
    return tuple(folders), filename
