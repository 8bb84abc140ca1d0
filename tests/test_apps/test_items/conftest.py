"""Shared fixtures for items app tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from server.apps.items.logic.quota_operations import QuotaAccountant
from server.apps.items.models import Item, ItemKind

_TEST_QUOTA_BYTES = 10 * 1024 * 1024


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path) -> Path:
    """Point the storage volume at a per-test directory.

    Returns:
        Path of the volume root.
    """
    settings.MEDIA_ROOT = str(tmp_path)
    settings.ITEMS_MAX_STORAGE_BYTES = _TEST_QUOTA_BYTES
    return tmp_path


@pytest.fixture
def accountant() -> QuotaAccountant:
    """Quota accountant with a 10MB ceiling.

    Returns:
        QuotaAccountant instance.
    """
    return QuotaAccountant(max_bytes=_TEST_QUOTA_BYTES)


@pytest.fixture
def make_upload() -> Callable[..., SimpleUploadedFile]:
    """Factory for uploaded files.

    Returns:
        Function building a SimpleUploadedFile from name and content.
    """
    def factory(
        name: str = 'test.txt',
        content: bytes = b'test file content',
        content_type: str = 'text/plain',
    ) -> SimpleUploadedFile:
        return SimpleUploadedFile(name, content, content_type=content_type)

    return factory


@pytest.fixture
def folder(db) -> Item:
    """Create a top-level folder.

    Returns:
        Folder item named 'Documents'.
    """
    return Item.objects.create(name='Documents', kind=ItemKind.FOLDER)


@pytest.fixture
def make_file_record(db) -> Callable[..., Item]:
    """Factory for file records without content on disk.

    Returns:
        Function creating a file item.
    """
    def factory(
        name: str = 'record.bin',
        size_bytes: int = 100,
        parent: Item | None = None,
        checksum: str = 'a' * 64,
    ) -> Item:
        return Item.objects.create(
            name=name,
            kind=ItemKind.FILE,
            parent=parent,
            file=f'{name}.stored',
            size_bytes=size_bytes,
            mime_type='application/octet-stream',
            checksum_sha256=checksum,
        )

    return factory


@pytest.fixture
def api_client() -> APIClient:
    """DRF test client.

    Returns:
        APIClient instance.
    """
    return APIClient()


@pytest.fixture
def stored_files(media_root) -> Callable[[], list[Path]]:
    """List every regular file on the storage volume.

    Returns:
        Function returning the current files, sorted.
    """
    def listing() -> list[Path]:
        return sorted(
            path for path in media_root.rglob('*') if path.is_file()
        )

    return listing
