"""Business logic for flat and folder-tree uploads.

Every upload follows the same discipline:

1. Incoming content is staged on the storage volume.
2. Duplicate and quota decisions are made against the staged content.
3. Each accepted file gets its record created and its content moved
   from staging to a permanent name inside one savepoint.
4. Whatever did not end up behind a committed record is discarded,
   on every exit path.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import UploadedFile
from django.db import DatabaseError, transaction

from server.apps.items.infrastructure.metadata import (
    calculate_checksum,
    detect_mime_type,
    extract_filename,
    split_relative_path,
)
from server.apps.items.logic.item_operations import (
    create_item,
    ensure_folder_path,
    find_existing_file,
    find_folder_path,
    find_or_create_folder,
    resolve_parent,
)
from server.apps.items.logic.quota_operations import (
    QuotaAccountant,
    get_quota_accountant,
    reserve_storage,
)
from server.apps.items.models import Item, ItemKind

if TYPE_CHECKING:
    from server.apps.items.infrastructure.storage import ItemStorage

logger = logging.getLogger(__name__)

_DUPLICATE_REASON = 'Already exists'


def _get_storage() -> 'ItemStorage':
    """Get the configured default storage backend.

    Returns:
        ItemStorage instance.
    """
    return default_storage  # type: ignore[return-value]


@dataclass
class StagedUpload:
    """Uploaded content written to staging, not yet committed."""

    name: str
    folder_parts: tuple[str, ...]
    size_bytes: int
    mime_type: str
    staged_name: str
    checksum: str = ''
    final_name: str = ''
    durable: bool = False
    released: bool = False


@dataclass
class UploadOutcome:
    """Per-file entry of a folder upload summary."""

    name: str
    size: int | None = None
    reason: str = ''
    error: str = ''


@dataclass
class FolderUploadResult:
    """Summary of a folder-tree upload."""

    folder: Item
    uploaded: list[UploadOutcome] = field(default_factory=list)
    skipped: list[UploadOutcome] = field(default_factory=list)
    failed: list[UploadOutcome] = field(default_factory=list)


class UploadBatch:
    """Staged content of one request.

    Tracks every staged upload so that :meth:`release` can remove all
    content that did not become durable, whatever happened in between.
    """

    def __init__(self, storage: 'ItemStorage') -> None:
        """Initialize UploadBatch.

        Args:
            storage: Storage backend holding the staged content.
        """
        self._storage = storage
        self.entries: list[StagedUpload] = []

    def stage(
        self,
        uploaded: UploadedFile,
        relative_path: str | None = None,
        root_name: str = '',
    ) -> StagedUpload:
        """Write one uploaded file to the staging area.

        Args:
            uploaded: File received with the request.
            relative_path: Path of the file inside an uploaded tree.
            root_name: Destination folder name (see split_relative_path).

        Returns:
            The staged upload.
        """
        original_name = uploaded.name or ''
        if relative_path:
            folder_parts, name = split_relative_path(relative_path, root_name)
        else:
            folder_parts, name = (), extract_filename(original_name)

        staged_name = self._storage.stage(uploaded, name)
        entry = StagedUpload(
            name=name,
            folder_parts=folder_parts,
            size_bytes=uploaded.size or 0,
            mime_type=detect_mime_type(name, uploaded.content_type),
            staged_name=staged_name,
        )
        self.entries.append(entry)
        logger.debug('Staged upload %r as %s', name, staged_name)
        return entry

    def checksum(self, entry: StagedUpload) -> str:
        """Compute (once) the checksum of staged content.

        Args:
            entry: Staged upload.

        Returns:
            Hex-encoded SHA256 of the content.
        """
        if not entry.checksum:
            with self._storage.open(entry.staged_name, 'rb') as staged:
                entry.checksum = calculate_checksum(staged)
        return entry.checksum

    def commit(self, entry: StagedUpload, parent: Item | None) -> Item:
        """Create the file record and finalize its content.

        Must run inside a transaction: if moving the content fails the
        record is rolled back with it.

        Args:
            entry: Staged upload.
            parent: Containing folder, ``None`` for the top level.

        Returns:
            Created file item.
        """
        checksum = self.checksum(entry)
        with transaction.atomic():
            item = create_item(Item(
                name=entry.name,
                kind=ItemKind.FILE,
                parent=parent,
                file=entry.staged_name,
                size_bytes=entry.size_bytes,
                mime_type=entry.mime_type,
                checksum_sha256=checksum,
            ))
            entry.final_name = self._storage.finalize(entry.staged_name)
            item.file.name = entry.final_name
            item.save(update_fields=['file'])
        return item

    def discard(self, entry: StagedUpload) -> None:
        """Remove an entry's content, staged or finalized.

        Args:
            entry: Staged upload.
        """
        if entry.final_name:
            self._storage.rollback_upload(entry.final_name)
            entry.final_name = ''
        else:
            self._storage.discard(entry.staged_name)
        entry.durable = False
        entry.released = True

    def mark_durable(self) -> None:
        """Mark all finalized entries as backed by committed records."""
        for entry in self.entries:
            if entry.final_name:
                entry.durable = True

    def release(self) -> int:
        """Discard every entry that did not become durable.

        Returns:
            Number of entries discarded.
        """
        released = 0
        for entry in self.entries:
            if entry.durable or entry.released:
                continue
            self.discard(entry)
            released += 1
        if released:
            logger.info('Released %d uncommitted uploads', released)
        return released


@contextmanager
def upload_batch(storage: 'ItemStorage | None' = None) -> Iterator[UploadBatch]:
    """Provide an UploadBatch and release its leftovers on exit.

    Args:
        storage: Storage backend, the default storage if omitted.

    Yields:
        UploadBatch for the request.
    """
    batch = UploadBatch(storage or _get_storage())
    try:
        yield batch
    finally:
        batch.release()


def upload_files(
    files: Sequence[UploadedFile],
    parent_id: int | None = None,
    accountant: QuotaAccountant | None = None,
) -> list[Item]:
    """Upload files into a folder.

    All-or-nothing: the combined size is checked against the quota and
    either every file is committed or none is. No duplicate detection.

    Args:
        files: Files received with the request.
        parent_id: Destination folder id, ``None`` for the top level.
        accountant: Quota accountant, built from settings if omitted.

    Returns:
        Created file items, in request order.

    Raises:
        ValidationError: If no files were sent or the parent is a file.
        ItemNotFoundError: If the parent does not exist.
        QuotaExceededError: If the files do not fit in the quota.
    """
    accountant = accountant or get_quota_accountant()

    with upload_batch() as batch:
        entries = [batch.stage(uploaded) for uploaded in files]
        if not entries:
            raise ValidationError('File required')

        parent = resolve_parent(parent_id)
        total_size = sum(entry.size_bytes for entry in entries)
        logger.info(
            'Uploading %d files (%d bytes) to %s',
            len(entries),
            total_size,
            parent_id or 'root',
        )

        with reserve_storage(accountant, total_size):
            created = [batch.commit(entry, parent) for entry in entries]
        batch.mark_durable()

    return created


def upload_folder(  # noqa: WPS210
    files: Sequence[UploadedFile],
    folder_name: str,
    parent_id: int | None = None,
    relative_paths: Sequence[str] | None = None,
    accountant: QuotaAccountant | None = None,
) -> FolderUploadResult:
    """Upload a folder tree, skipping files that are already stored.

    The destination folder is found or created first. Files whose name,
    location, size and checksum match a stored file are skipped. The
    remaining files are checked against the quota as one batch: if they
    do not all fit, none is committed. Past the quota check, a file that
    fails to commit is reported and the rest of the batch continues.

    Args:
        files: Files received with the request.
        folder_name: Name of the destination folder.
        parent_id: Folder to create the destination in, ``None`` for top.
        relative_paths: Path of each file inside the uploaded tree,
            aligned with ``files``. Without it every file goes directly
            into the destination folder.
        accountant: Quota accountant, built from settings if omitted.

    Returns:
        FolderUploadResult with uploaded, skipped and failed files.

    Raises:
        ValidationError: If no files or no folder name were sent.
        ItemNotFoundError: If the parent does not exist.
        QuotaExceededError: If the new files do not fit in the quota.
    """
    accountant = accountant or get_quota_accountant()
    folder_name = (folder_name or '').strip()

    if relative_paths is not None and len(relative_paths) != len(files):
        raise ValidationError(
            f'Got {len(relative_paths)} paths for {len(files)} files',
        )
    paths: Sequence[str | None] = relative_paths or [None] * len(files)

    with upload_batch() as batch:
        entries = [
            batch.stage(uploaded, path, folder_name)
            for uploaded, path in zip(files, paths, strict=True)
        ]
        if not entries:
            raise ValidationError('No files uploaded')
        if not folder_name:
            raise ValidationError('Folder name is required')

        parent = resolve_parent(parent_id)
        folder, created = find_or_create_folder(folder_name, parent)
        logger.info(
            'Folder upload of %d files into %r (ID: %d, created: %s)',
            len(entries),
            folder.name,
            folder.pk,
            created,
        )

        result = FolderUploadResult(folder=folder)
        candidates = _skip_duplicates(batch, entries, folder, result)
        new_files_size = sum(entry.size_bytes for entry in candidates)

        with reserve_storage(
            accountant,
            new_files_size,
            skipped_count=len(result.skipped),
        ):
            for entry in candidates:
                _commit_tolerant(batch, entry, folder, result)
        batch.mark_durable()

    logger.info(
        'Folder upload into %r finished: %d uploaded, %d skipped, %d failed',
        folder.name,
        len(result.uploaded),
        len(result.skipped),
        len(result.failed),
    )
    return result


def _skip_duplicates(
    batch: UploadBatch,
    entries: list[StagedUpload],
    folder: Item,
    result: FolderUploadResult,
) -> list[StagedUpload]:
    """Discard entries whose content is already stored in place.

    Args:
        batch: Upload batch holding the entries.
        entries: Staged uploads.
        folder: Destination folder.
        result: Summary to record skipped files in.

    Returns:
        Entries that still need to be committed.
    """
    candidates = []
    for entry in entries:
        checksum = batch.checksum(entry)
        target = find_folder_path(folder, entry.folder_parts)
        existing = target and find_existing_file(
            entry.name,
            target,
            entry.size_bytes,
            checksum,
        )
        if existing:
            logger.info(
                'Skipping duplicate upload %r (matches ID: %d)',
                entry.name,
                existing.pk,
            )
            batch.discard(entry)
            result.skipped.append(UploadOutcome(
                name=entry.name,
                size=entry.size_bytes,
                reason=_DUPLICATE_REASON,
            ))
        else:
            candidates.append(entry)
    return candidates


def _commit_tolerant(
    batch: UploadBatch,
    entry: StagedUpload,
    folder: Item,
    result: FolderUploadResult,
) -> None:
    """Commit one entry, recording a failure instead of raising.

    Args:
        batch: Upload batch holding the entry.
        entry: Staged upload.
        folder: Destination folder.
        result: Summary to record the outcome in.
    """
    try:
        target = ensure_folder_path(folder, entry.folder_parts)
        batch.commit(entry, target)
    except (ValidationError, DatabaseError, OSError) as error:
        logger.exception('Failed to save uploaded file %r', entry.name)
        batch.discard(entry)
        result.failed.append(UploadOutcome(name=entry.name, error=str(error)))
    else:
        result.uploaded.append(
            UploadOutcome(name=entry.name, size=entry.size_bytes),
        )
