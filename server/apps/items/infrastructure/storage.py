"""Custom storage backend for the local content volume."""

import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Any, final, override

from django.conf import settings
from django.core.files.move import file_move_safe
from django.core.files.storage import FileSystemStorage

logger = logging.getLogger(__name__)


@final
class ItemStorage(FileSystemStorage):
    """Local disk storage for item content.

    Extends Django's FileSystemStorage with:
    - A staging area for uploads that are not committed yet
    - Moving staged content to its final name
    - Best-effort rollback and idempotent deletion
    - Logging around every write and delete
    """

    @property
    def staging_dir(self) -> str:
        """Directory (relative to the volume root) holding staged uploads."""
        return settings.ITEMS_STAGING_DIR

    @override
    def save(
        self,
        name: str | None,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save content to disk with error handling and logging.

        Args:
            name: Storage path for the content.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            OSError: If writing to disk fails.
        """
        try:
            logger.debug('Writing content to storage: %s', name)
            saved_name = super().save(name, content, max_length)
        except Exception:
            logger.exception('Failed to write content to storage: %s', name)
            raise
        else:
            logger.debug('Wrote content to storage: %s', saved_name)
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete content from disk with error handling and logging.

        Missing content is not an error.

        Args:
            name: Storage path of content to delete.

        Raises:
            OSError: If the delete fails for a reason other than absence.
        """
        try:
            super().delete(name)
        except Exception:
            logger.exception('Failed to delete content from storage: %s', name)
            raise
        logger.debug('Deleted content from storage: %s', name)

    def stage(self, content: Any, original_name: str) -> str:
        """Write incoming content to the staging area.

        Args:
            content: Uploaded file content.
            original_name: Client-side filename, used for its extension.

        Returns:
            Storage path of the staged content.
        """
        staged_name = str(
            PurePosixPath(self.staging_dir) / _random_name(original_name),
        )
        return self.save(staged_name, content)

    def finalize(self, staged_name: str) -> str:
        """Move staged content to a permanent name at the volume root.

        Args:
            staged_name: Storage path returned by :meth:`stage`.

        Returns:
            Permanent storage path.

        Raises:
            OSError: If the move fails.
        """
        final_name = self.get_available_name(_random_name(staged_name))
        self.move_object(staged_name, final_name)
        return final_name

    def move_object(self, source: str, destination: str) -> None:
        """Move/rename content within the volume.

        Args:
            source: Source storage path.
            destination: Destination storage path.

        Raises:
            OSError: If the move fails.
        """
        destination_path = Path(self.path(destination))
        try:
            logger.debug('Moving content: %s -> %s', source, destination)
            destination_path.parent.mkdir(parents=True, exist_ok=True)
            file_move_safe(
                self.path(source),
                str(destination_path),
                allow_overwrite=False,
            )
        except Exception:
            logger.exception('Move failed: %s -> %s', source, destination)
            raise
        logger.info('Moved content: %s -> %s', source, destination)

    def discard(self, name: str) -> bool:
        """Delete content if present, never raising.

        Used for cleanup paths where an already-missing file is the
        desired end state and a failure must not mask the original
        outcome of the operation.

        Args:
            name: Storage path of content to delete.

        Returns:
            True if content was removed, False if it was already gone
            or could not be removed.
        """
        try:
            if not self.exists(name):
                logger.debug('Content already absent: %s', name)
                return False
            self.delete(name)
        except OSError:
            logger.exception('Failed to discard content (orphaned): %s', name)
            return False
        return True

    def rollback_upload(self, name: str) -> None:
        """Delete content whose database record was rolled back.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised.

        Args:
            name: Storage path of content to delete.
        """
        logger.warning('Rolling back upload, deleting content: %s', name)
        if self.discard(name):
            logger.info('Rolled back upload: %s', name)

    def list_staged(self) -> list[str]:
        """List storage paths of everything in the staging area.

        Returns:
            Storage paths of staged files.
        """
        if not self.exists(self.staging_dir):
            return []
        _, file_names = self.listdir(self.staging_dir)
        return [
            str(PurePosixPath(self.staging_dir) / file_name)
            for file_name in file_names
        ]


def _random_name(original_name: str) -> str:
    """Generate a collision-free storage name keeping the extension.

    Args:
        original_name: Name to take the extension from.

    Returns:
        Random hex name with the original (lowercased) extension.
    """
    suffix = PurePosixPath(original_name).suffix.lower()
    return f'{uuid.uuid4().hex}{suffix}'
