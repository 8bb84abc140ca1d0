"""Business logic for storage quota operations."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import final

from django.conf import settings
from django.db import transaction
from django.db.models import Sum  # noqa: WPS347

from server.apps.items.exceptions import QuotaExceededError
from server.apps.items.models import Item, StorageVolume

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageUsage:
    """Snapshot of used storage against the quota."""

    used_bytes: int
    max_bytes: int

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= self.max_bytes

    def available_bytes(self) -> int:
        """Get available storage space.

        Returns:
            Available bytes (never negative).
        """
        return max(0, self.max_bytes - self.used_bytes)


@final
class QuotaAccountant:
    """Answers how much storage is used and whether more fits.

    Usage is recomputed from the file items on every call, so it can
    never drift from the item store.
    """

    def __init__(self, max_bytes: int) -> None:
        """Initialize QuotaAccountant.

        Args:
            max_bytes: Quota ceiling in bytes.

        Raises:
            ValueError: If the ceiling is negative.
        """
        if max_bytes < 0:
            raise ValueError(f'Quota must be non-negative, got {max_bytes}')
        self.max_bytes = max_bytes

    def used_bytes(self) -> int:
        """Sum of sizes of all file items.

        Returns:
            Used bytes.
        """
        return Item.objects.files().aggregate(
            total=Sum('size_bytes'),
        )['total'] or 0

    def usage(self) -> StorageUsage:
        """Current usage snapshot.

        Returns:
            StorageUsage with used and maximum bytes.
        """
        return StorageUsage(
            used_bytes=self.used_bytes(),
            max_bytes=self.max_bytes,
        )

    def remaining_bytes(self) -> int:
        """Bytes still available under the quota.

        Returns:
            Available bytes (never negative).
        """
        return self.usage().available_bytes()

    def check(self, size_bytes: int, skipped_count: int = 0) -> StorageUsage:
        """Check that ``size_bytes`` more fits under the quota.

        Args:
            size_bytes: Size of the pending write in bytes.
            skipped_count: Duplicates already skipped, for reporting.

        Returns:
            The usage snapshot the decision was based on.

        Raises:
            QuotaExceededError: If the write would exceed the quota.
        """
        usage = self.usage()

        if not usage.has_space_for(size_bytes):
            logger.warning(
                'Quota exceeded: need %d, have %d available (used %d of %d)',
                size_bytes,
                usage.available_bytes(),
                usage.used_bytes,
                usage.max_bytes,
            )
            raise QuotaExceededError(
                quota_bytes=usage.max_bytes,
                used_bytes=usage.used_bytes,
                required_bytes=size_bytes,
                skipped_count=skipped_count,
            )
        return usage


def get_quota_accountant() -> QuotaAccountant:
    """Build an accountant for the configured quota.

    Returns:
        QuotaAccountant using ITEMS_MAX_STORAGE_BYTES.
    """
    return QuotaAccountant(max_bytes=settings.ITEMS_MAX_STORAGE_BYTES)


@contextmanager
def reserve_storage(
    accountant: QuotaAccountant,
    size_bytes: int,
    skipped_count: int = 0,
) -> Iterator[StorageUsage]:
    """Check the quota and hold it while the caller commits.

    Opens a transaction and locks the storage volume row before
    checking, so a concurrent writer cannot pass its own check until
    this one has committed or rolled back.

    Args:
        accountant: Quota accountant to check against.
        size_bytes: Bytes the caller is about to commit.
        skipped_count: Duplicates already skipped, for reporting.

    Yields:
        The usage snapshot the check was based on.

    Raises:
        QuotaExceededError: If the write would exceed the quota.
    """
    with transaction.atomic():
        StorageVolume.objects.select_for_update().get_or_create(
            pk=StorageVolume.SINGLETON_PK,
        )
        usage = accountant.check(size_bytes, skipped_count=skipped_count)
        logger.debug(
            'Reserved %d bytes (used %d of %d)',
            size_bytes,
            usage.used_bytes,
            usage.max_bytes,
        )
        yield usage
