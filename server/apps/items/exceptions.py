"""Exceptions for items app."""

from django.core.exceptions import ObjectDoesNotExist


class QuotaExceededError(Exception):
    """Raised when a write would exceed the configured storage quota."""

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
        skipped_count: int = 0,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
            skipped_count: Files already skipped as duplicates in the batch.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes
        self.skipped_count = skipped_count

        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {self.available_bytes} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )

    @property
    def available_bytes(self) -> int:
        """Bytes still free under the quota (never negative)."""
        return max(0, self.quota_bytes - self.used_bytes)


class ItemNotFoundError(ObjectDoesNotExist):
    """Raised when an item id does not resolve to a stored item."""

    def __init__(self, item_id: object) -> None:
        """Initialize ItemNotFoundError.

        Args:
            item_id: The id that was looked up.
        """
        self.item_id = item_id
        super().__init__(f'Item not found: {item_id}')
