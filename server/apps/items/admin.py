"""Django admin configuration for items app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.items.logic.quota_operations import get_quota_accountant
from server.apps.items.models import Item, StorageVolume


def _format_bytes(size_bytes: int | None) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes, ``None`` for folders.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes is None:
        return '-'
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin[Item]):
    """Admin interface for Item model."""

    list_display = [
        'name',
        'kind',
        'parent',
        'size_display',
        'mime_type',
        'created_at',
    ]

    list_filter = [
        'kind',
        'mime_type',
        'created_at',
    ]

    search_fields = [
        'name',
        'checksum_sha256',
    ]

    # Items are never renamed or moved once stored
    readonly_fields = [
        'name',
        'kind',
        'parent',
        'file',
        'size_bytes',
        'mime_type',
        'checksum_sha256',
        'created_at',
    ]

    fieldsets = (
        ('Item', {
            'fields': ('name', 'kind', 'parent'),
        }),
        ('Content', {
            'fields': (
                'file',
                'size_bytes',
                'mime_type',
                'checksum_sha256',
            ),
        }),
        ('Timestamps', {
            'fields': ('created_at',),
        }),
    )

    def size_display(self, obj: Item) -> str:
        """Display file size in human-readable format.

        Args:
            obj: Item instance.

        Returns:
            Formatted size string, '-' for folders.
        """
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Items are only created through uploads and the API."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[Item]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('parent')


@admin.register(StorageVolume)
class StorageVolumeAdmin(admin.ModelAdmin[StorageVolume]):
    """Read-only view of the storage volume usage."""

    list_display = ['__str__', 'used_display', 'updated_at']
    readonly_fields = ['updated_at']

    def used_display(self, obj: StorageVolume) -> str:
        """Display used bytes in human-readable format.

        Args:
            obj: StorageVolume instance.

        Returns:
            Formatted used bytes string.
        """
        usage = get_quota_accountant().usage()
        return (
            f'{_format_bytes(usage.used_bytes)} '
            f'of {_format_bytes(usage.max_bytes)}'
        )
    used_display.short_description = 'Used'  # type: ignore[attr-defined]
