"""Database models for items app."""

from typing import Final, final, override

from django.core.exceptions import ValidationError
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_KIND_MAX_LENGTH: Final = 6
_STORAGE_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length


class ItemKind(models.TextChoices):
    """Kind of a stored item."""

    FILE = 'file', 'File'
    FOLDER = 'folder', 'Folder'


class ItemQuerySet(models.QuerySet['Item']):
    """Query helpers for the item hierarchy."""

    def files(self) -> 'ItemQuerySet':
        """Only file items."""
        return self.filter(kind=ItemKind.FILE)

    def folders(self) -> 'ItemQuerySet':
        """Only folder items."""
        return self.filter(kind=ItemKind.FOLDER)

    def children_of(self, parent: 'Item | None') -> 'ItemQuerySet':
        """Direct children of ``parent`` (top level when ``None``)."""
        if parent is None:
            return self.filter(parent__isnull=True)
        return self.filter(parent=parent)

    def in_listing_order(self) -> 'ItemQuerySet':
        """Folders before files, each group newest first.

        Returns:
            Ordered QuerySet.
        """
        folder_first = models.Case(
            models.When(kind=ItemKind.FOLDER, then=models.Value(0)),
            default=models.Value(1),
            output_field=models.IntegerField(),
        )
        return self.alias(kind_rank=folder_first).order_by(
            'kind_rank',
            '-created_at',
            '-id',
        )


_FOLDER_FIELDS_EMPTY = models.Q(
    kind=ItemKind.FOLDER,
    file='',
    size_bytes__isnull=True,
    mime_type='',
    checksum_sha256='',
)

_FILE_FIELDS_PRESENT = (
    models.Q(
        kind=ItemKind.FILE,
        size_bytes__isnull=False,
        size_bytes__gte=0,
    )
    & ~models.Q(file='')
    & ~models.Q(checksum_sha256='')
)


@final
class Item(models.Model):
    """File or folder in the item hierarchy.

    Items form a forest: ``parent`` is ``None`` for top-level items and
    otherwise points at a folder. Items are never moved, so cycles cannot
    appear. File items reference their content in local storage through
    ``file``; folders carry no content fields at all.
    """

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    kind = models.CharField(
        max_length=_KIND_MAX_LENGTH,
        choices=ItemKind.choices,
    )

    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        related_name='children',
        null=True,
        blank=True,
    )

    # Path of the content inside the storage volume (files only)
    file = models.FileField(
        upload_to='',
        max_length=_STORAGE_NAME_MAX_LENGTH,
        blank=True,
    )

    size_bytes = models.BigIntegerField(
        null=True,
        blank=True,
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        blank=True,
        default='',
    )

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        blank=True,
        default='',
        help_text='SHA256 of the content, used to detect duplicate uploads',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    objects = ItemQuerySet.as_manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'Item'  # type: ignore[mutable-override]
        verbose_name_plural = 'Items'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            # Duplicate lookup for uploads
            models.Index(
                fields=['name', 'parent', 'kind', 'checksum_sha256'],
                name='items_dedup_idx',
            ),
            # Directory listing
            models.Index(
                fields=['parent', 'kind', '-created_at'],
                name='items_listing_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=_FOLDER_FIELDS_EMPTY | _FILE_FIELDS_PRESENT,
                name='items_kind_fields_consistent',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.kind}:{self.name}'

    @override
    def clean(self) -> None:
        """Validate kind-specific fields and the parent reference.

        Raises:
            ValidationError: If the item violates its kind's field rules.
        """
        errors: dict[str, str] = {}

        if self.kind == ItemKind.FILE:
            if not self.file:
                errors['file'] = 'File items require stored content.'
            if self.size_bytes is None or self.size_bytes < 0:
                errors['size_bytes'] = 'File items require a non-negative size.'
            if not self.checksum_sha256:
                errors['checksum_sha256'] = 'File items require a checksum.'
        elif self.kind == ItemKind.FOLDER:
            has_content = (
                self.file
                or self.size_bytes is not None
                or self.mime_type
                or self.checksum_sha256
            )
            if has_content:
                errors['kind'] = 'Folder items cannot carry file content.'

        if self.parent_id is not None:
            if self.pk is not None and self.parent_id == self.pk:
                errors['parent'] = 'An item cannot be its own parent.'
            elif self._parent_kind() not in {None, ItemKind.FOLDER}:
                errors['parent'] = 'Parent must be a folder.'
            elif self._parent_is_descendant():
                errors['parent'] = 'An item cannot be moved below itself.'

        if errors:
            raise ValidationError(errors)

    def _parent_is_descendant(self) -> bool:
        """Whether the parent chain leads back to this item."""
        if self.pk is None:
            return False

        seen: set[int] = set()
        ancestor_id = self.parent_id
        while ancestor_id is not None and ancestor_id not in seen:
            if ancestor_id == self.pk:
                return True
            seen.add(ancestor_id)
            ancestor_id = (
                type(self).objects.filter(pk=ancestor_id)
                .values_list('parent_id', flat=True)
                .first()
            )
        return False

    def _parent_kind(self) -> str | None:
        """Kind of the referenced parent, ``None`` if it does not exist."""
        return (
            type(self).objects.filter(pk=self.parent_id)
            .values_list('kind', flat=True)
            .first()
        )

    @property
    def is_folder(self) -> bool:
        """Whether the item is a folder."""
        return self.kind == ItemKind.FOLDER

    @property
    def is_file(self) -> bool:
        """Whether the item is a file."""
        return self.kind == ItemKind.FILE

    def get_url(self) -> str | None:
        """Get the URL the content is served from.

        Returns:
            URL for file items, ``None`` for folders.
        """
        if not self.file:
            return None
        return self.file.url


@final
class StorageVolume(models.Model):
    """The single storage volume, used as a lock anchor.

    Quota checks and the commits they guard run in one transaction that
    holds a row lock on this record, so concurrent uploads cannot both
    pass the check against the same usage figure.
    """

    SINGLETON_PK: Final = 1

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Storage volume'  # type: ignore[mutable-override]
        verbose_name_plural = 'Storage volumes'  # type: ignore[mutable-override]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'volume {self.pk}'
