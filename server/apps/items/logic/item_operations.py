"""Business logic for the item hierarchy."""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Final

from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.db import transaction

from server.apps.items.exceptions import ItemNotFoundError
from server.apps.items.models import Item, ItemKind, ItemQuerySet

if TYPE_CHECKING:
    from server.apps.items.infrastructure.storage import ItemStorage

logger = logging.getLogger(__name__)

# Client-facing reference for the top level of the hierarchy
ROOT_REF: Final = 'root'

_NULL_REFS: Final = frozenset(('', ROOT_REF, 'null', 'none', 'undefined'))


def _get_storage() -> 'ItemStorage':
    """Get the configured default storage backend.

    Returns:
        ItemStorage instance.
    """
    return default_storage  # type: ignore[return-value]


def parse_parent_ref(parent_ref: object) -> int | None:
    """Translate a client-side parent reference to an item id.

    Args:
        parent_ref: ``None``, the 'root' sentinel, or an item id.

    Returns:
        Item id, or ``None`` for the top level.

    Raises:
        ValidationError: If the reference is not an integer id.
    """
    if parent_ref is None:
        return None
    if isinstance(parent_ref, int):
        return parent_ref

    text = str(parent_ref).strip()
    if text.lower() in _NULL_REFS:
        return None
    try:
        return int(text)
    except ValueError as error:
        raise ValidationError(
            f'Invalid item reference: {parent_ref!r}',
        ) from error


def get_item(item_id: int) -> Item:
    """Get item by id.

    Args:
        item_id: ID of the item.

    Returns:
        Item instance.

    Raises:
        ItemNotFoundError: If the item does not exist.
    """
    try:
        return Item.objects.get(pk=item_id)
    except Item.DoesNotExist as error:
        raise ItemNotFoundError(item_id) from error


def resolve_parent(parent_id: int | None) -> Item | None:
    """Resolve a parent id to the folder it refers to.

    Args:
        parent_id: Folder id, or ``None`` for the top level.

    Returns:
        Folder item, or ``None`` for the top level.

    Raises:
        ItemNotFoundError: If the id does not exist.
        ValidationError: If the id refers to a file.
    """
    if parent_id is None:
        return None

    parent = get_item(parent_id)
    if not parent.is_folder:
        raise ValidationError(f'Parent {parent_id} is not a folder')
    return parent


def create_item(item: Item) -> Item:
    """Validate and persist a new item.

    Args:
        item: Unsaved item.

    Returns:
        The stored item with its id assigned.

    Raises:
        ValidationError: If required fields for the item's kind are missing.
    """
    item.full_clean()
    item.save(force_insert=True)
    logger.info(
        'Item created: %s %r (ID: %d, parent: %s)',
        item.kind,
        item.name,
        item.pk,
        item.parent_id,
    )
    return item


def create_folder(name: str, parent_id: int | None = None) -> Item:
    """Create a folder.

    Args:
        name: Folder name.
        parent_id: Parent folder id, ``None`` for the top level.

    Returns:
        Created folder item.

    Raises:
        ValidationError: If the name is empty or the parent is a file.
        ItemNotFoundError: If the parent does not exist.
    """
    parent = resolve_parent(parent_id)
    return create_item(
        Item(name=name.strip(), kind=ItemKind.FOLDER, parent=parent),
    )


def find_folder(name: str, parent: Item | None) -> Item | None:
    """Find a folder by name directly below ``parent``.

    Args:
        name: Folder name.
        parent: Parent folder, ``None`` for the top level.

    Returns:
        Oldest matching folder, or ``None``.
    """
    return (
        Item.objects.folders()
        .children_of(parent)
        .filter(name=name)
        .order_by('created_at', 'id')
        .first()
    )


def find_or_create_folder(
    name: str,
    parent: Item | None,
) -> tuple[Item, bool]:
    """Find a folder by name below ``parent``, creating it if missing.

    Args:
        name: Folder name.
        parent: Parent folder, ``None`` for the top level.

    Returns:
        Tuple of (folder, created).
    """
    folder = find_folder(name, parent)
    if folder is not None:
        return folder, False

    with transaction.atomic():
        folder = create_item(
            Item(name=name, kind=ItemKind.FOLDER, parent=parent),
        )
    return folder, True


def find_folder_path(root: Item, parts: Sequence[str]) -> Item | None:
    """Walk existing nested folders below ``root``.

    Args:
        root: Folder to start from.
        parts: Folder names, outermost first.

    Returns:
        Deepest folder, or ``None`` if any component does not exist.
    """
    current: Item | None = root
    for part in parts:
        current = find_folder(part, current)
        if current is None:
            return None
    return current


def ensure_folder_path(root: Item, parts: Sequence[str]) -> Item:
    """Walk nested folders below ``root``, creating missing ones.

    Args:
        root: Folder to start from.
        parts: Folder names, outermost first.

    Returns:
        Deepest folder.
    """
    current = root
    for part in parts:
        current, _ = find_or_create_folder(part, current)
    return current


def find_existing_file(
    name: str,
    parent: Item | None,
    size_bytes: int,
    checksum: str,
) -> Item | None:
    """Find a stored file with identical name, location and content.

    Args:
        name: File name.
        parent: Containing folder, ``None`` for the top level.
        size_bytes: Content size.
        checksum: Content SHA256.

    Returns:
        Matching file item, or ``None``.
    """
    return (
        Item.objects.files()
        .children_of(parent)
        .filter(
            name=name,
            size_bytes=size_bytes,
            checksum_sha256=checksum,
        )
        .first()
    )


def list_children(parent_id: int | None = None) -> ItemQuerySet:
    """List direct children of a folder.

    Folders come before files; each group is ordered newest first.

    Args:
        parent_id: Folder id, ``None`` for the top level.

    Returns:
        Ordered QuerySet of items.

    Raises:
        ItemNotFoundError: If the folder does not exist.
        ValidationError: If the id refers to a file.
    """
    parent = resolve_parent(parent_id)
    logger.debug('Listing children of %s', parent_id or ROOT_REF)
    return Item.objects.children_of(parent).in_listing_order()


def delete_subtree(item_id: int) -> int:
    """Delete an item and everything below it.

    Depth-first, children before their parent, using an explicit stack
    so deep hierarchies do not grow the call stack. For each file the
    content is removed before the record; content that is already
    missing is treated as removed; any other storage error propagates
    and the record is kept. Each record is deleted on its own,
    so an interrupted delete leaves a smaller but consistent tree.

    Args:
        item_id: ID of the item to delete.

    Returns:
        Number of records deleted.

    Raises:
        ItemNotFoundError: If the item does not exist.
        OSError: If stored content cannot be removed.
    """
    root = get_item(item_id)
    storage = _get_storage()

    logger.info(
        'Deleting subtree: %s %r (ID: %d)',
        root.kind,
        root.name,
        root.pk,
    )

    deleted = 0
    # (item, children already pushed)
    stack: list[tuple[Item, bool]] = [(root, False)]
    while stack:
        item, expanded = stack.pop()

        if item.is_folder and not expanded:
            stack.append((item, True))
            stack.extend(
                (child, False)
                for child in Item.objects.children_of(item)
            )
            continue

        if item.is_file and item.file:
            # Missing content counts as deleted; other failures keep the record
            storage.delete(item.file.name)

        Item.objects.filter(pk=item.pk).delete()
        deleted += 1

    logger.info('Subtree deleted: ID=%d, %d items removed', item_id, deleted)
    return deleted
