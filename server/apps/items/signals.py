"""Signal handlers for items app."""

import logging

from django.core.files.storage import default_storage
from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.items.models import Item

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=Item)
def delete_content_from_storage(
    sender: type[Item],
    instance: Item,
    **kwargs: object,
) -> None:
    """Delete content from storage when a file Item record is deleted.

    Subtree deletes remove content before the record; this handler covers
    every other route (admin, ORM cascades) so no content outlives its
    record. Already-missing content is the expected case after a subtree
    delete and is not reported.

    Args:
        sender: The Item model class.
        instance: The Item instance being deleted.
        **kwargs: Additional signal arguments.
    """
    if not instance.is_file or not instance.file:
        return

    # Storage errors are logged by discard(), not raised
    default_storage.discard(instance.file.name)  # type: ignore[attr-defined]
