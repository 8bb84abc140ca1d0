"""Management command to purge abandoned uploads from staging."""

import logging
from datetime import timedelta
from typing import Any

from django.conf import settings
from django.core.files.storage import default_storage
from django.core.management.base import BaseCommand
from django.utils import timezone

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Delete staged uploads older than the configured age.

    Staged content normally disappears when its request finishes; this
    removes what a crashed process left behind.
    """

    help = 'Purge abandoned uploads from the staging area'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be purged without deleting',
        )
        parser.add_argument(
            '--max-age',
            type=int,
            default=settings.ITEMS_STAGING_MAX_AGE,
            help=(
                'Minimum age in seconds of staged files to purge '
                f'(default: {settings.ITEMS_STAGING_MAX_AGE})'
            ),
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the purge command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        cutoff = timezone.now() - timedelta(seconds=options['max_age'])

        self.stdout.write(f'Looking for staged files modified before {cutoff}')

        count = 0
        failed = 0

        for staged_name in default_storage.list_staged():
            if default_storage.get_modified_time(staged_name) > cutoff:
                continue

            if dry_run:
                self.stdout.write(f'Would delete: {staged_name}')
                count += 1
                continue

            if default_storage.discard(staged_name):
                count += 1
                logger.info('Purged staged file: %s', staged_name)
            else:
                self.stderr.write(f'Failed to delete {staged_name}')
                failed += 1

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {count} staged files'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Purged {count} staged files, {failed} failed',
                ),
            )
