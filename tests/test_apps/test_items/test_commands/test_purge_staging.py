"""Tests for purge_staging management command."""

import os
import time
from io import StringIO

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.management import call_command

from server.apps.items.logic.upload_operations import upload_files


def _stage(content: bytes, age_seconds: int = 0) -> str:
    """Stage content and backdate its modification time."""
    staged_name = default_storage.stage(ContentFile(content), 'upload.txt')
    if age_seconds:
        timestamp = time.time() - age_seconds
        os.utime(default_storage.path(staged_name), (timestamp, timestamp))
    return staged_name


@pytest.mark.django_db
class TestPurgeStagingCommand:
    """Tests for purge_staging management command."""

    def test_purges_old_staged_files(self):
        """Test staged files past the max age are deleted."""
        old_name = _stage(b'old', age_seconds=7200)
        recent_name = _stage(b'recent')

        out = StringIO()
        call_command('purge_staging', stdout=out)

        assert not default_storage.exists(old_name)
        assert default_storage.exists(recent_name)
        assert 'Purged 1 staged files, 0 failed' in out.getvalue()

    def test_dry_run_keeps_files(self):
        """Test dry run only reports."""
        old_name = _stage(b'old', age_seconds=7200)

        out = StringIO()
        call_command('purge_staging', '--dry-run', stdout=out)

        assert default_storage.exists(old_name)
        assert f'Would delete: {old_name}' in out.getvalue()
        assert 'Would purge 1 staged files' in out.getvalue()

    def test_max_age_option(self):
        """Test the age threshold can be lowered."""
        staged_name = _stage(b'fresh', age_seconds=120)

        out = StringIO()
        call_command('purge_staging', '--max-age', '60', stdout=out)

        assert not default_storage.exists(staged_name)

    def test_committed_content_untouched(self, make_upload, stored_files):
        """Test content outside staging is never purged."""
        upload_files([make_upload()])
        before = stored_files()

        call_command('purge_staging', '--max-age', '0', stdout=StringIO())

        assert stored_files() == before

    def test_nothing_staged(self):
        """Test an empty staging area."""
        out = StringIO()
        call_command('purge_staging', stdout=out)

        assert 'Purged 0 staged files' in out.getvalue()
