"""Tests for upload business logic."""

import hashlib

import pytest
from django.core.exceptions import ValidationError
from django.db import DatabaseError

from server.apps.items.exceptions import ItemNotFoundError, QuotaExceededError
from server.apps.items.logic import upload_operations
from server.apps.items.logic.item_operations import create_folder
from server.apps.items.logic.quota_operations import QuotaAccountant
from server.apps.items.logic.upload_operations import (
    upload_batch,
    upload_files,
    upload_folder,
)
from server.apps.items.models import Item, ItemKind


@pytest.mark.django_db
class TestUploadFiles:
    """Tests for flat uploads."""

    def test_upload_single_file(self, make_upload, media_root, stored_files):
        """Test a file is stored with its metadata."""
        content = b'hello world'

        created = upload_files([make_upload('notes.txt', content)])

        assert len(created) == 1
        item = created[0]
        assert item.kind == ItemKind.FILE
        assert item.name == 'notes.txt'
        assert item.parent is None
        assert item.size_bytes == len(content)
        assert item.mime_type == 'text/plain'
        assert item.checksum_sha256 == hashlib.sha256(content).hexdigest()
        assert (media_root / item.file.name).read_bytes() == content
        assert stored_files() == [media_root / item.file.name]

    def test_upload_keeps_request_order(self, make_upload, folder):
        """Test several files land in the parent in request order."""
        created = upload_files(
            [make_upload('a.txt', b'a'), make_upload('b.txt', b'b')],
            folder.pk,
        )

        assert [item.name for item in created] == ['a.txt', 'b.txt']
        assert all(item.parent == folder for item in created)

    def test_upload_does_not_deduplicate(self, make_upload):
        """Test identical flat uploads create separate items."""
        upload_files([make_upload()])
        upload_files([make_upload()])

        assert Item.objects.files().count() == 2

    def test_mime_type_guessed_from_name(self, make_upload):
        """Test a generic client type falls back to the extension."""
        item = upload_files([
            make_upload('photo.png', b'png', 'application/octet-stream'),
        ])[0]

        assert item.mime_type == 'image/png'

    def test_no_files(self):
        """Test an empty request is rejected."""
        with pytest.raises(ValidationError):
            upload_files([])

    def test_quota_exceeded_commits_nothing(self, make_upload, stored_files):
        """Test a batch over the quota leaves no records or content."""
        accountant = QuotaAccountant(max_bytes=10)

        with pytest.raises(QuotaExceededError) as exc_info:
            upload_files(
                [make_upload('a.txt', b'123456'), make_upload('b.txt', b'78901')],
                accountant=accountant,
            )

        assert exc_info.value.required_bytes == 11
        assert not Item.objects.exists()
        assert stored_files() == []

    def test_parent_is_file(self, make_upload, make_file_record, stored_files):
        """Test staged content is cleaned up when the parent is invalid."""
        parent = make_file_record()

        with pytest.raises(ValidationError):
            upload_files([make_upload()], parent.pk)

        assert stored_files() == []

    def test_parent_missing(self, make_upload, stored_files):
        """Test an unknown parent id."""
        with pytest.raises(ItemNotFoundError):
            upload_files([make_upload()], 99999)

        assert stored_files() == []

    def test_commit_failure_rolls_back_batch(
        self,
        make_upload,
        monkeypatch,
        stored_files,
    ):
        """Test a failing file undoes the whole flat batch."""
        real_create_item = upload_operations.create_item

        def failing_create_item(item):
            if item.name == 'bad.txt':
                raise DatabaseError('disk full')
            return real_create_item(item)

        monkeypatch.setattr(
            upload_operations,
            'create_item',
            failing_create_item,
        )

        with pytest.raises(DatabaseError):
            upload_files([make_upload('good.txt'), make_upload('bad.txt')])

        assert not Item.objects.exists()
        assert stored_files() == []


@pytest.mark.django_db
class TestUploadFolder:
    """Tests for folder-tree uploads."""

    def test_creates_destination_folder(self, make_upload):
        """Test files go into a newly created folder."""
        result = upload_folder(
            [make_upload('a.txt', b'a'), make_upload('b.txt', b'b')],
            'Holiday',
        )

        assert result.folder.name == 'Holiday'
        assert result.folder.parent is None
        assert [entry.name for entry in result.uploaded] == ['a.txt', 'b.txt']
        assert result.skipped == []
        assert result.failed == []
        assert Item.objects.children_of(result.folder).count() == 2

    def test_reuses_existing_folder(self, make_upload, folder):
        """Test an existing folder with the same name is reused."""
        result = upload_folder([make_upload()], 'Documents')

        assert result.folder == folder
        assert Item.objects.folders().count() == 1

    def test_nested_under_parent(self, make_upload, folder):
        """Test the destination folder is created inside the parent."""
        result = upload_folder([make_upload()], 'Scans', folder.pk)

        assert result.folder.parent == folder

    def test_relative_paths_build_tree(self, make_upload):
        """Test relative paths recreate sub-folders."""
        result = upload_folder(
            [make_upload('a.jpg', b'a'), make_upload('b.jpg', b'b')],
            'photos',
            relative_paths=['photos/a.jpg', 'photos/2024/march/b.jpg'],
        )

        top_level = Item.objects.children_of(result.folder)
        assert sorted(top_level.values_list('name', flat=True)) == [
            '2024',
            'a.jpg',
        ]
        march = Item.objects.get(name='march')
        assert march.parent.name == '2024'
        assert Item.objects.get(name='b.jpg').parent == march

    def test_duplicates_are_skipped(self, make_upload, stored_files):
        """Test a second identical upload stores nothing new."""
        files = [make_upload('a.txt', b'aaa'), make_upload('b.txt', b'bbb')]
        upload_folder(files, 'Backup')
        content_before = stored_files()

        result = upload_folder(
            [make_upload('a.txt', b'aaa'), make_upload('b.txt', b'bbb')],
            'Backup',
        )

        assert result.uploaded == []
        assert [entry.reason for entry in result.skipped] == [
            'Already exists',
            'Already exists',
        ]
        assert result.skipped[0].size == 3
        assert Item.objects.files().count() == 2
        assert stored_files() == content_before

    def test_changed_content_is_not_a_duplicate(self, make_upload):
        """Test same name with different content is stored again."""
        upload_folder([make_upload('a.txt', b'v1')], 'Backup')

        result = upload_folder([make_upload('a.txt', b'v2')], 'Backup')

        assert len(result.uploaded) == 1
        assert Item.objects.files().filter(name='a.txt').count() == 2

    def test_duplicate_in_sub_folder(self, make_upload):
        """Test duplicates are matched at their own sub-folder."""
        upload_folder(
            [make_upload('a.txt', b'aaa')],
            'Backup',
            relative_paths=['Backup/docs/a.txt'],
        )

        result = upload_folder(
            [make_upload('a.txt', b'aaa'), make_upload('a.txt', b'aaa')],
            'Backup',
            relative_paths=['Backup/docs/a.txt', 'Backup/other/a.txt'],
        )

        assert len(result.skipped) == 1
        assert len(result.uploaded) == 1
        assert Item.objects.get(
            name='a.txt',
            parent__name='other',
        ).parent.parent == result.folder

    def test_quota_exceeded_commits_nothing(self, make_upload, stored_files):
        """Test an over-quota batch commits no file and no sub-folder."""
        upload_folder([make_upload('old.txt', b'12345')], 'Backup')
        content_before = stored_files()

        with pytest.raises(QuotaExceededError) as exc_info:
            upload_folder(
                [
                    make_upload('old.txt', b'12345'),
                    make_upload('new.txt', b'1234567890'),
                ],
                'Backup',
                relative_paths=['Backup/old.txt', 'Backup/sub/new.txt'],
                accountant=QuotaAccountant(max_bytes=12),
            )

        error = exc_info.value
        assert error.skipped_count == 1
        assert error.required_bytes == 10
        assert error.available_bytes == 7
        assert not Item.objects.filter(name__in=['sub', 'new.txt']).exists()
        assert stored_files() == content_before

    def test_partial_failure_continues(
        self,
        make_upload,
        monkeypatch,
        stored_files,
    ):
        """Test one failing file is reported and the rest are stored."""
        real_create_item = upload_operations.create_item

        def failing_create_item(item):
            if item.name == 'bad.txt':
                raise DatabaseError('disk full')
            return real_create_item(item)

        monkeypatch.setattr(
            upload_operations,
            'create_item',
            failing_create_item,
        )

        result = upload_folder(
            [
                make_upload('good.txt', b'good'),
                make_upload('bad.txt', b'bad'),
                make_upload('fine.txt', b'fine'),
            ],
            'Mixed',
        )

        assert [entry.name for entry in result.uploaded] == [
            'good.txt',
            'fine.txt',
        ]
        assert len(result.failed) == 1
        assert result.failed[0].name == 'bad.txt'
        assert result.failed[0].error == 'disk full'
        assert not Item.objects.filter(name='bad.txt').exists()
        assert len(stored_files()) == 2

    def test_no_files(self):
        """Test an empty folder upload is rejected."""
        with pytest.raises(ValidationError):
            upload_folder([], 'Backup')

    def test_folder_name_required(self, make_upload, stored_files):
        """Test a blank folder name is rejected and staging is cleaned."""
        with pytest.raises(ValidationError):
            upload_folder([make_upload()], '  ')

        assert not Item.objects.exists()
        assert stored_files() == []

    def test_paths_must_match_files(self, make_upload):
        """Test mismatched relative paths are rejected."""
        with pytest.raises(ValidationError):
            upload_folder(
                [make_upload()],
                'Backup',
                relative_paths=['a.txt', 'b.txt'],
            )

    def test_parent_is_file(self, make_upload, make_file_record):
        """Test a file cannot hold the destination folder."""
        parent = make_file_record()

        with pytest.raises(ValidationError):
            upload_folder([make_upload()], 'Backup', parent.pk)


@pytest.mark.django_db
def test_upload_batch_releases_on_error(make_upload, stored_files):
    """Test staged content is removed when the block raises."""
    with pytest.raises(RuntimeError):
        with upload_batch() as batch:
            batch.stage(make_upload())
            assert len(stored_files()) == 1
            raise RuntimeError('boom')

    assert stored_files() == []


@pytest.mark.django_db
def test_upload_batch_keeps_durable_content(make_upload, stored_files):
    """Test committed content survives the release."""
    folder = create_folder('Docs')

    with upload_batch() as batch:
        entry = batch.stage(make_upload())
        item = batch.commit(entry, folder)
        batch.mark_durable()

    assert item.file.name == entry.final_name
    assert len(stored_files()) == 1


@pytest.mark.django_db
class TestQuotaScenarios:
    """Quota decisions on whole batches."""

    def test_batch_rejected_even_if_each_file_fits(
        self,
        make_upload,
        stored_files,
    ):
        """Test no file is committed when only the sum is over quota."""
        accountant = QuotaAccountant(max_bytes=10)

        with pytest.raises(QuotaExceededError) as exc_info:
            upload_folder(
                [make_upload('a.txt', b'123456'), make_upload('b.txt', b'abcdef')],
                'Backup',
                accountant=accountant,
            )

        assert exc_info.value.required_bytes == 12
        assert not Item.objects.files().exists()
        assert stored_files() == []

    def test_single_file_over_remaining_space(
        self,
        accountant,
        make_file_record,
        make_upload,
    ):
        """Test a 2MB file is rejected with 9MB used of 10MB."""
        make_file_record(size_bytes=9_000_000)

        with pytest.raises(QuotaExceededError) as exc_info:
            upload_files(
                [make_upload('video.bin', b'v' * 2_000_000)],
                accountant=accountant,
            )

        error = exc_info.value
        assert error.quota_bytes == 10_485_760
        assert error.used_bytes == 9_000_000
        assert error.available_bytes == 1_485_760
        assert error.required_bytes == 2_000_000
        assert Item.objects.files().count() == 1

    def test_duplicate_does_not_count_against_quota(
        self,
        accountant,
        make_file_record,
        make_upload,
    ):
        """Test 500k + 400k fit next to a skipped 2MB duplicate."""
        big_content = b'v' * 2_000_000
        upload_folder(
            [make_upload('video.bin', big_content)],
            'Backup',
            accountant=accountant,
        )
        make_file_record(size_bytes=7_000_000)
        assert accountant.used_bytes() == 9_000_000

        result = upload_folder(
            [
                make_upload('small.bin', b's' * 500_000),
                make_upload('medium.bin', b'm' * 400_000),
                make_upload('video.bin', big_content),
            ],
            'Backup',
            accountant=accountant,
        )

        assert [entry.name for entry in result.uploaded] == [
            'small.bin',
            'medium.bin',
        ]
        assert [entry.name for entry in result.skipped] == ['video.bin']
        assert accountant.used_bytes() == 9_900_000
