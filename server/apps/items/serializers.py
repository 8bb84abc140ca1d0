"""REST representations of items and upload summaries."""

from rest_framework import serializers

from server.apps.items.models import Item, ItemKind


class ItemSerializer(serializers.ModelSerializer):
    """Client-facing representation of an item.

    File-only fields are ``null`` for folders.
    """

    type = serializers.CharField(source='kind', read_only=True)
    parentId = serializers.PrimaryKeyRelatedField(  # noqa: N815
        source='parent',
        read_only=True,
    )
    url = serializers.SerializerMethodField()
    size = serializers.IntegerField(
        source='size_bytes',
        read_only=True,
        allow_null=True,
    )
    mimeType = serializers.SerializerMethodField()  # noqa: N815
    contentHash = serializers.SerializerMethodField()  # noqa: N815
    createdAt = serializers.DateTimeField(  # noqa: N815
        source='created_at',
        read_only=True,
    )

    class Meta:
        model = Item
        fields = [
            'id',
            'name',
            'type',
            'parentId',
            'url',
            'size',
            'mimeType',
            'contentHash',
            'createdAt',
        ]

    def get_url(self, obj: Item) -> str | None:
        return obj.get_url()

    def get_mimeType(self, obj: Item) -> str | None:  # noqa: N802
        return obj.mime_type or None

    def get_contentHash(self, obj: Item) -> str | None:  # noqa: N802
        return obj.checksum_sha256 or None


class FolderCreateSerializer(serializers.Serializer):
    """Request body for creating a folder."""

    name = serializers.CharField(max_length=255, trim_whitespace=True)
    type = serializers.ChoiceField(choices=[ItemKind.FOLDER.value])
    parentId = serializers.CharField(  # noqa: N815
        required=False,
        allow_null=True,
        allow_blank=True,
    )


class FolderSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField(source='pk')
    name = serializers.CharField()


class UploadedEntrySerializer(serializers.Serializer):
    name = serializers.CharField()
    size = serializers.IntegerField()


class SkippedEntrySerializer(serializers.Serializer):
    name = serializers.CharField()
    size = serializers.IntegerField()
    reason = serializers.CharField()


class FailedEntrySerializer(serializers.Serializer):
    name = serializers.CharField()
    error = serializers.CharField()


class FolderUploadDetailsSerializer(serializers.Serializer):
    uploaded = UploadedEntrySerializer(many=True)
    skipped = SkippedEntrySerializer(many=True)
    failed = FailedEntrySerializer(many=True)


class FolderUploadSerializer(serializers.Serializer):
    """Summary of a folder upload.

    Serializes a ``FolderUploadResult``: counts at the top level,
    per-file entries under ``details``.
    """

    folder = FolderSummarySerializer()
    uploaded = serializers.SerializerMethodField()
    skipped = serializers.SerializerMethodField()
    failed = serializers.SerializerMethodField()
    details = FolderUploadDetailsSerializer(source='*')

    def get_uploaded(self, obj) -> int:
        return len(obj.uploaded)

    def get_skipped(self, obj) -> int:
        return len(obj.skipped)

    def get_failed(self, obj) -> int:
        return len(obj.failed)
