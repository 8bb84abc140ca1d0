"""REST views for the items API.

Views only translate between HTTP and the logic layer; errors are
mapped to responses by ``item_exception_handler``.
"""

import posixpath
from typing import Any

from django.conf import settings
from django.http import Http404, HttpRequest, HttpResponse
from django.views.static import serve
from rest_framework import status, views
from rest_framework.request import Request
from rest_framework.response import Response

from server.apps.items.logic.item_operations import (
    create_folder,
    delete_subtree,
    list_children,
    parse_parent_ref,
)
from server.apps.items.logic.quota_operations import get_quota_accountant
from server.apps.items.logic.upload_operations import (
    upload_files,
    upload_folder,
)
from server.apps.items.serializers import (
    FolderCreateSerializer,
    FolderUploadSerializer,
    ItemSerializer,
)


class ItemCollectionView(views.APIView):
    """Create a folder (JSON body) or upload files (multipart)."""

    def post(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        files = request.FILES.getlist('files') or request.FILES.getlist('file')
        parent_id = parse_parent_ref(request.data.get('parentId'))

        if request.data.get('type') == 'folder':
            serializer = FolderCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            folder = create_folder(
                serializer.validated_data['name'],
                parent_id,
            )
            return Response(
                ItemSerializer(folder).data,
                status=status.HTTP_201_CREATED,
            )

        if not files:
            return Response(
                {'message': 'File required'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        created = upload_files(files, parent_id)
        if len(created) == 1:
            data = ItemSerializer(created[0]).data
        else:
            data = ItemSerializer(created, many=True).data
        return Response(data, status=status.HTTP_201_CREATED)


class FolderUploadView(views.APIView):
    """Upload a folder tree with duplicate skipping."""

    def post(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        files = request.FILES.getlist('files')
        if not files:
            return Response(
                {'message': 'No files uploaded'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        relative_paths = request.data.getlist('paths') or None
        result = upload_folder(
            files,
            request.data.get('name', ''),
            parse_parent_ref(request.data.get('parentId')),
            relative_paths=relative_paths,
        )

        data = {'message': 'Folder upload completed'}
        data.update(FolderUploadSerializer(result).data)
        return Response(data, status=status.HTTP_201_CREATED)


class StorageView(views.APIView):
    """Used and maximum storage in bytes."""

    def get(self, request: Request, *args: Any, **kwargs: Any) -> Response:
        usage = get_quota_accountant().usage()
        return Response({'used': usage.used_bytes, 'max': usage.max_bytes})


class ItemNodeView(views.APIView):
    """List the children of a folder, or delete an item subtree."""

    def get(
        self,
        request: Request,
        item_ref: str,
        *args: Any,
        **kwargs: Any,
    ) -> Response:
        items = list_children(parse_parent_ref(item_ref))
        return Response(ItemSerializer(items, many=True).data)

    def delete(
        self,
        request: Request,
        item_ref: str,
        *args: Any,
        **kwargs: Any,
    ) -> Response:
        item_id = parse_parent_ref(item_ref)
        if item_id is None:
            return Response(
                {'message': 'The root cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        deleted = delete_subtree(item_id)
        return Response({
            'message': 'Item deleted successfully',
            'deleted': deleted,
        })


def serve_content(request: HttpRequest, path: str) -> HttpResponse:
    """Serve stored content from the volume root.

    Staged uploads are not served.

    Args:
        request: HTTP request.
        path: Storage path of the content.

    Returns:
        File response.

    Raises:
        Http404: If the path is staged or does not exist.
    """
    normalized = posixpath.normpath(path).lstrip('/')
    staging_dir = posixpath.normpath(settings.ITEMS_STAGING_DIR)
    if normalized == staging_dir or normalized.startswith(f'{staging_dir}/'):
        raise Http404('Content not found')
    return serve(request, path, document_root=settings.MEDIA_ROOT)
