"""URL routes for the items API."""

from django.urls import path, re_path

from server.apps.items.views import (
    FolderUploadView,
    ItemCollectionView,
    ItemNodeView,
    StorageView,
)

app_name = 'items'

urlpatterns = [
    re_path(r'^items/?$', ItemCollectionView.as_view(), name='collection'),
    path(
        'items/folder-upload',
        FolderUploadView.as_view(),
        name='folder-upload',
    ),
    path('items/storage', StorageView.as_view(), name='storage'),
    path('items/<str:item_ref>', ItemNodeView.as_view(), name='node'),
]
