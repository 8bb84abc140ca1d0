"""Django storage configuration for the local content volume.

User content lives in a single directory on local disk (``MEDIA_ROOT``)
and is served under ``MEDIA_URL``. Uploads are staged in a subdirectory
of the same volume so that finalizing them is a rename, not a copy.
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

MEDIA_ROOT = config(
    'DJANGO_MEDIA_ROOT',
    default=str(BASE_DIR.joinpath('uploads')),
)

MEDIA_URL = '/uploads/'

# Storage configuration dictionary
# Location is left to MEDIA_ROOT so setting overrides are picked up
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.items.infrastructure.storage.ItemStorage',
    },
    'staticfiles': {
        # Keep static files separate from user files
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

# Larger uploads are spooled to disk by Django before we stage them
FILE_UPLOAD_MAX_MEMORY_SIZE = config(
    'DJANGO_FILE_UPLOAD_MAX_MEMORY_SIZE',
    cast=int,
    default=2621440,  # 2.5 MB, Django default
)

DATA_UPLOAD_MAX_NUMBER_FILES = config(
    'DJANGO_DATA_UPLOAD_MAX_NUMBER_FILES',
    cast=int,
    default=1000,
)
