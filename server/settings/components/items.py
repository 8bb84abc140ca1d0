"""Settings for the items app (quota and upload staging)."""

from server.settings.components import config

# Total bytes of file content allowed on the volume
ITEMS_MAX_STORAGE_BYTES = config(
    'ITEMS_MAX_STORAGE_BYTES',
    cast=int,
    default=500 * 1024 * 1024,
)

# Directory (relative to MEDIA_ROOT) holding uploads not yet committed
ITEMS_STAGING_DIR = config('ITEMS_STAGING_DIR', default='.staging')

# Staged content older than this (seconds) is considered abandoned
ITEMS_STAGING_MAX_AGE = config(
    'ITEMS_STAGING_MAX_AGE',
    cast=int,
    default=3600,
)
