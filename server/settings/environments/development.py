"""Overriding settings used in development and tests."""

from server.settings.components import config
from server.settings.components.common import SECRET_KEY

DEBUG = True

ALLOWED_HOSTS = [
    config('DOMAIN_NAME', default='localhost'),
    'localhost',
    '127.0.0.1',
    '[::1]',
    'testserver',
]

if not SECRET_KEY:
    SECRET_KEY = 'development-only-insecure-key'  # noqa: S105
