"""Django app configuration for items app."""

from typing import override

from django.apps import AppConfig


class ItemsConfig(AppConfig):
    """Configuration for items app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.items'
    verbose_name = 'Items'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.items import signals  # noqa: F401
