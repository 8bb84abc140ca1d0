"""Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.

Stored content is served from MEDIA_URL directly by Django; put a
web server in front of it for anything beyond a single node.
"""

from django.conf import settings
from django.contrib import admin
from django.urls import include, path, re_path

from server.apps.items.views import serve_content

admin.autodiscover()

urlpatterns = [
    # Apps:
    path('', include('server.apps.items.urls', namespace='items')),

    # Stored content:
    re_path(
        r'^{prefix}(?P<path>.*)$'.format(
            prefix=settings.MEDIA_URL.lstrip('/'),
        ),
        serve_content,
        name='content',
    ),

    # django-admin:
    path('admin/', admin.site.urls),
]
