"""Infrastructure layer for items app.

This package contains integrations with external systems:
- Local disk storage backend with staging support
- Content metadata (checksum, MIME type, upload paths)

Keep infrastructure concerns separate from business logic.
"""
