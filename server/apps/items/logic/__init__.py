"""Business logic layer for items app.

This package contains all business logic for the item hierarchy:
- Item store operations (create, lookup, listing, subtree delete)
- Storage quota accounting
- Flat and folder-tree uploads

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
