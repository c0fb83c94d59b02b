"""Business logic layer for files app.

This package contains all business logic for file operations:
- Upload, listing, fetch, rename and soft delete of single files
- Export of several files as one archive

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
