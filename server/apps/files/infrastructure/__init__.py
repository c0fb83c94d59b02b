"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Blob storage (S3/MinIO/R2 or any Django storage)
- Persistence of file records
- Name sanitizing and MIME type handling

Keep infrastructure concerns separate from business logic.
"""
