"""Django storage configuration for blob content.

Blobs live in an S3-compatible bucket via django-storages:
- MinIO for local development
- Cloudflare R2 or AWS S3 for production

``FILES_BLOB_ROOT`` is the key prefix every blob is placed under. The
content store never writes outside of it.
"""

from typing import Any, Final

from server.settings.components import config

FILES_BLOB_ROOT = config('FILES_BLOB_ROOT', default='blobs')

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.files.infrastructure.storage.BlobStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='file-vault',
            ),
            'access_key': config('AWS_ACCESS_KEY_ID', default='minioadmin'),
            'secret_key': config(
                'AWS_SECRET_ACCESS_KEY',
                default='minioadmin',
            ),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='us-east-1',
            ),
            'location': FILES_BLOB_ROOT,
            # Keys are unique per upload; a collision overwrites
            'file_overwrite': True,
            'default_acl': None,  # Inherit bucket ACL
        },
    },
}
