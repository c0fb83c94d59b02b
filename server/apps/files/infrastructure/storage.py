"""Blob storage for file content."""

import logging
import uuid
from typing import IO, Any, Final, final, override

from django.core.exceptions import SuspiciousFileOperation, SuspiciousOperation
from django.core.files.base import ContentFile
from django.core.files.base import File as DjangoFile
from django.core.files.storage import Storage, default_storage
from storages.backends.s3 import S3Storage

from server.apps.files.exceptions import (
    BlobNotFoundError,
    StorageFailureError,
)
from server.apps.files.infrastructure.metadata import (
    sanitize_filename,
    split_extension,
)

logger = logging.getLogger(__name__)

# uuid4 hex (32) + '_' leaves this much room for the name in a 255 char key
_KEY_NAME_MAX_LENGTH: Final = 200
_RESERVED_KEYS: Final = frozenset(('', '.', '..'))


@final
class BlobStorage(S3Storage):
    """S3 storage backend for blob content.

    Keys are flat: a key with a directory component is rejected, so
    nothing is written, looked up or deleted outside the ``location`` root.
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save blob under a flat key.

        Raises:
            SuspiciousFileOperation: If the key has a directory component.
        """
        _check_flat_key(name)
        return super().save(name, content, max_length)

    @override
    def exists(self, name: str) -> bool:
        _check_flat_key(name)
        return super().exists(name)

    @override
    def delete(self, name: str) -> None:
        _check_flat_key(name)
        super().delete(name)


def _check_flat_key(name: str) -> None:
    if name in _RESERVED_KEYS or '/' in name or '\\' in name:
        raise SuspiciousFileOperation(f'Blob key is not flat: {name!r}')


def generate_storage_key(original_name: str) -> str:
    """Build a fresh storage key for an upload.

    Example: 'reports/q1.pdf' -> '3f2a...9c_q1.pdf'

    The random uuid4 prefix makes collisions practically impossible;
    the sanitized name is kept for operators browsing the bucket.

    Args:
        original_name: Name supplied by the uploader.

    Returns:
        Key without any directory component.

    Raises:
        InvalidInputError: If nothing usable is left of the name.
    """
    name = sanitize_filename(original_name)
    if len(name) > _KEY_NAME_MAX_LENGTH:
        stem, suffix = split_extension(name)
        keep = max(_KEY_NAME_MAX_LENGTH - len(suffix), 1)
        name = f'{stem[:keep]}{suffix}'[:_KEY_NAME_MAX_LENGTH]
    return f'{uuid.uuid4().hex}_{name}'


class ContentStore:
    """Places, reads and removes blob bytes.

    Knows nothing about owners or metadata. All blobs live under the root
    of the injected storage backend; keys never contain a directory part,
    so nothing is written outside of that root.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        """Initialize content store.

        Args:
            storage: Backend holding the blobs. When omitted, Django's
                ``default_storage`` is resolved on every call.
        """
        self._storage = storage

    @property
    def storage(self) -> Storage:
        """Storage backend in use."""
        if self._storage is None:
            return default_storage
        return self._storage

    def put(self, content: bytes | IO[bytes], original_name: str) -> str:
        """Write blob under a freshly generated key.

        Args:
            content: Raw bytes or a binary file-like object.
            original_name: Name supplied by the uploader.

        Returns:
            Storage key the blob was written under.

        Raises:
            InvalidInputError: If the name is unusable.
            StorageFailureError: If the backend fails to write.
        """
        storage_key = generate_storage_key(original_name)
        if isinstance(content, bytes):
            django_file: DjangoFile = ContentFile(content)
        else:
            django_file = DjangoFile(content)

        try:
            saved_key = self.storage.save(storage_key, django_file)
        except SuspiciousOperation as error:
            logger.warning('Rejected storage key: %s', storage_key)
            raise StorageFailureError('Storage key rejected') from error
        except Exception as error:
            logger.exception('Failed to write blob: %s', storage_key)
            raise StorageFailureError('Failed to write content') from error

        logger.info('Blob written: %s', saved_key)
        return saved_key

    def get(self, storage_key: str) -> IO[bytes]:
        """Open blob for reading.

        The caller is responsible for closing the returned stream.

        Args:
            storage_key: Key returned by ``put``.

        Returns:
            Binary file-like object positioned at the start.

        Raises:
            BlobNotFoundError: If no content exists under the key.
            StorageFailureError: If the backend fails to read.
        """
        try:
            exists = self.storage.exists(storage_key)
        except SuspiciousOperation as error:
            raise BlobNotFoundError(storage_key) from error
        except Exception as error:
            logger.exception('Failed to look up blob: %s', storage_key)
            raise StorageFailureError('Failed to read content') from error

        if not exists:
            logger.error('Blob missing from storage: %s', storage_key)
            raise BlobNotFoundError(storage_key)

        try:
            return self.storage.open(storage_key, 'rb')
        except FileNotFoundError as error:
            logger.error('Blob vanished before read: %s', storage_key)
            raise BlobNotFoundError(storage_key) from error
        except Exception as error:
            logger.exception('Failed to open blob: %s', storage_key)
            raise StorageFailureError('Failed to read content') from error

    def read(self, storage_key: str) -> bytes:
        """Read the whole blob into memory.

        Raises:
            BlobNotFoundError: If no content exists under the key.
            StorageFailureError: If the backend fails to read.
        """
        stream = self.get(storage_key)
        try:
            return stream.read()
        except Exception as error:
            logger.exception('Failed to read blob: %s', storage_key)
            raise StorageFailureError('Failed to read content') from error
        finally:
            stream.close()

    def remove(self, storage_key: str) -> None:
        """Delete blob. A missing blob is not an error.

        Raises:
            StorageFailureError: If the backend fails to delete.
        """
        try:
            self.storage.delete(storage_key)
        except FileNotFoundError:
            logger.debug('Blob already absent: %s', storage_key)
        except Exception as error:
            logger.exception('Failed to remove blob: %s', storage_key)
            raise StorageFailureError('Failed to remove content') from error
        else:
            logger.info('Blob removed: %s', storage_key)

    def rollback_put(self, storage_key: str) -> None:
        """Remove a blob whose metadata record could not be persisted.

        This is a best-effort operation: if removal fails, the error is
        logged but not raised, the blob stays orphaned.

        Args:
            storage_key: Key returned by ``put``.
        """
        try:
            logger.warning('Rolling back upload, removing blob: %s', storage_key)
            self.remove(storage_key)
        except StorageFailureError:
            # Orphaned blob, left for the operator
            logger.exception(
                'Failed to roll back upload, orphaned blob: %s',
                storage_key,
            )
