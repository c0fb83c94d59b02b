"""Business logic for file operations.

Every operation takes an already authenticated ``owner_id``. Files of
other owners and soft-deleted files are reported as ``NotFoundError``,
never as a separate "forbidden" outcome.
"""

import enum
import io
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import IO, Final, final

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils.http import content_disposition_header

from server.apps.files.exceptions import (
    InvalidInputError,
    NotFoundError,
    PayloadTooLargeError,
    StorageFailureError,
)
from server.apps.files.infrastructure import records
from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    get_rename_extension,
    resolve_view_content_type,
    sanitize_filename,
    validate_content_type,
)
from server.apps.files.infrastructure.storage import ContentStore
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)

_DOWNLOAD_CONTENT_TYPE: Final = 'application/octet-stream'


class FetchMode(enum.StrEnum):
    """How the caller wants to receive a file."""

    DOWNLOAD = 'download'
    VIEW = 'view'


class Disposition(enum.StrEnum):
    """Content-Disposition type of a fetched file."""

    ATTACHMENT = 'attachment'
    INLINE = 'inline'


@final
@dataclass(frozen=True, slots=True)
class FileMetadata:
    """Externally visible fields of a file record.

    Never includes the storage key.
    """

    id: int
    display_name: str
    content_type: str
    size: int
    uploaded_at: datetime
    deleted: bool = False
    deleted_at: datetime | None = None

    @classmethod
    def from_record(cls, record: FileRecord) -> 'FileMetadata':
        """Project a model instance."""
        return cls(
            id=record.id,
            display_name=record.display_name,
            content_type=record.content_type,
            size=record.size_bytes,
            uploaded_at=record.uploaded_at,
            deleted=record.is_deleted,
            deleted_at=record.deleted_at,
        )


@final
@dataclass(frozen=True, slots=True)
class FetchResult:
    """Open content stream with the headers needed to serve it."""

    stream: IO[bytes]
    content_type: str
    disposition: Disposition
    filename: str

    @property
    def content_disposition(self) -> str:
        """Value for the Content-Disposition header."""
        return content_disposition_header(
            as_attachment=self.disposition is Disposition.ATTACHMENT,
            filename=self.filename,
        )


def _get_content_store() -> ContentStore:
    """Get content store bound to the configured default storage."""
    return ContentStore()


def _get_owned_record(file_id: int, owner_id: int) -> FileRecord:
    record = records.find_owned(file_id, owner_id)
    if record is None:
        logger.warning(
            'File not accessible: ID=%d, owner=%d',
            file_id,
            owner_id,
        )
        raise NotFoundError(file_id)
    return record


def _measure_content(content: bytes | IO[bytes]) -> int:
    """Get length of the whole content and rewind streams to the start.

    Storage backends write a stream from offset 0, so bytes already read
    by the caller count as well.

    Raises:
        InvalidInputError: If a stream can't seek.
    """
    if isinstance(content, bytes):
        return len(content)
    if hasattr(content, 'size'):
        return content.size
    try:
        content.seek(0, os.SEEK_END)
        length = content.tell()
        content.seek(0)
    except (io.UnsupportedOperation, AttributeError) as error:
        raise InvalidInputError('content', 'stream must be seekable') from error
    return length


def _validate_upload_size(size: int, content: bytes | IO[bytes]) -> None:
    if size < 0:
        raise InvalidInputError('size', 'must not be negative')

    limit = settings.FILES_MAX_UPLOAD_BYTES
    if size > limit:
        logger.warning('Upload rejected: %d bytes over limit %d', size, limit)
        raise PayloadTooLargeError(limit_bytes=limit, required_bytes=size)

    actual_size = _measure_content(content)
    if actual_size != size:
        raise InvalidInputError(
            'size',
            f'declared {size} bytes, content has {actual_size}',
        )


def upload_file(  # noqa: WPS211
    content: bytes | IO[bytes],
    declared_name: str,
    content_type: str | None,
    size: int,
    owner_id: int,
    content_store: ContentStore | None = None,
) -> FileMetadata:
    """Store content and create its metadata record.

    Transaction safety: write the blob first, then create the record.
    If creating the record fails, the blob is removed again (best
    effort) and the database error is chained to a StorageFailureError.

    A stream is stored whole, from offset 0, regardless of its current
    position.

    Args:
        content: Raw bytes or a seekable binary file-like object.
        declared_name: Name supplied by the uploader.
        content_type: Declared MIME type. Detected from the name when
            empty.
        size: Declared size in bytes, must match the content.
        owner_id: ID of the uploading user.
        content_store: Blob store, defaults to the configured one.

    Returns:
        Projection of the created record.

    Raises:
        InvalidInputError: If name, size or content type are malformed,
            or the stream can't seek.
        PayloadTooLargeError: If size exceeds FILES_MAX_UPLOAD_BYTES.
        StorageFailureError: If writing the blob or its record fails.
    """
    display_name = sanitize_filename(declared_name)
    if content_type and content_type.strip():
        mime_type = validate_content_type(content_type)
    else:
        mime_type = detect_mime_type(display_name)
    _validate_upload_size(size, content)

    store = content_store or _get_content_store()

    # Step 1: Write blob first
    storage_key = store.put(content, display_name)

    # Step 2: Create database record (in transaction)
    try:
        with transaction.atomic():
            record = records.create_record(
                owner_id=owner_id,
                display_name=display_name,
                content_type=mime_type,
                size_bytes=size,
                storage_key=storage_key,
            )
    except DatabaseError as error:
        # Rollback: remove blob since the record was not created
        logger.exception(
            'Database transaction failed, rolling back blob: %s',
            storage_key,
        )
        store.rollback_put(storage_key)
        raise StorageFailureError('Failed to persist file record') from error

    logger.info(
        'File uploaded: %s (ID: %d, owner: %d, size: %d)',
        display_name,
        record.id,
        owner_id,
        size,
    )
    return FileMetadata.from_record(record)


def list_files(owner_id: int) -> list[FileMetadata]:
    """List owner's live files in upload order.

    Args:
        owner_id: ID of the owning user.

    Returns:
        Projections, oldest upload first.
    """
    logger.debug('Listing files of owner %d', owner_id)
    return [
        FileMetadata.from_record(record)
        for record in records.list_by_owner(owner_id)
    ]


def fetch_file(
    file_id: int,
    owner_id: int,
    mode: FetchMode | str = FetchMode.DOWNLOAD,
    content_store: ContentStore | None = None,
) -> FetchResult:
    """Open a file for download or inline viewing.

    Download always uses 'application/octet-stream' as an attachment.
    View derives the type from the display name extension and serves
    it inline.

    Args:
        file_id: ID of file to fetch.
        owner_id: ID of the requesting user.
        mode: 'download' or 'view'.
        content_store: Blob store, defaults to the configured one.

    Returns:
        FetchResult with an open stream the caller must close.

    Raises:
        NotFoundError: If file is missing, deleted, not owned, or its
            content is gone.
        InvalidInputError: If mode is unknown.
        StorageFailureError: If reading the blob fails.
    """
    try:
        fetch_mode = FetchMode(mode)
    except ValueError as error:
        raise InvalidInputError('mode', f'unknown mode {mode!r}') from error

    record = _get_owned_record(file_id, owner_id)
    store = content_store or _get_content_store()
    stream = store.get(record.storage_key)

    if fetch_mode is FetchMode.VIEW:
        content_type = resolve_view_content_type(record.display_name)
        disposition = Disposition.INLINE
    else:
        content_type = _DOWNLOAD_CONTENT_TYPE
        disposition = Disposition.ATTACHMENT

    logger.info(
        'File fetched for %s: ID=%d, owner=%d',
        fetch_mode,
        file_id,
        owner_id,
    )
    return FetchResult(
        stream=stream,
        content_type=content_type,
        disposition=disposition,
        filename=record.display_name,
    )


def rename_file(file_id: int, new_name: str, owner_id: int) -> FileMetadata:
    """Change the display name of a file.

    The blob and its storage key are untouched. If the new name has no
    extension but the current one has, the current extension is kept:
    'report.pdf' renamed to 'summary' becomes 'summary.pdf'. Text after
    a leading dot counts as an extension, so '.hidden' stays as is.

    Args:
        file_id: ID of file to rename.
        new_name: New display name.
        owner_id: ID of the requesting user.

    Returns:
        Projection of the updated record.

    Raises:
        InvalidInputError: If the new name is empty or unusable.
        NotFoundError: If file is missing, deleted or not owned.
    """
    trimmed = (new_name or '').strip()
    if not trimmed:
        raise InvalidInputError('new_name', 'must not be empty')
    cleaned_name = sanitize_filename(trimmed, field='new_name')

    record = _get_owned_record(file_id, owner_id)

    original_extension = get_rename_extension(record.display_name)
    if original_extension and not get_rename_extension(cleaned_name):
        cleaned_name = sanitize_filename(
            f'{cleaned_name}.{original_extension}',
            field='new_name',
        )

    updated = records.rename(record.id, cleaned_name)
    if updated is None:
        # Deleted between lookup and update
        raise NotFoundError(file_id)

    logger.info(
        'File renamed: %s -> %s (ID: %d)',
        record.display_name,
        cleaned_name,
        file_id,
    )
    return FileMetadata.from_record(updated)


def delete_file(file_id: int, owner_id: int) -> None:
    """Soft delete a file.

    Only the record is marked deleted; the blob stays in storage.

    Args:
        file_id: ID of file to delete.
        owner_id: ID of the requesting user.

    Raises:
        NotFoundError: If file is missing, already deleted or not owned.
    """
    affected = records.soft_delete(file_id, owner_id)
    if affected == 0:
        logger.warning(
            'Delete found nothing: ID=%d, owner=%d',
            file_id,
            owner_id,
        )
        raise NotFoundError(file_id)

    logger.info('File soft-deleted: ID=%d, owner=%d', file_id, owner_id)
