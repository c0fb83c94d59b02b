"""Persistence of file records.

Thin repository over the ``FileRecord`` model. Every owner check
happens in the query itself, so a record of another owner looks
exactly like a missing one.
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from django.db.models import QuerySet
from django.utils import timezone

from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)


def create_record(  # noqa: WPS211
    owner_id: int,
    display_name: str,
    content_type: str,
    size_bytes: int,
    storage_key: str,
    uploaded_at: datetime | None = None,
) -> FileRecord:
    """Insert a new, not deleted record.

    Args:
        owner_id: ID of the owning user.
        display_name: Sanitized user-visible name.
        content_type: MIME type.
        size_bytes: Content size in bytes.
        storage_key: Key the content was stored under.
        uploaded_at: Upload time, defaults to now.

    Returns:
        Created FileRecord instance.
    """
    record = FileRecord.all_objects.create(
        owner_id=owner_id,
        display_name=display_name,
        content_type=content_type,
        size_bytes=size_bytes,
        storage_key=storage_key,
        uploaded_at=uploaded_at or timezone.now(),
    )
    logger.info(
        'File record created: %s (ID: %d, owner: %d)',
        storage_key,
        record.id,
        owner_id,
    )
    return record


def find_by_id(record_id: int) -> FileRecord | None:
    """Get record by ID, including soft-deleted ones.

    Returns:
        FileRecord instance or None if it does not exist.
    """
    return FileRecord.all_objects.filter(id=record_id).first()


def find_owned(record_id: int, owner_id: int) -> FileRecord | None:
    """Get a live record that belongs to the owner.

    Args:
        record_id: Record ID.
        owner_id: ID of the requesting user.

    Returns:
        FileRecord instance, or None when the record is missing, deleted
        or owned by someone else.
    """
    return FileRecord.objects.filter(id=record_id, owner_id=owner_id).first()


def find_accessible(
    record_ids: Iterable[int],
    owner_id: int,
) -> dict[int, FileRecord]:
    """Resolve many IDs at once, keeping only the owner's live records.

    Args:
        record_ids: Requested record IDs.
        owner_id: ID of the requesting user.

    Returns:
        Mapping of ID to record for every accessible ID.
    """
    records = FileRecord.objects.filter(
        id__in=list(record_ids),
        owner_id=owner_id,
    )
    return {record.id: record for record in records}


def list_by_owner(
    owner_id: int,
    include_deleted: bool = False,
) -> QuerySet[FileRecord]:
    """List owner's records in upload order.

    Args:
        owner_id: ID of the owning user.
        include_deleted: Whether soft-deleted records are included.

    Returns:
        QuerySet ordered by upload time, oldest first.
    """
    manager = FileRecord.all_objects if include_deleted else FileRecord.objects
    return manager.filter(owner_id=owner_id).order_by('uploaded_at', 'id')


def soft_delete(
    record_id: int,
    owner_id: int,
    now: datetime | None = None,
) -> int:
    """Mark a record deleted in one conditioned UPDATE.

    Only a row that matches the ID and the owner and is not deleted yet
    is touched, so concurrent deletes cannot both succeed.

    Args:
        record_id: Record ID.
        owner_id: ID of the requesting user.
        now: Deletion time, defaults to now.

    Returns:
        Number of affected rows (0 or 1). Zero means missing, owned by
        someone else or already deleted.
    """
    affected = FileRecord.all_objects.filter(
        id=record_id,
        owner_id=owner_id,
        is_deleted=False,
    ).update(
        is_deleted=True,
        deleted_at=now or timezone.now(),
    )
    logger.debug(
        'Soft delete of ID=%d for owner %d affected %d rows',
        record_id,
        owner_id,
        affected,
    )
    return affected


def rename(record_id: int, new_name: str) -> FileRecord | None:
    """Change the display name of a live record.

    Args:
        record_id: Record ID.
        new_name: Already sanitized display name.

    Returns:
        Updated FileRecord, or None if the record is missing or deleted.
    """
    affected = FileRecord.objects.filter(id=record_id).update(
        display_name=new_name,
    )
    if affected == 0:
        return None
    return FileRecord.objects.filter(id=record_id).first()
