"""Business logic for exporting several files as one ZIP archive."""

import logging
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from io import BytesIO
from typing import final

from django.conf import settings

from server.apps.files.exceptions import (
    BlobNotFoundError,
    NotFoundError,
    PayloadTooLargeError,
    StorageFailureError,
)
from server.apps.files.infrastructure import records
from server.apps.files.infrastructure.metadata import split_extension
from server.apps.files.infrastructure.storage import ContentStore
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class ExportArchive:
    """Finished archive ready to be sent."""

    stream: BytesIO
    entry_names: tuple[str, ...]
    size_bytes: int


def _unique_entry_name(name: str, used_names: set[str]) -> str:
    """Pick an archive entry name that is not taken yet.

    Example: second 'x.txt' -> 'x (2).txt', third -> 'x (3).txt'

    Args:
        name: Preferred entry name.
        used_names: Names already written to the archive.

    Returns:
        ``name`` itself or the first free counter variant.
    """
    if name not in used_names:
        return name

    stem, suffix = split_extension(name)
    counter = 2
    while True:
        candidate = f'{stem} ({counter}){suffix}'
        if candidate not in used_names:
            return candidate
        counter += 1


def _dedupe_ids(file_ids: Iterable[int]) -> list[int]:
    """Drop repeated IDs, keeping first occurrences in order."""
    return list(dict.fromkeys(file_ids))


def _resolve_accessible(file_ids: list[int], owner_id: int) -> list[FileRecord]:
    """Load owner's live records in the requested order."""
    found = records.find_accessible(file_ids, owner_id)
    skipped = len(file_ids) - len(found)
    if skipped:
        logger.warning(
            'Export for owner %d skipped %d inaccessible IDs',
            owner_id,
            skipped,
        )
    return [found[file_id] for file_id in file_ids if file_id in found]


def _check_export_size(accessible: list[FileRecord]) -> None:
    limit = settings.FILES_EXPORT_MAX_BYTES
    total = sum(record.size_bytes for record in accessible)
    if total > limit:
        logger.warning(
            'Export rejected: %d bytes over limit %d',
            total,
            limit,
        )
        raise PayloadTooLargeError(limit_bytes=limit, required_bytes=total)


def export_files(
    file_ids: Iterable[int],
    owner_id: int,
    content_store: ContentStore | None = None,
) -> ExportArchive:
    """Pack the owner's requested files into one ZIP archive.

    IDs that are missing, soft-deleted or owned by someone else are
    skipped silently. Entries are named after the current display name;
    clashing names get a counter suffix so nothing is overwritten.

    The archive is built in memory. The combined size of the selected
    files is checked against FILES_EXPORT_MAX_BYTES before any content
    is read.

    Args:
        file_ids: Requested file IDs, in the desired entry order.
        owner_id: ID of the requesting user.
        content_store: Blob store, defaults to the configured one.

    Returns:
        ExportArchive with the stream positioned at the start.

    Raises:
        NotFoundError: If none of the IDs is accessible.
        PayloadTooLargeError: If the files exceed the export limit.
        StorageFailureError: If content of a selected file can't be read.
    """
    requested = _dedupe_ids(file_ids)
    accessible = _resolve_accessible(requested, owner_id) if requested else []
    if not accessible:
        logger.warning('Export for owner %d found no accessible files', owner_id)
        raise NotFoundError()

    _check_export_size(accessible)

    store = content_store or ContentStore()
    buffer = BytesIO()
    used_names: set[str] = set()
    entry_names: list[str] = []

    with zipfile.ZipFile(
        buffer,
        'w',
        zipfile.ZIP_DEFLATED,
        compresslevel=settings.FILES_EXPORT_COMPRESSLEVEL,
    ) as archive:
        for record in accessible:
            try:
                data = store.read(record.storage_key)
            except BlobNotFoundError as error:
                logger.error(
                    'Export aborted, content missing for ID=%d',
                    record.id,
                )
                raise StorageFailureError(
                    f'Content of file {record.id} is unavailable',
                ) from error

            entry_name = _unique_entry_name(record.display_name, used_names)
            used_names.add(entry_name)
            entry_names.append(entry_name)
            archive.writestr(entry_name, data)

    size_bytes = buffer.tell()
    buffer.seek(0)

    logger.info(
        'Archive created for owner %d: %d files, %d bytes',
        owner_id,
        len(entry_names),
        size_bytes,
    )
    return ExportArchive(
        stream=buffer,
        entry_names=tuple(entry_names),
        size_bytes=size_bytes,
    )
