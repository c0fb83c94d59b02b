"""Database models for files app."""

from typing import ClassVar, Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

from server.apps.files.infrastructure.metadata import get_file_extension

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_STORAGE_KEY_MAX_LENGTH: Final = 255


class ActiveFileRecordManager(models.Manager['FileRecord']):
    """Manager that hides soft-deleted records."""

    @override
    def get_queryset(self) -> models.QuerySet['FileRecord']:
        """Exclude records marked as deleted."""
        return super().get_queryset().filter(is_deleted=False)


@final
class FileRecord(models.Model):
    """Metadata of one uploaded file.

    The content itself lives in blob storage under ``storage_key``,
    which is generated once at upload and never changes. Records are
    never physically removed by file operations: deleting a file only
    sets ``is_deleted`` and ``deleted_at``.
    """

    # Owner relationship, fixed at creation
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='file_records',
    )

    display_name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        help_text='User-visible name, not unique',
    )

    content_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='MIME type declared at upload',
    )

    size_bytes = models.PositiveBigIntegerField(
        help_text='File size in bytes',
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        help_text='Opaque blob locator, never exposed to clients',
    )

    uploaded_at = models.DateTimeField(default=timezone.now)

    # Soft delete marker pair
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveFileRecordManager()
    all_objects = models.Manager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File record'  # type: ignore[mutable-override]
        verbose_name_plural = 'File records'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['uploaded_at', 'id']

        indexes: ClassVar[list[models.Index]] = [
            # Optimize owner listings in upload order
            models.Index(
                fields=['owner', 'is_deleted', 'uploaded_at'],
                name='files_owner_active_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            # deleted_at is set if and only if the record is deleted
            models.CheckConstraint(
                condition=(
                    models.Q(is_deleted=True, deleted_at__isnull=False) |
                    models.Q(is_deleted=False, deleted_at__isnull=True)
                ),
                name='files_deleted_at_consistent',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.display_name}'

    def get_extension(self) -> str:
        """Extract display name extension.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        return get_file_extension(self.display_name)
