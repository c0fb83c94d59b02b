"""Exceptions for files app.

Every failure of a files operation is one of these types. The boundary
layer maps them to transport responses. None of them carries a storage
path in its message.
"""


class FileServiceError(Exception):
    """Base class for all typed outcomes of file operations."""


class NotFoundError(FileServiceError):
    """Raised when a file is missing, soft-deleted or owned by someone else.

    The three cases are indistinguishable to the caller.
    """

    def __init__(
        self,
        file_id: int | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize NotFoundError.

        Args:
            file_id: ID that was looked up, if there was one.
            message: Overrides the default message.
        """
        self.file_id = file_id
        if message is None:
            if file_id is None:
                message = 'No accessible files'
            else:
                message = f'File not found: {file_id}'
        super().__init__(message)


class BlobNotFoundError(NotFoundError):
    """Raised when a storage key does not resolve to stored content."""

    def __init__(self, storage_key: str) -> None:
        """Initialize BlobNotFoundError.

        Args:
            storage_key: Key that could not be resolved.
        """
        super().__init__(message='Stored content not found')
        self.storage_key = storage_key


class InvalidInputError(FileServiceError):
    """Raised when a name, size or content type is not acceptable."""

    def __init__(self, field: str, message: str) -> None:
        """Initialize InvalidInputError.

        Args:
            field: Name of the offending input.
            message: Human readable reason.
        """
        self.field = field
        super().__init__(f'{field}: {message}')


class StorageFailureError(FileServiceError):
    """Raised when blob I/O fails. Not retried."""


class PayloadTooLargeError(FileServiceError):
    """Raised when an upload or export exceeds its configured bound."""

    def __init__(self, limit_bytes: int, required_bytes: int) -> None:
        """Initialize PayloadTooLargeError.

        Args:
            limit_bytes: Configured maximum in bytes.
            required_bytes: Bytes the operation would need.
        """
        self.limit_bytes = limit_bytes
        self.required_bytes = required_bytes
        super().__init__(
            f'Payload too large: {required_bytes} bytes '
            f'exceeds limit of {limit_bytes} bytes',
        )
