"""Name handling and MIME type utilities for files."""

import mimetypes
import re
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Final

from server.apps.files.exceptions import InvalidInputError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_NAME_MAX_LENGTH: Final = 255
_RESERVED_NAMES: Final = frozenset(('', '.', '..'))

# type/subtype with an optional parameter list, e.g. 'text/plain; charset=utf-8'
_MIME_TYPE_PATTERN: Final = re.compile(
    r'^[\w.+-]+/[\w.+-]+(\s*;\s*[\w.+-]+=("[^"]*"|[\w.+-]+))*$',
)
_CONTROL_CHARS: Final = re.compile(r'[\x00-\x1f\x7f]')

# Types used when a file is rendered inline
_VIEW_MIME_TYPES: Final = MappingProxyType({
    'pdf': 'application/pdf',
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'txt': 'text/plain',
    'html': 'text/html',
    'htm': 'text/html',
    'mp4': 'video/mp4',
    'mp3': 'audio/mpeg',
})


def sanitize_filename(raw_name: str, field: str = 'name') -> str:
    """Reduce a caller supplied name to a safe single path component.

    Trims whitespace, drops control characters and strips every
    directory component. Both ``/`` and ``\\`` count as separators.

    Args:
        raw_name: Name as supplied by the caller.
        field: Input name reported on failure.

    Returns:
        Sanitized name, e.g. '../../etc/passwd' -> 'passwd'.

    Raises:
        InvalidInputError: If nothing usable is left, or the name is
            longer than 255 characters.
    """
    cleaned = _CONTROL_CHARS.sub('', raw_name or '').strip()
    cleaned = cleaned.replace('\\', '/')
    name = PurePosixPath(cleaned).name.strip() if cleaned else ''

    if name in _RESERVED_NAMES:
        raise InvalidInputError(field, 'name is empty after sanitizing')
    if len(name) > _NAME_MAX_LENGTH:
        raise InvalidInputError(
            field,
            f'name is longer than {_NAME_MAX_LENGTH} characters',
        )
    return name


def split_extension(filename: str) -> tuple[str, str]:
    """Split filename into stem and suffix.

    Example: 'report.final.PDF' -> ('report.final', '.PDF')

    Returns:
        Tuple of stem and suffix (with dot, original case). The suffix is
        empty when there is no extension; dotfiles like '.env' have none.
    """
    path = PurePosixPath(filename)
    return path.stem, path.suffix


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    _, suffix = split_extension(filename)
    return suffix.lstrip('.').lower()


def get_rename_extension(filename: str) -> str:
    """Get the extension a rename keeps when the new name has none.

    Everything after the last dot, in original case. Unlike
    ``split_extension``, a leading dot starts an extension too.

    Example: '.hidden' -> 'hidden', 'notes.' -> '', 'README' -> ''
    """
    _, dot, extension = filename.rpartition('.')
    return extension if dot else ''


def detect_mime_type(filename: str) -> str:
    """Guess MIME type from the filename extension.

    Used when an upload does not declare its content type.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename, strict=False)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def resolve_view_content_type(filename: str) -> str:
    """Map filename extension to the type used for inline viewing.

    Only a fixed set of extensions is recognized, everything else
    is served as 'application/octet-stream'.
    """
    return _VIEW_MIME_TYPES.get(
        get_file_extension(filename),
        _DEFAULT_MIME_TYPE,
    )


def validate_content_type(content_type: str) -> str:
    """Validate declared MIME type.

    Args:
        content_type: Value declared by the uploader.

    Returns:
        Stripped MIME type.

    Raises:
        InvalidInputError: If value is not a type/subtype pair.
    """
    stripped = content_type.strip()
    if len(stripped) > _NAME_MAX_LENGTH or not _MIME_TYPE_PATTERN.match(stripped):
        raise InvalidInputError('content_type', 'malformed MIME type')
    return stripped
