"""Limits for the files app."""

from typing import Final

from server.settings.components import config

_MEBIBYTE: Final = 1024 * 1024

# Uploads larger than this are rejected before any bytes are written
FILES_MAX_UPLOAD_BYTES = config(
    'FILES_MAX_UPLOAD_BYTES',
    cast=int,
    default=100 * _MEBIBYTE,
)

# Combined size of all files packed into one export archive
FILES_EXPORT_MAX_BYTES = config(
    'FILES_EXPORT_MAX_BYTES',
    cast=int,
    default=256 * _MEBIBYTE,
)

# zlib level for export archives (0-9)
FILES_EXPORT_COMPRESSLEVEL = config(
    'FILES_EXPORT_COMPRESSLEVEL',
    cast=int,
    default=6,
)
