"""
Request handlers: reading files and listing directories.

    static.py    serve_file(), status_for_error()
    listing.py   list_directory() and its ListError family
"""

from .static import serve_file, status_for_error, read_file
from .listing import (
    ListError,
    ReadingDirectoryError,
    ReadingEntryError,
    ReadingMetadataError,
    list_directory,
    render_listing,
    scan_directory,
)

__all__ = [
    "serve_file",
    "status_for_error",
    "read_file",
    "ListError",
    "ReadingDirectoryError",
    "ReadingEntryError",
    "ReadingMetadataError",
    "list_directory",
    "render_listing",
    "scan_directory",
]
