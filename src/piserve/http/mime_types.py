"""
=============================================================================
CONTENT-TYPE RESOLUTION
=============================================================================

Maps a file extension to the MIME type reported in the Content-Type header.

=============================================================================
TWO STEPS, NOTHING CLEVER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │              resolve_content_type(extension, body)                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. TABLE LOOKUP                                                   │
    │      "HTML" → lower() → "html" → MIME_TYPES → "text/html"           │
    │                                                                     │
    │   2. CONTENT FALLBACK (no extension, or not in the table)           │
    │      body == b""             → application/octet-stream             │
    │      body decodes as UTF-8   → text/plain                           │
    │      anything else           → application/octet-stream             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

This is a lookup table, not a sniffing engine. There is no magic-byte
detection (a PNG without its .png extension is just "binary") and no charset
detection beyond "is it valid UTF-8?".

Unlike mimetypes.guess_type() the result never depends on the host's
/etc/mime.types, so every installation answers identically.

=============================================================================
"""

import os
from typing import Optional


# =============================================================================
# EXTENSION TABLE
# =============================================================================
#
# Keys are lowercase extensions WITHOUT the leading dot.
# Module-level and never mutated after import, so worker threads share it
# without locking.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # MARKUP & DOCUMENTS
    # -------------------------------------------------------------------------
    "html": "text/html",
    "htm": "text/html",
    "xhtml": "application/xhtml+xml",
    "xml": "text/xml",
    "css": "text/css",
    "csv": "text/csv",
    "md": "text/markdown",
    "ics": "text/calendar",
    "json": "application/json",
    "jsonld": "application/ld+json",
    "pdf": "application/pdf",
    "epub": "application/epub+zip",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",

    # -------------------------------------------------------------------------
    # SCRIPTS
    # -------------------------------------------------------------------------
    "js": "application/javascript",
    "php": "application/x-httpd-php",
    "pl": "application/x-perl",
    "sh": "application/x-sh",

    # -------------------------------------------------------------------------
    # PLAIN-TEXT SOURCE FILES
    # -------------------------------------------------------------------------
    # Shown in the browser rather than downloaded.
    "c": "text/plain",
    "cs": "text/plain",
    "py": "text/plain",
    "rb": "text/plain",
    "rs": "text/plain",
    "toml": "text/plain",
    "ts": "text/plain",
    "txt": "text/plain",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    "gif": "image/gif",
    "ico": "image/vnd.microsoft.icon",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "svg": "image/svg+xml",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "webp": "image/webp",

    # -------------------------------------------------------------------------
    # AUDIO
    # -------------------------------------------------------------------------
    "mp3": "audio/mpeg",
    "oga": "audio/ogg",
    "opus": "audio/opus",
    "wav": "audio/wav",
    "weba": "audio/webm",

    # -------------------------------------------------------------------------
    # VIDEO
    # -------------------------------------------------------------------------
    "mp4": "video/mp4",
    "mpeg": "video/mpeg",
    "ogv": "video/ogg",
    "webm": "video/webm",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    "otf": "font/otf",
    "ttf": "font/ttf",
    "woff": "font/woff",
    "woff2": "font/woff2",

    # -------------------------------------------------------------------------
    # ARCHIVES
    # -------------------------------------------------------------------------
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "zip": "application/zip",
}

# Generic types used by the content fallback
TEXT_MIME_TYPE = "text/plain"
BINARY_MIME_TYPE = "application/octet-stream"


# =============================================================================
# PUBLIC FUNCTIONS
# =============================================================================

def lookup_extension(extension: str) -> Optional[str]:
    """
    Look an extension up in the table.

    Case-insensitive. A leading dot is tolerated.

        >>> lookup_extension("CSS")
        'text/css'
        >>> lookup_extension("rs")
        'text/plain'
        >>> lookup_extension("hello!") is None
        True
    """
    return MIME_TYPES.get(extension.lower().lstrip("."))


def mime_from_content(body: bytes) -> str:
    """
    Classify a body as generic text or generic binary.

    Empty bodies are binary: there is nothing to call text.
    """
    if not body:
        return BINARY_MIME_TYPE

    try:
        body.decode("utf-8")
    except UnicodeDecodeError:
        return BINARY_MIME_TYPE

    return TEXT_MIME_TYPE


def resolve_content_type(extension: Optional[str], body: bytes) -> str:
    """
    Resolve the Content-Type for a response body.

    Args:
        extension: File extension without the dot (e.g. "html"), or None.
        body: The exact bytes that will be sent.

    Returns:
        A MIME type string. Never raises for unknown extensions; they fall
        back to content inspection.

    Examples:
        >>> resolve_content_type("json", b"{}")
        'application/json'
        >>> resolve_content_type(None, b"hello")
        'text/plain'
        >>> resolve_content_type("xyz", b"\\xff\\xfe")
        'application/octet-stream'
        >>> resolve_content_type(None, b"")
        'application/octet-stream'
    """
    if extension:
        mime_type = lookup_extension(extension)
        if mime_type is not None:
            return mime_type

    return mime_from_content(body)


def extension_of(path: str) -> Optional[str]:
    """
    Return the final extension of a path, without the dot.

        >>> extension_of("/srv/www/index.html")
        'html'
        >>> extension_of("archive.tar.gz")
        'gz'
        >>> extension_of("/srv/www/.bashrc") is None
        True
        >>> extension_of("Makefile") is None
        True
    """
    _, ext = os.path.splitext(path)
    if not ext:
        return None
    return ext[1:]
