"""
=============================================================================
DIRECTORY LISTING
=============================================================================

Renders the immediate contents of a directory as a bare HTML fragment.

=============================================================================
OUTPUT
=============================================================================

    /srv/www/
    ├── .git/          ← hidden: skipped
    ├── sub/
    ├── b.txt
    └── a.txt

renders as (one line, wrapped here for reading):

    <h2>directories</h2><a href='./sub'>sub</a><br />
    <h2>files</h2><a href='./a.txt'>a.txt</a><br /><a href='./b.txt'>b.txt</a><br />

- Directories first, then files. Each group sorted by name, byte-wise.
  os.scandir() order is arbitrary and never leaks into the output.
- A group with no entries is left out entirely, heading included.
- Names starting with "." are skipped, and so are names that are not valid
  text (undecodable bytes in the filename).
- Links are relative (./NAME), so they only resolve correctly when the
  listing was requested with a trailing slash.

Nothing is cached: every request reads the directory again.

=============================================================================
ERRORS
=============================================================================

    ReadingDirectoryError   could not open the directory
    ReadingEntryError       iterating the directory failed part way
    ReadingMetadataError    stat() on one entry failed

All three derive from ListError and chain the error that caused them: an
OSError, or a ValueError for a path with an embedded NUL byte.
The dispatcher turns any of them into a 500 response.

=============================================================================
"""

import logging
import os
import stat
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)


class ListError(Exception):
    """Base class for directory listing failures."""

    description = "failed to list directory"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"{self.description} '{path}'")

    @property
    def source(self) -> Optional[BaseException]:
        """The OSError this failure was raised from."""
        return self.__cause__


class ReadingDirectoryError(ListError):
    description = "failed to read directory"


class ReadingEntryError(ListError):
    description = "failed to read entry data in directory"


class ReadingMetadataError(ListError):
    description = "failed to read metadata for path"


def _is_valid_text(name: str) -> bool:
    # os.scandir() smuggles undecodable filename bytes through as lone
    # surrogates (surrogateescape); those names are not valid text.
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def scan_directory(directory: str) -> Tuple[List[str], List[str]]:
    """
    Read a directory and partition its visible entries.

    Args:
        directory: Path of the directory to read.

    Returns:
        ``(directories, files)``, each sorted byte-wise by name.

    Raises:
        ReadingDirectoryError, ReadingEntryError, ReadingMetadataError
    """
    directories: List[str] = []
    files: List[str] = []

    try:
        scanner = os.scandir(directory)
    except (OSError, ValueError) as exc:
        raise ReadingDirectoryError(directory) from exc

    with scanner:
        while True:
            try:
                entry = next(scanner)
            except StopIteration:
                break
            except OSError as exc:
                raise ReadingEntryError(directory) from exc

            try:
                # Symlinks are classified as themselves, not their targets
                is_dir = stat.S_ISDIR(entry.stat(follow_symlinks=False).st_mode)
            except OSError as exc:
                raise ReadingMetadataError(entry.path) from exc

            name = entry.name
            if not _is_valid_text(name):
                logger.debug(f"Skipping undecodable entry in {directory!r}")
                continue

            # Hidden files and directories
            if name.startswith("."):
                continue

            if is_dir:
                directories.append(name)
            else:
                files.append(name)

    directories.sort(key=_byte_order)
    files.sort(key=_byte_order)
    return directories, files


def _byte_order(name: str) -> bytes:
    return name.encode("utf-8")


def _anchor(name: str) -> str:
    return f"<a href='./{name}'>{name}</a><br />"


def render_listing(directories: List[str], files: List[str]) -> str:
    """Render the two name groups as the listing fragment."""
    parts: List[str] = []

    if directories:
        parts.append("<h2>directories</h2>")
        parts.extend(_anchor(name) for name in directories)

    if files:
        parts.append("<h2>files</h2>")
        parts.extend(_anchor(name) for name in files)

    return "".join(parts)


def list_directory(directory: str) -> str:
    """
    Produce the HTML listing fragment for ``directory``.

    Raises:
        ListError: Any failure while reading the directory.
    """
    directories, files = scan_directory(directory)
    return render_listing(directories, files)
