from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator

import psutil

from .usagemodel import DirectoryEntry

# Windows file attribute flags, also present in the stat module on Windows only.
FILE_ATTRIBUTE_HIDDEN = 0x2
FILE_ATTRIBUTE_DEVICE = 0x40
FILE_ATTRIBUTE_REPARSE_POINT = 0x400
FILE_ATTRIBUTE_OFFLINE = 0x1000

logger = logging.getLogger(__name__)


def scan_directory(path: str, follow_links: bool = True) -> Iterator[DirectoryEntry]:
    """
    Enumerate a directory.

    The directory is opened before returning so that a directory which cannot
    be read raises here, while an error part way through the listing only ends
    the sequence early.

    Args:
        path: The directory to list.
        follow_links: Report sizes and types of link targets instead of the
            links themselves.

    Raises:
        OSError: The directory could not be opened.
    """
    iterator = os.scandir(path)
    return _iter_entries(path, iterator, follow_links)


def _iter_entries(
    path: str,
    iterator: Iterator[os.DirEntry[str]],
    follow_links: bool,
) -> Iterator[DirectoryEntry]:
    with iterator as entries:  # type: ignore[attr-defined]
        while True:
            try:
                entry = next(entries)
            except StopIteration:
                return
            except OSError as error:
                logger.debug("Listing of '%s' ended early: %s", path, error)
                return

            try:
                yield _build_entry(entry, follow_links)
            except OSError as error:
                # Removed between the listing and the stat call
                logger.debug("Skipping '%s': %s", entry.path, error)


def _build_entry(entry: os.DirEntry[str], follow_links: bool) -> DirectoryEntry:
    """
    Build a DirectoryEntry from a scandir entry.

    Raises:
        OSError
    """
    link_stat = entry.stat(follow_symlinks=False)
    attributes = getattr(link_stat, "st_file_attributes", 0)
    is_link = entry.is_symlink() or bool(attributes & FILE_ATTRIBUTE_REPARSE_POINT)

    st = link_stat
    if is_link and follow_links:
        try:
            st = entry.stat(follow_symlinks=True)
        except OSError:
            # Dangling link, count the link itself
            st = link_stat

    mode = st.st_mode
    is_dir = stat.S_ISDIR(mode)
    is_device = bool(attributes & FILE_ATTRIBUTE_DEVICE) or not (
        is_dir or stat.S_ISREG(mode) or stat.S_ISLNK(mode)
    )

    return DirectoryEntry(
        name=entry.name,
        is_dir=is_dir,
        is_link=is_link,
        is_device=is_device,
        is_offline=bool(attributes & FILE_ATTRIBUTE_OFFLINE),
        is_hidden=entry.name.startswith(".") or bool(attributes & FILE_ATTRIBUTE_HIDDEN),
        size=0 if is_dir else st.st_size,
        file_id=(st.st_dev, st.st_ino) if st.st_ino else None,
    )


def directory_id(path: str) -> tuple[int, int] | None:
    """Return the (device, inode) pair of a directory, None when unavailable."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    if not st.st_ino:
        return None
    return st.st_dev, st.st_ino


def free_space(path: str | None = None) -> int | None:
    """
    Return the free bytes on the volume holding path.

    Args:
        path: Any path on the volume. Defaults to the current directory.

    Returns:
        The free space in bytes or None when the query is not possible.
    """
    try:
        return int(psutil.disk_usage(path or os.getcwd()).free)
    except OSError as error:
        logger.debug("Free space query for '%s' failed: %s", path, error)
        return None
