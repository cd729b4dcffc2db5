from __future__ import annotations

import logging
import os
import re
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING
from typing import Callable

from .usagefs import directory_id
from .usagefs import scan_directory
from .usagemodel import DirectoryEntry

if TYPE_CHECKING:
    from typing import Protocol

    class _UsageSink(Protocol):
        def note_current_folder(self, name: str, is_link: bool) -> None:
            ...

        def record_folder(
            self,
            relative_path: str,
            name: str,
            is_link: bool,
            size: int | None,
            level: int,
        ) -> None:
            ...

        def record_file(self, size: int, level: int) -> None:
            ...

        def end_top_level_entry(self) -> None:
            ...

    class _UsageConfig(Protocol):
        @property
        def follow_links(self) -> bool:
            ...

        @property
        def include_offline(self) -> bool:
            ...

        @property
        def include_hidden(self) -> bool:
            ...

        @property
        def exclude_directory_pattern(self) -> re.Pattern[str] | None:
            ...

        @property
        def exclude_file_pattern(self) -> re.Pattern[str] | None:
            ...


Enumerator = Callable[[str, bool], Iterable[DirectoryEntry]]

PSEUDO_ENTRIES = (".", "..")


class UsageWalker:
    """Walk a directory tree depth first, summing file sizes into a sink."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        sink: _UsageSink,
        *,
        follow_links: bool = True,
        include_offline: bool = False,
        include_hidden: bool = True,
        exclude_directory_pattern: re.Pattern[str] | None = None,
        exclude_file_pattern: re.Pattern[str] | None = None,
        enumerate_directory: Enumerator = scan_directory,
    ) -> None:
        """
        Initialize a new UsageWalker.

        Args:
            sink: Receives the current folder label, finished folders and
                every counted file.

        Keyword Args:
            follow_links: Descend into and count link targets. When False,
                links are skipped entirely. Defaults to True.
            include_offline: Count offline files. Defaults to False.
            include_hidden: Count hidden files and directories. Defaults to True.
            exclude_directory_pattern: Skip directories whose relative path
                matches.
            exclude_file_pattern: Skip files whose relative path matches.
            enumerate_directory: Lists a directory, raising OSError when it
                cannot be read. Defaults to scan_directory().
        """
        self._sink = sink
        self._follow_links = follow_links
        self._include_offline = include_offline
        self._include_hidden = include_hidden
        self._exclude_directory_pattern = exclude_directory_pattern
        self._exclude_file_pattern = exclude_file_pattern
        self._enumerate_directory = enumerate_directory

        # Directories on the current recursion stack, by (device, inode)
        self._active: set[tuple[int, int]] = set()

    @classmethod
    def from_config(
        cls,
        sink: _UsageSink,
        config: _UsageConfig,
        enumerate_directory: Enumerator = scan_directory,
    ) -> UsageWalker:
        """Build a UsageWalker from the given configuration."""
        return cls(
            sink,
            follow_links=config.follow_links,
            include_offline=config.include_offline,
            include_hidden=config.include_hidden,
            exclude_directory_pattern=config.exclude_directory_pattern,
            exclude_file_pattern=config.exclude_file_pattern,
            enumerate_directory=enumerate_directory,
        )

    def run(self, directory: str) -> int | None:
        """
        Walk the starting directory.

        Returns:
            The total bytes counted, None if the directory could not be read.
        """
        self.logger.debug("Walking directory: %s", directory)
        tic = time.perf_counter()

        self._active.clear()
        root_id = directory_id(directory)
        if root_id is not None:
            self._active.add(root_id)

        total = self.walk(directory)

        toc = time.perf_counter()
        self.logger.debug("Walk of %s finished in %s seconds", directory, toc - tic)
        return total

    def walk(self, directory: str, relative_path: str = "", level: int = 0) -> int | None:
        """
        Sum the sizes of everything below directory.

        Args:
            directory: The directory to list.
            relative_path: Path of directory from the starting directory.
            level: 0 for the starting directory, increasing by one per level.

        Returns:
            The total bytes of all counted files below directory, or None if
            the directory itself could not be listed.
        """
        try:
            entries = self._enumerate_directory(directory, self._follow_links)
        except OSError as error:
            self.logger.warning("Cannot list '%s': %s", directory, error)
            return None

        total_size = 0

        for entry in entries:
            if not self._is_included(entry):
                continue

            entry_path = os.path.join(directory, entry.name)
            entry_relative_path = (
                os.path.join(relative_path, entry.name) if relative_path else entry.name
            )

            if entry.is_dir:
                if self._is_ignored_directory(entry_relative_path):
                    self.logger.debug("Ignoring directory '%s'", entry_relative_path)
                    continue

                if entry.file_id is not None and entry.file_id in self._active:
                    self.logger.debug("Skipping loop back into '%s'", entry_path)
                    continue

                folder_size = self._walk_subdirectory(
                    entry, entry_path, entry_relative_path, level
                )
                self._sink.record_folder(
                    entry_relative_path,
                    entry.name,
                    entry.is_link,
                    folder_size,
                    level,
                )

                # An unreadable folder counts as nothing for its parents
                if folder_size is not None:
                    total_size += folder_size

            else:
                if self._is_ignored_filename(entry_relative_path):
                    self.logger.debug("Ignoring file '%s'", entry_relative_path)
                    continue

                self._sink.record_file(entry.size, level)
                total_size += entry.size

                if level == 0:
                    self._sink.end_top_level_entry()

        return total_size

    def _walk_subdirectory(
        self,
        entry: DirectoryEntry,
        entry_path: str,
        entry_relative_path: str,
        level: int,
    ) -> int | None:
        if level == 0:
            self._sink.note_current_folder(entry.name, entry.is_link)

        if entry.file_id is not None:
            self._active.add(entry.file_id)

        try:
            return self.walk(entry_path, entry_relative_path, level + 1)
        finally:
            if entry.file_id is not None:
                self._active.discard(entry.file_id)

    def _is_included(self, entry: DirectoryEntry) -> bool:
        """True if the entry passes the link, device, offline and hidden rules."""
        if entry.name in PSEUDO_ENTRIES:
            return False

        if entry.is_device:
            return False

        if entry.is_offline and not self._include_offline:
            return False

        if entry.is_link and not self._follow_links:
            return False

        if entry.is_hidden and not self._include_hidden:
            return False

        return True

    def _is_ignored_filename(self, relative_path: str) -> bool:
        """True if the file path is in the excluded pattern."""
        ptn = self._exclude_file_pattern
        return bool(ptn and ptn.search(relative_path))

    def _is_ignored_directory(self, relative_path: str) -> bool:
        """True if the directory path is in the excluded pattern."""
        ptn = self._exclude_directory_pattern
        return bool(ptn and ptn.search(relative_path))
