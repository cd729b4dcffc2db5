from __future__ import annotations

import logging
import os
import re
from configparser import ConfigParser
from typing import Any

from .usagemodel import DEFAULT_UNIT
from .usagemodel import UNIT_FORMATS
from .usagemodel import Unit
from .usagemodel import UnitFormat

DEFAULT_DEPTH = 1
UNBOUNDED_DEPTH = "max"

NEW_CONFIG = """\
[report]
# One of: bytes, kb, mb, gb, tb, kib, mib, gib, tib
unit = mib
# How many folder levels to list. Use "max" to list every level.
depth = 1
show_progress = true
hide_zero = false
show_free_space = true

[walk]
follow_links = true
include_offline = false
include_hidden = true

# Exclude directories and files from the walk.
# The following are regular expressions and are matched against the path
# relative to the starting directory.
# Multiline values are combined into a single regular expression.
exclude_directories =
exclude_files =

    """


class UsageConfig:
    """Configuration for a disk usage scan."""

    logger = logging.getLogger("walk_usage.UsageConfig")

    def __init__(
        self,
        filepath: str | None = None,
        overrides: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        """
        Load the configuration.

        Args:
            filepath: Optional INI file to read. Raises ValueError when given
                but not readable.
            overrides: Section/option values applied on top of the file,
                usually from the command line. None values are ignored.
        """
        self._config = ConfigParser()

        if filepath is not None:
            success = self._config.read(filepath)
            if not success:
                raise ValueError(f"Could not read config file at {filepath}")
            self.logger.debug("Loaded config from %s", filepath)

        if overrides:
            self._config.read_dict(
                {
                    section: {
                        key: str(value).lower() if isinstance(value, bool) else str(value)
                        for key, value in options.items()
                        if value is not None
                    }
                    for section, options in overrides.items()
                }
            )

    def validate(self) -> None:
        """Read every option once, raising ValueError on any malformed value."""
        try:
            self.unit
            self.depth
            self.show_progress
            self.hide_zero
            self.show_free_space
            self.follow_links
            self.include_offline
            self.include_hidden
            self.exclude_directory_pattern
            self.exclude_file_pattern
        except re.error as error:
            raise ValueError(f"Invalid exclude pattern: {error}") from error

    @property
    def unit(self) -> Unit:
        """Return the unit to report sizes in."""
        value = self._config.get("report", "unit", fallback=DEFAULT_UNIT.value)
        return Unit.from_name(value)

    @property
    def unit_format(self) -> UnitFormat:
        """Return the divisor, suffix and width of the configured unit."""
        return UNIT_FORMATS[self.unit]

    @property
    def depth(self) -> int | None:
        """Return how many folder levels to list, None for every level."""
        value = self._config.get("report", "depth", fallback=str(DEFAULT_DEPTH))
        value = value.strip().lower()
        if value == UNBOUNDED_DEPTH:
            return None

        try:
            depth = int(value)
        except ValueError:
            raise ValueError(f"Depth must be an integer or '{UNBOUNDED_DEPTH}', got '{value}'")

        if depth < 0:
            raise ValueError(f"Depth cannot be negative, got {depth}")

        return depth

    @property
    def show_progress(self) -> bool:
        """Return whether to draw the live progress spinner."""
        return self._config.getboolean("report", "show_progress", fallback=True)

    @property
    def hide_zero(self) -> bool:
        """Return whether to omit folders that round to zero."""
        return self._config.getboolean("report", "hide_zero", fallback=False)

    @property
    def show_free_space(self) -> bool:
        """Return whether to report the free space of the volume."""
        return self._config.getboolean("report", "show_free_space", fallback=True)

    @property
    def follow_links(self) -> bool:
        """Return whether symbolic links and reparse points are followed."""
        return self._config.getboolean("walk", "follow_links", fallback=True)

    @property
    def include_offline(self) -> bool:
        """Return whether offline files are counted."""
        return self._config.getboolean("walk", "include_offline", fallback=False)

    @property
    def include_hidden(self) -> bool:
        """Return whether hidden files and directories are counted."""
        return self._config.getboolean("walk", "include_hidden", fallback=True)

    @property
    def exclude_directory_pattern(self) -> re.Pattern[str] | None:
        """Return the compiled pattern to exclude directories from the walk."""
        return self._get_pattern("exclude_directories")

    @property
    def exclude_file_pattern(self) -> re.Pattern[str] | None:
        """Return the compiled pattern to exclude files from the walk."""
        return self._get_pattern("exclude_files")

    def _get_pattern(self, option: str) -> re.Pattern[str] | None:
        config_line = self._config.get("walk", option, fallback="")
        lines = [line.strip() for line in config_line.splitlines() if line.strip()]
        if not lines:
            return None
        return re.compile("|".join(lines))


def write_new_config(filename: str) -> None:
    """Write a new config file if one does not exist."""
    if os.path.exists(filename):
        return

    with open(filename, "w") as config_file:
        config_file.write(NEW_CONFIG)
