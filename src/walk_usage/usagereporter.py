from __future__ import annotations

import logging
import sys
import time
from typing import Callable
from typing import TextIO

from .usageformat import nice_size
from .usagemodel import FolderRecord
from .usagemodel import ProgressPhase
from .usagemodel import ProgressState
from .usagemodel import UnitFormat

SLOW_SCAN_SECONDS = 2.0
REDRAW_SECONDS = 0.5
SPINNER_GLYPHS = "-\\|/"
THIS_DIRECTORY = "."
FREE_LABEL = "free"


class UsageReporter:
    """Buffer folder sizes per top-level branch and write the report."""

    logger = logging.getLogger(__name__)

    def __init__(
        self,
        unit_format: UnitFormat,
        *,
        depth: int | None = 1,
        show_progress: bool = True,
        hide_zero: bool = False,
        free_space: Callable[[], int | None] | None = None,
        stream: TextIO | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize a new UsageReporter.

        Args:
            unit_format: The divisor, suffix and width used for every size.

        Keyword Args:
            depth: Folders at this level or deeper are counted but not
                listed. None lists every level. Defaults to 1.
            show_progress: Draw the live spinner between flushes. Only enable
                this when the stream is an interactive terminal.
            hide_zero: Omit folders whose size rounds to zero.
            free_space: Called once by finish() to get the free bytes of the
                volume. None, or a call returning None, omits the free line.
            stream: Where the report is written. Defaults to sys.stdout.
            clock: Monotonic time source in seconds, used to throttle the
                spinner.
        """
        self._unit_format = unit_format
        self._depth = depth
        self._show_progress = show_progress
        self._hide_zero = hide_zero
        self._free_space = free_space
        self._stream = stream if stream is not None else sys.stdout
        self._clock = clock

        self._pending: dict[str, FolderRecord] = {}
        self._progress = ProgressState()

        self.folder_size = 0
        self.total_size = 0
        self._unknown = False

    def note_current_folder(self, name: str, is_link: bool) -> None:
        """Set the label shown by the spinner while a top-level folder is walked."""
        self._progress.label = name
        self._progress.is_link = is_link

    def record_folder(
        self,
        relative_path: str,
        name: str,
        is_link: bool,
        size: int | None,
        level: int,
    ) -> None:
        """
        Record a finished folder. A level 0 folder closes its branch.

        Args:
            relative_path: Path from the starting directory, used as sort key.
            name: The folder name shown in the report.
            is_link: Whether the folder was reached through a link.
            size: Total bytes below the folder, None if it could not be read.
            level: Depth of the folder's parent, 0 for the starting directory.
        """
        if self._depth is None or level < self._depth:
            self._pending[relative_path] = FolderRecord(
                relative_path=relative_path,
                name=name,
                is_link=is_link,
                size=size,
                level=level,
            )

        if level == 0:
            self.end_top_level_entry()

    def end_top_level_entry(self) -> None:
        """Flush the finished branch and restart the spinner for the next entry."""
        self.flush()
        self._reset_progress()

    def record_file(self, size: int, level: int) -> None:
        """Count a file and advance the spinner."""
        self.total_size += size

        if level == 0:
            self.folder_size += size

        self._tick()

    def mark_unknown(self) -> None:
        """Report the starting directory as unreadable in the summary lines."""
        self._unknown = True

    def finish(self) -> None:
        """Write any pending folders followed by the summary lines."""
        self.flush()

        unit_format = self._unit_format

        folder_size = nice_size(
            None if self._unknown else self.folder_size, unit_format, self._hide_zero
        )
        if folder_size:
            self._write_line(f"{folder_size}  {THIS_DIRECTORY}")

        self._write_line("-" * unit_format.width)
        self._write_line(nice_size(None if self._unknown else self.total_size, unit_format))

        if self._free_space is None:
            return

        free = self._free_space()
        if free is None:
            self.logger.debug("Free space unavailable, omitting the free line")
            return

        self._write_line(f"{nice_size(free, unit_format)} {FREE_LABEL}")

    def flush(self) -> None:
        """Write the pending folders sorted by relative path and clear them."""
        self._clear_progress_line()

        # Plain string order: "top/x-y" sorts between "top/x" and "top/x/sub"
        for relative_path in sorted(self._pending):
            record = self._pending[relative_path]
            size = nice_size(record.size, self._unit_format, self._hide_zero)
            if not size:
                continue

            indent = "  " * record.level
            self._write_line(f"{size}  {indent}{record.display_name()}")

        self._pending.clear()
        self._stream.flush()

    def _write_line(self, line: str) -> None:
        if self._show_progress:
            self._stream.write("\r")
        self._stream.write(line + "\n")

    def _reset_progress(self) -> None:
        self._progress = ProgressState()

    def _clear_progress_line(self) -> None:
        """Blank a spinner line so shorter report lines do not leave residue."""
        width = self._progress.drawn_width
        if not width:
            return

        self._stream.write("\r" + " " * width)
        self._progress.drawn_width = 0

    def _tick(self) -> None:
        """Advance the quiet, warming and animating spinner states."""
        if not self._show_progress:
            return

        progress = self._progress
        now = self._clock()

        if progress.phase is ProgressPhase.QUIET:
            progress.phase = ProgressPhase.WARMING
            progress.last_tick = now
            return

        elapsed = now - progress.last_tick

        if progress.phase is ProgressPhase.WARMING:
            if elapsed < SLOW_SCAN_SECONDS:
                return
            progress.phase = ProgressPhase.ANIMATING

        if elapsed >= REDRAW_SECONDS:
            self._draw_spinner()
            progress.last_tick = now

    def _draw_spinner(self) -> None:
        progress = self._progress
        glyph = SPINNER_GLYPHS[progress.spinner_index]
        label = f"[{progress.label}]" if progress.is_link else progress.label
        line = f"{glyph} {label}"

        # Pad over the remainder of a longer previous label
        self._stream.write("\r" + line.ljust(progress.drawn_width))
        self._stream.flush()

        progress.drawn_width = max(progress.drawn_width, len(line))
        progress.spinner_index = (progress.spinner_index + 1) % len(SPINNER_GLYPHS)
