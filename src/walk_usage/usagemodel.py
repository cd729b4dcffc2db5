from __future__ import annotations

import dataclasses
import enum


class Unit(enum.Enum):
    """Units a size can be reported in."""

    BYTES = "bytes"
    KB = "kb"
    MB = "mb"
    GB = "gb"
    TB = "tb"
    KIB = "kib"
    MIB = "mib"
    GIB = "gib"
    TIB = "tib"

    @classmethod
    def from_name(cls, name: str) -> Unit:
        """
        Return the unit for the given name, case insensitive.

        Raises:
            ValueError: If the name is not a known unit.
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            choices = ", ".join(unit.value for unit in cls)
            raise ValueError(f"Unknown unit '{name}', expected one of: {choices}")


@dataclasses.dataclass(frozen=True)
class UnitFormat:
    """How sizes are scaled and padded for a unit."""

    divisor: int
    suffix: str
    width: int


UNIT_FORMATS: dict[Unit, UnitFormat] = {
    Unit.BYTES: UnitFormat(1, "", 15),
    Unit.KB: UnitFormat(1000, " KB", 14),
    Unit.MB: UnitFormat(1000**2, " MB", 10),
    Unit.GB: UnitFormat(1000**3, " GB", 8),
    Unit.TB: UnitFormat(1000**4, " TB", 6),
    Unit.KIB: UnitFormat(1024, " KiB", 15),
    Unit.MIB: UnitFormat(1024**2, " MiB", 11),
    Unit.GIB: UnitFormat(1024**3, " GiB", 9),
    Unit.TIB: UnitFormat(1024**4, " TiB", 7),
}

DEFAULT_UNIT = Unit.MIB


@dataclasses.dataclass(frozen=True)
class DirectoryEntry:
    """One entry returned by a directory enumeration."""

    name: str
    is_dir: bool = False
    is_link: bool = False
    is_device: bool = False
    is_offline: bool = False
    is_hidden: bool = False
    size: int = 0
    file_id: tuple[int, int] | None = None


@dataclasses.dataclass(frozen=True)
class FolderRecord:
    """A finished directory waiting to be reported."""

    relative_path: str
    name: str
    is_link: bool
    size: int | None
    level: int

    def display_name(self) -> str:
        """Return the name, wrapped in brackets for links."""
        return f"[{self.name}]" if self.is_link else self.name


class ProgressPhase(enum.Enum):
    QUIET = 0
    WARMING = 1
    ANIMATING = 2


@dataclasses.dataclass
class ProgressState:
    """Live progress indicator state for the current top-level branch."""

    phase: ProgressPhase = ProgressPhase.QUIET
    last_tick: float = 0.0
    spinner_index: int = 0
    label: str = ""
    is_link: bool = False
    drawn_width: int = 0
