from __future__ import annotations

import os
import random
from io import StringIO
from pathlib import Path
from typing import Any

from fakefs import ROOT
from fakefs import FakeFilesystem
from fakefs import Flagged

from walk_usage.usagemodel import UNIT_FORMATS
from walk_usage.usagemodel import Unit
from walk_usage.usagereporter import UsageReporter
from walk_usage.usagewalker import UsageWalker

BYTES = UNIT_FORMATS[Unit.BYTES]


def scan(
    tree: dict[str, Any],
    *,
    depth: int | None = 1,
    failing: tuple[str, ...] = (),
    hide_zero: bool = False,
    **walker_kwargs: Any,
) -> tuple[str, UsageReporter]:
    stream = StringIO()
    reporter = UsageReporter(
        walker_kwargs.pop("unit_format", BYTES),
        depth=depth,
        show_progress=False,
        hide_zero=hide_zero,
        stream=stream,
    )
    walker = UsageWalker(
        reporter,
        enumerate_directory=FakeFilesystem(tree, failing),
        **walker_kwargs,
    )
    walker.walk(ROOT)
    reporter.finish()
    return stream.getvalue(), reporter


def generate_tree(rand: random.Random, depth: int) -> dict[str, Any]:
    """Build a pseudo random tree, like a tiny generated filesystem."""
    tree: dict[str, Any] = {}
    for i in range(rand.randint(0, 6)):
        tree[f"{i:02d}.txt"] = rand.randint(0, 2**20)
    if depth > 0:
        for i in range(rand.randint(0, 4)):
            tree[f"{i:02d}.d"] = generate_tree(rand, depth - 1)
    return tree


def sum_files(tree: dict[str, Any]) -> int:
    return sum(sum_files(v) if isinstance(v, dict) else v for v in tree.values())


def test_small_tree_report() -> None:
    tree = {"a.txt": 500, "sub": {"b.txt": 1500}}

    output, _ = scan(tree)

    assert output.splitlines() == [
        f"{'1,500':>15}  sub",
        f"{'500':>15}  .",
        "-" * 15,
        f"{'2,000':>15}",
    ]


def test_nested_report_sorted_and_indented() -> None:
    tree = {
        "zoo": {"z": 1, "kids": {"k": 2}, "apes": {"a": 3}},
        "bar": {"b": 4},
        "loose": 5,
    }

    output, _ = scan(tree, depth=2)

    assert output.splitlines() == [
        f"{'6':>15}  zoo",
        f"{'3':>15}    apes",
        f"{'2':>15}    kids",
        f"{'4':>15}  bar",
        f"{'5':>15}  .",
        "-" * 15,
        f"{'15':>15}",
    ]


def test_depth_zero_prints_only_summary() -> None:
    tree = {"a.txt": 500, "sub": {"b.txt": 1500, "inner": {"c": 7}}}

    output, _ = scan(tree, depth=0)

    assert output.splitlines() == [
        f"{'500':>15}  .",
        "-" * 15,
        f"{'2,007':>15}",
    ]


def test_unknown_folder_shows_question_mark_and_zero_upward() -> None:
    tree = {
        "top": {"f": 100, "locked": {"secret": 10_000}},
        "other": {"g": 1},
    }

    output, reporter = scan(tree, depth=2, failing=(os.path.join("top", "locked"),))

    assert output.splitlines() == [
        f"{'100':>15}  top",
        f"{'?':>15}    locked",
        f"{'1':>15}  other",
        f"{'0':>15}  .",
        "-" * 15,
        f"{'101':>15}",
    ]
    assert reporter.total_size == 101


def test_loose_top_level_file_does_not_warm_up_next_folder() -> None:
    ticks = iter(range(0, 300, 3))
    stream = StringIO()
    reporter = UsageReporter(
        BYTES,
        show_progress=True,
        stream=stream,
        clock=lambda: float(next(ticks)),
    )
    tree = {"loose": 1, "b": {"f": 1}}
    walker = UsageWalker(reporter, enumerate_directory=FakeFilesystem(tree))

    walker.walk(ROOT)
    reporter.finish()

    assert stream.getvalue() == (
        f"\r{'1':>15}  b\n"
        f"\r{'1':>15}  .\n"
        f"\r{'-' * 15}\n"
        f"\r{'2':>15}\n"
    )


def test_hide_zero_hides_lines_but_keeps_totals() -> None:
    tree = {"tiny": {"t": 10}, "big": {"b": 2_000_000}, "loose": 100}
    kib = UNIT_FORMATS[Unit.KIB]

    output, _ = scan(tree, hide_zero=True, unit_format=kib)

    assert output.splitlines() == [
        f"{'1,953 KiB':>15}  big",
        "-" * 15,
        f"{'1,953 KiB':>15}",
    ]


def test_links_bracketed_in_report() -> None:
    tree = {"mnt": Flagged({"x": 10}, is_link=True)}

    output, _ = scan(tree)

    assert output.splitlines()[0] == f"{'10':>15}  [mnt]"


def test_generated_tree_totals_match_file_sizes() -> None:
    rand = random.Random(3)

    for _ in range(20):
        tree = generate_tree(rand, 4)
        _, reporter = scan(tree, depth=None)

        assert reporter.total_size == sum_files(tree)


def test_top_level_folders_plus_loose_files_equal_total() -> None:
    tree = generate_tree(random.Random(11), 4)
    stream = StringIO()
    reporter = UsageReporter(BYTES, depth=1, show_progress=False, stream=stream)
    walker = UsageWalker(reporter, enumerate_directory=FakeFilesystem(tree))

    total = walker.walk(ROOT)

    top_folders = sum(sum_files(v) for v in tree.values() if isinstance(v, dict))
    assert reporter.folder_size + top_folders == reporter.total_size == total


def test_scan_is_idempotent() -> None:
    tree = generate_tree(random.Random(5), 3)

    first, _ = scan(tree, depth=3)
    second, _ = scan(tree, depth=3)

    assert first == second


def test_real_directory_tree(tmp_path: Path) -> None:
    (tmp_path / "sub" / "deeper").mkdir(parents=True)
    (tmp_path / "sub" / "deeper" / "c.bin").write_bytes(b"x" * 25)
    (tmp_path / "sub" / "b.txt").write_bytes(b"x" * 1500)
    (tmp_path / "a.txt").write_bytes(b"x" * 500)
    stream = StringIO()
    reporter = UsageReporter(BYTES, depth=2, show_progress=False, stream=stream)
    walker = UsageWalker(reporter)

    total = walker.run(str(tmp_path))
    reporter.finish()

    assert total == 2025
    assert stream.getvalue().splitlines() == [
        f"{'1,525':>15}  sub",
        f"{'25':>15}    deeper",
        f"{'500':>15}  .",
        "-" * 15,
        f"{'2,025':>15}",
    ]
