from __future__ import annotations

import argparse
import logging
import random
import shutil
from pathlib import Path

from walk_usage.__main__ import main as walk_usage_main

BASE_DIR: Path = Path(__file__).resolve().parent
TEST_DIR: Path = BASE_DIR / "smoketest_tree"
FILE_COUNT_RANGE: tuple[int, int] = (1, 200)
FILE_SIZE_RANGE: tuple[int, int] = (0, 64 * 1024)

logger = logging.getLogger(__name__)


def build_smoketest_tree(root: Path, depth: int, rand: random.Random) -> int:
    """Create a random tree of directories and files, return the bytes written."""
    root.mkdir(parents=True, exist_ok=True)
    written = 0

    for index in range(rand.randint(*FILE_COUNT_RANGE)):
        size = rand.randint(*FILE_SIZE_RANGE)
        (root / f"file{index:04d}.bin").write_bytes(b"\0" * size)
        written += size

    if depth > 0:
        for index in range(rand.randint(1, 6)):
            written += build_smoketest_tree(root / f"dir{index:02d}", depth - 1, rand)

    return written


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a large tree and scan it.")
    parser.add_argument("--depth", type=int, default=4, help="Tree depth to build.")
    parser.add_argument("--seed", type=int, default=3, help="Random seed.")
    parser.add_argument("--keep", action="store_true", help="Keep the tree afterwards.")
    return parser.parse_args()


def main() -> int:
    """Build the smoketest tree and run walk-usage against it."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = parse_args()

    logger.info("Building tree in %s", TEST_DIR)
    written = build_smoketest_tree(TEST_DIR, args.depth, random.Random(args.seed))
    logger.info("Wrote %d bytes", written)

    try:
        return walk_usage_main(cli_args=[str(TEST_DIR), "--unit", "bytes", "--depth", "2"])

    finally:
        if not args.keep:
            shutil.rmtree(TEST_DIR)


if __name__ == "__main__":
    raise SystemExit(main())
