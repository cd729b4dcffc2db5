from __future__ import annotations

import argparse
import functools
import logging
import os
import sys
from typing import Any

from walk_usage.usageconfig import UNBOUNDED_DEPTH
from walk_usage.usageconfig import UsageConfig
from walk_usage.usageconfig import write_new_config
from walk_usage.usagefs import free_space
from walk_usage.usagemodel import Unit
from walk_usage.usagereporter import UsageReporter
from walk_usage.usagewalker import UsageWalker

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Report the disk space used by each folder below a directory.",
    )
    parser.add_argument(
        "directory",
        type=str,
        nargs="?",
        default=".",
        help="The directory to scan. Default: the current directory.",
    )
    parser.add_argument(
        "--unit",
        help="Unit to report sizes in. Default: mib.",
        choices=[unit.value for unit in Unit],
        type=str.lower,
        default=None,
    )
    parser.add_argument(
        "--depth",
        help=f"Folder levels to list, or '{UNBOUNDED_DEPTH}' for all. Default: 1.",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--no-progress",
        help="Do not draw the progress spinner.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--hide-zero",
        help="Omit folders whose size rounds to zero.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--no-free",
        help="Do not report the free space of the volume.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--no-links",
        help="Skip symbolic links and reparse points.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--include-offline",
        help="Count offline files.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--no-hidden",
        help="Skip hidden files and directories.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--config",
        help="Read options from this configuration file. Flags take precedence.",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--make-config",
        help="Create a default configuration file at the given path and exit.",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--debug",
        help="Enable debug logging.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--log-file",
        help="Also write log messages to the given file.",
        type=str,
        default=None,
    )
    return parser.parse_args(args)


def build_overrides(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    """Map the command line flags onto configuration sections."""
    # Only flags that were given override the file, unset ones stay None
    return {
        "report": {
            "unit": args.unit,
            "depth": args.depth,
            "show_progress": False if args.no_progress else None,
            "hide_zero": True if args.hide_zero else None,
            "show_free_space": False if args.no_free else None,
        },
        "walk": {
            "follow_links": False if args.no_links else None,
            "include_offline": True if args.include_offline else None,
            "include_hidden": False if args.no_hidden else None,
        },
    }


def add_file_handler_to_logging(log_filepath: str) -> None:
    """Add a file handler to the root logger."""
    file_handler = logging.FileHandler(log_filepath)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)


def main(*, cli_args: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(cli_args)

    if args.make_config:
        write_new_config(args.make_config)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    if args.log_file:
        add_file_handler_to_logging(args.log_file)

    try:
        config = UsageConfig(args.config, build_overrides(args))
        config.validate()
    except ValueError as error:
        logger.error("Invalid configuration: %s", error)
        return 1

    directory = os.path.abspath(args.directory)
    if not os.path.isdir(directory):
        logger.error("Path %r is not a directory", args.directory)
        return 1

    reporter = UsageReporter(
        config.unit_format,
        depth=config.depth,
        show_progress=config.show_progress and sys.stdout.isatty(),
        hide_zero=config.hide_zero,
        free_space=(
            functools.partial(free_space, directory) if config.show_free_space else None
        ),
    )
    walker = UsageWalker.from_config(reporter, config)

    if walker.run(directory) is None:
        logger.error("Cannot read directory %r", args.directory)
        reporter.mark_unknown()
        reporter.finish()
        return 1

    reporter.finish()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
