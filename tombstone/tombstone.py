#!/usr/bin/env python3
"""
tombstone.py - A safe and ergonomic alternative to rm

Instead of unlinking files, tombstone moves them into a graveyard directory
and records where they came from, so they can be restored later.

Usage:
    tombstone [OPTIONS] [FILES...]
    tombstone graveyard [-s]

Modes:
    (default)          Bury FILES in the graveyard
    -u, --unbury       Restore graves (the last burial if none are given)
    -s, --seance       List graves buried from the current directory
    -d, --decompose    Permanently delete the graveyard

Examples:
    # Bury a file and a directory
    tombstone notes.txt build/

    # Bring back the last thing buried
    tombstone -u

    # Restore everything buried from the current directory
    tombstone -s -u
"""

import io
import os
import sys
import logging
import platform
from typing import Callable, List, Mapping, Optional, TextIO

from colorama import just_fix_windows_console

from . import __version__, utils
from .cli import create_parser, parse_args
from .config import TombstoneConfig, validate_args

from filetoolkit.utils import ColoredFormatter, add_log_file
from tombstonelib import (
    BURIED,
    Record,
    TombstoneError,
    bury,
    decompose,
    ensure_graveyard,
    graveyard_subdir,
    seance,
    unbury
)

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(args):
    """Set up logging based on verbosity level"""
    log_level = logging.INFO
    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    use_color = utils.color_enabled and not args.no_color and sys.stderr.isatty()
    console_handler = logging.StreamHandler()
    if args.verbose:
        console_handler.setFormatter(ColoredFormatter(DETAILED_FORMAT, use_colors=use_color))
    else:
        # INFO goes out as the bare message, warnings and errors get a prefix
        console_handler.setFormatter(ColoredFormatter(use_colors=use_color, plain_info=True))
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)
    root_logger.setLevel(log_level)

    if args.log:
        add_log_file(root_logger, args.log, log_level, DETAILED_FORMAT)

    # Package loggers only get a level; output goes through the root logger
    for module_name in ['tombstone', 'tombstonelib', 'filetoolkit']:
        module_logger = logging.getLogger(module_name)
        for handler in module_logger.handlers[:]:
            module_logger.removeHandler(handler)
        module_logger.setLevel(log_level)
        module_logger.propagate = True

    return logging.getLogger('tombstone')


def handle_graveyard_command(args, config: TombstoneConfig, stream: TextIO) -> None:
    """Print the graveyard path, or where the current directory maps inside it"""
    if args.seance:
        print(graveyard_subdir(config.graveyard), file=stream)
    else:
        print(config.graveyard, file=stream)


def handle_unbury(args, config: TombstoneConfig, record: Record, confirm, stream: TextIO) -> None:
    """Restore graves and report where each one went"""
    restored = unbury(
        args.targets,
        record,
        config.graveyard,
        confirm=confirm,
        allow_rename=config.allow_rename,
        force=config.force,
        seance=args.seance
    )
    for grave, original in restored:
        print(f"Returned {grave} to {original}", file=stream)


def handle_seance(config: TombstoneConfig, record: Record, stream: TextIO) -> None:
    """List graves under the current directory"""
    with seance(record, config.graveyard) as graves:
        print(f"{'deletion_time':<19}\tpath", file=stream)
        for grave in graves:
            print(f"{grave.format_time_for_display()}\t{grave.destination}", file=stream)


def handle_bury(args, config: TombstoneConfig, record: Record, confirm, stream: TextIO) -> None:
    """Bury every target in order, stopping at the first failure"""
    for target in args.targets:
        result = bury(
            target,
            config.graveyard,
            record,
            confirm=confirm,
            allow_rename=config.allow_rename,
            force=config.force,
            inspect=args.inspect,
            stream=stream
        )
        if result.outcome == BURIED:
            logging.getLogger('tombstone').debug(f"{target} -> {result.destination}")
        else:
            logging.getLogger('tombstone').debug(f"{target}: {result.outcome}")


def run(
    args,
    confirm: Optional[Callable[[str], bool]] = None,
    stream: Optional[TextIO] = None,
    environ: Optional[Mapping[str, str]] = None
) -> None:
    """
    Run one parsed command line.

    Args:
        args: Parsed arguments (see cli.parse_args)
        confirm: Question callback, interactive terminal prompt by default
        stream: Where command output goes, stdout by default
        environ: Environment for configuration, os.environ by default

    Raises:
        TombstoneError: On graveyard errors
        OSError: On filesystem errors
    """
    confirm = confirm or utils.confirm_operation
    stream = stream or sys.stdout

    validate_args(args)
    config = TombstoneConfig.from_args(args, environ)

    if args.command == 'graveyard':
        handle_graveyard_command(args, config, stream)
        return

    ensure_graveyard(config.graveyard)
    record = Record(config.graveyard, lock=config.file_lock)

    if args.decompose:
        decompose(config.graveyard, confirm=confirm, force=config.force)
    elif args.unbury:
        handle_unbury(args, config, record, confirm, stream)
    elif args.seance:
        handle_seance(config, record, stream)
    elif not args.targets:
        create_parser().print_help(file=stream)
    else:
        handle_bury(args, config, record, confirm, stream)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the program"""
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if args.no_color:
        utils.disable_color()
    just_fix_windows_console()
    if isinstance(sys.stdout, io.TextIOWrapper):
        # Paths that aren't valid UTF-8 are printed back as their raw bytes
        sys.stdout.reconfigure(errors='surrogateescape')

    logger = setup_logging(args)

    logger.debug(f"Platform: {platform.platform()}")
    logger.debug(f"Python version: {platform.python_version()}")
    logger.debug(f"tombstone {__version__} invoked with: {' '.join(sys.argv)}")
    logger.debug(f"Working directory: {os.getcwd()}")

    try:
        run(args)
    except (TombstoneError, OSError) as e:
        logger.debug("Operation failed", exc_info=True)
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
