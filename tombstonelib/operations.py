"""
High-level graveyard operations.

This module provides the operations the command line dispatches to: burying
targets, restoring graves, listing graves under a directory (seance) and
purging the whole graveyard (decompose). Filesystem work is delegated to
filetoolkit and bookkeeping to the ``Record``.
"""

import os
import sys
import shutil
import logging
from contextlib import suppress
from pathlib import Path
from typing import Callable, Iterable, List, NamedTuple, Optional, TextIO, Tuple, Union

from filetoolkit import (
    RelocationError,
    canonicalize,
    format_size,
    is_within_directory,
    join_absolute,
    move_target,
    remove_path,
    rename_grave,
    symlink_exists
)

from .errors import InvalidTargetError, TargetNotFoundError
from .record import GraveReader, Record

# Set up module-level logger
logger = logging.getLogger(__name__)

# How much of a target to show before asking whether to bury it
LINES_TO_INSPECT = 6
FILES_TO_INSPECT = 6

# Outcomes of a bury
BURIED = 'buried'
DELETED = 'deleted'
UNLINKED = 'unlinked'
SKIPPED = 'skipped'

ConfirmCallback = Callable[[str], bool]


class BuryResult(NamedTuple):
    """What happened to one target."""

    source: Path
    destination: Optional[Path]
    outcome: str


def _always_confirm(prompt: str) -> bool:
    return True


def ensure_graveyard(graveyard: Union[str, Path]) -> Path:
    """
    Create the graveyard directory, readable by its owner only, if missing.

    Returns:
        The absolute graveyard path
    """
    graveyard_path = Path(graveyard).absolute()
    if not graveyard_path.exists():
        # Another process may create it between the check and the mkdir
        graveyard_path.mkdir(parents=True, mode=0o700, exist_ok=True)
        os.chmod(graveyard_path, 0o700)
        logger.debug(f"Created graveyard at {graveyard_path}")
    return graveyard_path


def graveyard_subdir(graveyard: Union[str, Path], cwd: Optional[Union[str, Path]] = None) -> Path:
    """Where the contents of ``cwd`` end up inside the graveyard."""
    return join_absolute(Path(graveyard).absolute(), Path(cwd or os.getcwd()).resolve())


def inspect_target(target: Union[str, Path], source: Path, stream: TextIO) -> None:
    """
    Print a short preview of a target.

    Directories show their total size and first few entries; files show their
    size and first few lines.
    """
    if source.is_dir() and not source.is_symlink():
        total = 0
        for root, dirnames, filenames in os.walk(source):
            for name in filenames:
                with suppress(OSError):
                    total += os.lstat(os.path.join(root, name)).st_size
        print(f"{target}: directory, {format_size(total)} including:", file=stream)
        for entry in sorted(source.iterdir())[:FILES_TO_INSPECT]:
            print(entry, file=stream)
    else:
        print(f"{target}: file, {format_size(os.lstat(source).st_size)}", file=stream)
        try:
            with open(source, 'r', encoding='utf-8', errors='replace') as fh:
                for index, line in enumerate(fh):
                    if index >= LINES_TO_INSPECT:
                        break
                    print(f"> {line.rstrip()}", file=stream)
        except OSError:
            print(f"Error reading {source}", file=stream)


def should_we_bury_this(
    target: Union[str, Path],
    source: Path,
    confirm: ConfirmCallback,
    stream: TextIO
) -> bool:
    """Show a preview of ``target`` and ask whether to bury it."""
    inspect_target(target, source, stream)
    return confirm(f"Send {target} to the graveyard?")


def bury(
    target: Union[str, Path],
    graveyard: Union[str, Path],
    record: Record,
    cwd: Optional[Union[str, Path]] = None,
    confirm: ConfirmCallback = _always_confirm,
    allow_rename: bool = True,
    force: bool = False,
    inspect: bool = False,
    stream: Optional[TextIO] = None
) -> BuryResult:
    """
    Move a target into the graveyard and record it.

    Args:
        target: Path as given by the user
        graveyard: Graveyard directory (must exist)
        record: Record of the graveyard
        cwd: Directory relative targets are taken from
        confirm: Callback used for every question
        allow_rename: Whether to try a plain rename before copying
        force: Never prompt, take the default branch
        inspect: Preview the target and ask before burying
        stream: Where previews go (stdout by default)

    Returns:
        BuryResult with the outcome

    Raises:
        TargetNotFoundError: If the target doesn't exist
        RelocationError: If the move fails
    """
    graveyard = Path(graveyard).absolute()
    cwd_path = Path(cwd or os.getcwd())
    try:
        os.lstat(cwd_path / target)
    except OSError as e:
        raise TargetNotFoundError(f"Cannot remove {target}: no such file or directory") from e

    source = canonicalize(target, cwd_path)

    if inspect and not should_we_bury_this(target, source, confirm, stream or sys.stdout):
        logger.debug(f"Not burying {source}")
        return BuryResult(source, None, SKIPPED)

    if source == record.path.resolve():
        raise InvalidTargetError(f"Cannot bury {source}: it is the graveyard record")
    if not source.is_symlink() and is_within_directory(graveyard.resolve(), source):
        raise InvalidTargetError(f"Cannot bury {source}: it contains the graveyard")

    if is_within_directory(source, graveyard):
        prompt = f"{source} is already in the graveyard.\nPermanently unlink it?"
        if force or confirm(prompt):
            try:
                remove_path(source)
            except OSError as e:
                raise RelocationError(f"Couldn't unlink {source}", source, None, e) from e
            logger.debug(f"Permanently removed {source}")
            return BuryResult(source, None, UNLINKED)
        logger.info(f"Skipping {source}")
        return BuryResult(source, None, SKIPPED)

    dest = join_absolute(graveyard, source)
    if symlink_exists(dest):
        dest = rename_grave(dest)

    try:
        moved = move_target(source, dest, allow_rename, confirm, force)
    except OSError as e:
        _remove_partial_grave(dest)
        raise RelocationError("Failed to bury file", source, dest, e) from e

    if not moved:
        # The user chose to delete instead of copying; nothing to record
        logger.debug(f"Deleted {source} without burying it")
        return BuryResult(source, None, DELETED)

    record.write_log(source, dest)
    logger.debug(f"Buried {source} at {dest}")
    return BuryResult(source, dest, BURIED)


def _remove_partial_grave(dest: Path) -> None:
    if dest.is_dir() and not dest.is_symlink():
        shutil.rmtree(dest, ignore_errors=True)
    else:
        with suppress(OSError):
            os.remove(dest)


def unbury(
    graves: Iterable[Union[str, Path]],
    record: Record,
    graveyard: Union[str, Path],
    cwd: Optional[Union[str, Path]] = None,
    confirm: ConfirmCallback = _always_confirm,
    allow_rename: bool = True,
    force: bool = False,
    seance: bool = False
) -> List[Tuple[Path, Path]]:
    """
    Restore graves to where they came from.

    Graves are taken from ``graves``; with ``seance`` every grave under the
    current directory is added. If that leaves nothing, the most recent
    burial still on disk is restored.

    Returns:
        List of ``(grave, restored_path)`` pairs, in record order. Graves the
        user chose to delete rather than copy back are left out.

    Raises:
        NoGravesError: If there is nothing to restore
        RelocationError: If moving a grave back fails
    """
    cwd_path = Path(cwd or os.getcwd())
    graves_to_exhume = [Path(os.path.abspath(cwd_path / grave)) for grave in graves]

    if seance:
        with record.seance(graveyard_subdir(graveyard, cwd_path)) as reader:
            graves_to_exhume.extend(grave.destination for grave in reader)

    if not graves_to_exhume:
        graves_to_exhume.append(record.get_last_bury())

    # Read everything first so the record isn't locked while files move
    with record.lines_of_graves(graves_to_exhume) as reader:
        entries = {grave.destination: grave for grave in reader}

    restored = []
    exhumed = []
    try:
        for grave in entries.values():
            orig = grave.original
            if symlink_exists(orig):
                orig = rename_grave(orig)
            try:
                moved = move_target(
                    grave.destination, orig, allow_rename, confirm, force,
                    destination_name=str(orig.parent)
                )
            except OSError as e:
                raise RelocationError(
                    f"Unbury failed: couldn't copy files from {grave.destination} to {orig}",
                    grave.destination, orig, e
                ) from e
            exhumed.append(grave.destination)
            if not moved:
                logger.warning(f"Permanently deleted {grave.destination} instead of restoring it")
                continue
            logger.debug(f"Restored {grave.destination} to {orig}")
            restored.append((grave.destination, orig))
    finally:
        if exhumed:
            record.log_exhumed_graves(exhumed)

    return restored


def seance(
    record: Record,
    graveyard: Union[str, Path],
    cwd: Optional[Union[str, Path]] = None
) -> GraveReader:
    """List the graves of everything buried from under ``cwd``."""
    return record.seance(graveyard_subdir(graveyard, cwd))


def decompose(
    graveyard: Union[str, Path],
    confirm: ConfirmCallback = _always_confirm,
    force: bool = False
) -> bool:
    """
    Permanently delete the whole graveyard, record included.

    Returns:
        True if the graveyard was deleted
    """
    graveyard_path = Path(graveyard)
    if not (force or confirm("Really unlink the entire graveyard?")):
        return False
    shutil.rmtree(graveyard_path)
    logger.debug(f"Removed graveyard {graveyard_path}")
    return True
