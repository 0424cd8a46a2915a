"""
Path handling utilities for graveyard relocation.

This module provides the pure path arithmetic used to mirror an absolute path
inside a graveyard directory, plus the small filesystem checks needed to pick a
non-colliding destination.
"""

import os
import logging
from pathlib import Path
from typing import Union

# Set up module-level logger
logger = logging.getLogger(__name__)

# Separator placed between a colliding name and its counter
GRAVE_SUFFIX_SEPARATOR = '~'


def join_absolute(root: Union[str, Path], path: Union[str, Path]) -> Path:
    """
    Join an absolute path onto a root directory.

    The anchor of ``path`` (the leading separator, and the drive on Windows)
    is dropped before joining, so ``join_absolute('/g', '/home/u/f')`` gives
    ``/g/home/u/f``. Relative paths are joined unchanged. No filesystem
    access is performed.

    Args:
        root: Directory to join onto
        path: Path to mirror under ``root``

    Returns:
        The joined path
    """
    path_obj = Path(path)
    parts = path_obj.parts
    if path_obj.anchor:
        parts = parts[1:]
        drive = path_obj.drive.rstrip(':\\/')
        # Keep the drive letter as a directory so C:\x and D:\x don't collide
        if drive:
            parts = (drive,) + parts
    return Path(root).joinpath(*parts)


def symlink_exists(path: Union[str, Path]) -> bool:
    """
    Check if anything exists at a path, without following a final symlink.

    Dangling symlinks count as existing.
    """
    return os.path.lexists(path)


def rename_grave(path: Union[str, Path]) -> Path:
    """
    Find a free name for a grave by appending ``~N`` to the last component.

    N is the lowest integer starting at 1 for which nothing exists.

    Args:
        path: The colliding path

    Returns:
        First non-existing ``path~N``
    """
    path_obj = Path(path)
    counter = 1
    while True:
        candidate = path_obj.with_name(f"{path_obj.name}{GRAVE_SUFFIX_SEPARATOR}{counter}")
        if not symlink_exists(candidate):
            logger.debug(f"Resolved name collision for {path_obj} as {candidate}")
            return candidate
        counter += 1


def canonicalize(path: Union[str, Path], cwd: Union[str, Path]) -> Path:
    """
    Make a target path absolute the way it will be recorded in the graveyard.

    Symlinks are not resolved at the final component, so burying a link
    buries the link itself rather than what it points to. Everything else is
    fully resolved.

    Args:
        path: Target as given by the user
        cwd: Directory relative paths are taken from

    Returns:
        Absolute path of the target
    """
    joined = Path(cwd) / Path(path)
    if joined.is_symlink():
        return Path(os.path.abspath(joined))
    return joined.resolve()


def is_within_directory(path: Union[str, Path], directory: Union[str, Path]) -> bool:
    """
    Check if a path is within a directory.

    Args:
        path: Path to check
        directory: Directory to check against

    Returns:
        True if path is within directory (or is the directory), False otherwise
    """
    path_obj = Path(path)
    directory_obj = Path(directory).resolve()

    try:
        path_obj.relative_to(directory_obj)
        return True
    except ValueError:
        return False


def ancestors(path: Union[str, Path]) -> list:
    """
    List a path and all of its parents, root first.

    ``ancestors('/a/b')`` is ``[Path('/'), Path('/a'), Path('/a/b')]``.
    """
    path_obj = Path(path)
    chain = [path_obj] + list(path_obj.parents)
    chain.reverse()
    return chain
