"""
File relocation operations.

This module moves filesystem objects (regular files, directory trees,
symlinks, FIFOs and other special files) between locations. A plain rename is
tried first; when that is not possible (different mount points, missing parent
directories) the object is copied and the original removed, carrying directory
permission bits across.

Decisions that need a human (copying a very large file, giving up on a special
file) are delegated to a ``confirm`` callable taking a prompt and returning a
bool. Under ``force`` the callable is never invoked.
"""

import os
import stat
import shutil
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .paths import ancestors

# Set up module-level logger
logger = logging.getLogger(__name__)

# Files larger than this need confirmation before being copied
BIG_FILE_THRESHOLD = 500_000_000  # 500 MB

# How prompts name the destination unless told otherwise
DEFAULT_DESTINATION_NAME = 'the graveyard'

ConfirmCallback = Callable[[str], bool]


class RelocationError(OSError):
    """
    An I/O failure while moving an object, with the paths involved.

    The errno of the underlying error is kept so callers can still tell a
    permission problem from a missing file.
    """

    def __init__(
        self,
        message: str,
        source: Optional[Union[str, Path]] = None,
        destination: Optional[Union[str, Path]] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(getattr(cause, 'errno', None), message)
        self.source = source
        self.destination = destination
        self.cause = cause

    def __str__(self):
        if self.cause is not None:
            return f"{self.strerror}: {self.cause}"
        return self.strerror


def _never_confirm(prompt: str) -> bool:
    return False


def format_size(size_bytes: int) -> str:
    """
    Format a size in bytes to a human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KiB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MiB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GiB"


def create_dirs_with_permissions(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Create the parent directories of a destination, copying source permissions.

    The directories above ``source`` and above ``destination`` are paired up
    from the deepest component outwards, and the permission bits of each
    source directory are applied to its partner. Nothing is applied when the
    destination chain is shorter than the source chain, and the filesystem
    root is never used as a template.

    Args:
        source: Object being moved
        destination: Where it will end up

    Raises:
        RelocationError: If a directory can't be created or chmod fails
    """
    source_path = Path(source)
    dest_parent = Path(destination).parent

    try:
        dest_parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RelocationError(
            f"Failed to create directory {dest_parent}", source, destination, e
        ) from e

    src_chain = ancestors(source_path.parent)
    dest_chain = ancestors(dest_parent)
    if len(dest_chain) < len(src_chain):
        return

    offset = len(dest_chain) - len(src_chain)
    for src_dir, dest_dir in zip(src_chain, dest_chain[offset:]):
        if src_dir == src_dir.parent or src_dir == dest_dir:
            continue
        try:
            src_stat = os.stat(src_dir)
            dest_stat = os.stat(dest_dir)
        except OSError:
            continue
        mode = stat.S_IMODE(src_stat.st_mode)
        if not stat.S_ISDIR(src_stat.st_mode) or stat.S_IMODE(dest_stat.st_mode) == mode:
            continue
        try:
            os.chmod(dest_dir, mode)
        except OSError as e:
            raise RelocationError(
                f"Failed to preserve permissions on directory '{dest_dir}'. "
                "The directory may be owned by another user",
                source, destination, e
            ) from e


def move_target(
    source: Union[str, Path],
    destination: Union[str, Path],
    allow_rename: bool = True,
    confirm: ConfirmCallback = _never_confirm,
    force: bool = False,
    destination_name: str = DEFAULT_DESTINATION_NAME
) -> bool:
    """
    Move a target to a destination, copying if necessary.

    Args:
        source: Object to move
        destination: Target path (must not exist)
        allow_rename: Whether to try a plain rename first
        confirm: Callback used for big or special files
        force: Never prompt, take the default branch
        destination_name: How prompts refer to where the target is going

    Returns:
        True if the target was moved, False if it was deleted without being
        copied because the user chose so

    Raises:
        RelocationError: On any I/O failure
    """
    source_path = Path(source)
    dest_path = Path(destination)

    # A rename only works within one mount point and needs the parent to exist
    if allow_rename:
        try:
            os.rename(source_path, dest_path)
            logger.debug(f"Renamed {source_path} to {dest_path}")
            return True
        except OSError as e:
            logger.debug(f"Rename of {source_path} failed ({e}), copying instead")

    create_dirs_with_permissions(source_path, dest_path)

    try:
        is_dir = stat.S_ISDIR(os.lstat(source_path).st_mode)
    except OSError as e:
        raise RelocationError(f"Failed to read metadata of {source_path}", source_path, dest_path, e) from e

    if is_dir:
        return move_dir(source_path, dest_path, confirm, force, destination_name)

    try:
        moved = copy_file(source_path, dest_path, confirm, force, destination_name)
    except OSError as e:
        raise RelocationError(
            f"Failed to copy file from {source_path} to {dest_path}", source_path, dest_path, e
        ) from e

    try:
        os.remove(source_path)
    except OSError as e:
        raise RelocationError(f"Failed to remove file: {source_path}", source_path, dest_path, e) from e

    return moved


def _raise_walk_error(error: OSError) -> None:
    raise error


def move_dir(
    source: Union[str, Path],
    destination: Union[str, Path],
    confirm: ConfirmCallback = _never_confirm,
    force: bool = False,
    destination_name: str = DEFAULT_DESTINATION_NAME
) -> bool:
    """
    Move a directory tree by copying every entry and removing the original.

    Directory permissions are applied once the whole tree has been copied, so
    read-only source directories can still be filled in.

    Returns:
        Always True; creating the tree is what marks the move as done
    """
    source_path = Path(source)
    dest_path = Path(destination)
    dir_modes = []

    try:
        walker = os.walk(source_path, onerror=_raise_walk_error)
        for root, dirnames, filenames in walker:
            root_path = Path(root)
            dest_dir = dest_path / root_path.relative_to(source_path)

            try:
                dest_dir.mkdir(parents=True, exist_ok=True)
                dir_modes.append((dest_dir, stat.S_IMODE(os.stat(root_path).st_mode)))
            except OSError as e:
                raise RelocationError(
                    f"Failed to create dir: {root_path} in {dest_dir}", root_path, dest_dir, e
                ) from e

            # os.walk reports symlinks to directories as dirnames but never enters them
            entries = [name for name in dirnames if (root_path / name).is_symlink()] + filenames
            for name in entries:
                entry = root_path / name
                try:
                    copy_file(entry, dest_dir / name, confirm, force, destination_name)
                except OSError as e:
                    raise RelocationError(
                        f"Failed to copy file from {entry} to {dest_dir / name}", entry, dest_dir / name, e
                    ) from e
    except RelocationError:
        raise
    except OSError as e:
        raise RelocationError(f"Failed to walk directory {source_path}", source_path, dest_path, e) from e

    for dest_dir, mode in reversed(dir_modes):
        try:
            os.chmod(dest_dir, mode)
        except OSError as e:
            raise RelocationError(f"Failed to set permissions on: {dest_dir}", source_path, dest_dir, e) from e

    try:
        shutil.rmtree(source_path)
    except OSError as e:
        raise RelocationError(f"Failed to remove dir: {source_path}", source_path, dest_path, e) from e

    logger.debug(f"Moved directory {source_path} to {dest_path}")
    return True


def copy_file(
    source: Union[str, Path],
    destination: Union[str, Path],
    confirm: ConfirmCallback = _never_confirm,
    force: bool = False,
    destination_name: str = DEFAULT_DESTINATION_NAME
) -> bool:
    """
    Copy a single non-directory object, recreating links and pipes.

    Args:
        source: Object to copy
        destination: Path of the copy
        confirm: Callback used for big or special files
        force: Never prompt; big files are copied, special file errors raised
        destination_name: How the big file prompt refers to the destination

    Returns:
        True if a copy was made, False if the user chose to delete the
        original without keeping a copy

    Raises:
        OSError: If copying fails (and, for special files, the user did not
            choose to skip)
    """
    source_path = Path(source)
    dest_path = Path(destination)
    source_stat = os.lstat(source_path)
    mode = source_stat.st_mode

    if source_stat.st_size > BIG_FILE_THRESHOLD and not force:
        prompt = (
            f"About to copy a big file ({source_path} is {format_size(source_stat.st_size)})\n"
            f"Copy it to {destination_name} instead of deleting it permanently?"
        )
        if not confirm(prompt):
            logger.info(f"Not copying {source_path}, it will be deleted")
            return False

    if stat.S_ISREG(mode):
        shutil.copy2(source_path, dest_path)
        return True

    if stat.S_ISFIFO(mode):
        os.mkfifo(dest_path, stat.S_IMODE(mode) & 0o777)
        os.chmod(dest_path, stat.S_IMODE(mode) & 0o777)
        return True

    if stat.S_ISLNK(mode):
        os.symlink(os.readlink(source_path), dest_path)
        return True

    # Sockets, devices: a plain copy is unlikely to work but worth a try
    try:
        shutil.copy(source_path, dest_path)
        return True
    except OSError:
        prompt = f"Non-regular file or directory: {source_path}\nPermanently delete the file?"
        if force or confirm(prompt):
            raise
        logger.info(f"Skipping copy of special file {source_path}")
        return False


def remove_path(path: Union[str, Path]) -> None:
    """
    Permanently remove a file, link, special file or directory tree.

    Args:
        path: Path to remove

    Raises:
        OSError: If removal fails
    """
    path_obj = Path(path)
    if path_obj.is_dir() and not path_obj.is_symlink():
        shutil.rmtree(path_obj)
    else:
        os.remove(path_obj)
    logger.debug(f"Removed {path_obj}")
