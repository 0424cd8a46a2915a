"""
Lock strategies for the record file.

A ``Record`` is handed one of these objects and wraps every read and write of
the record file in ``held()``. ``ExclusiveLock`` takes a blocking OS-level
advisory lock (``flock``) that is released when the handle is unlocked or
closed; ``NoLock`` does nothing and is the default where advisory locks are
unreliable. Without a lock, concurrent writers can interleave rows.
"""

import logging
from contextlib import contextmanager
from typing import IO

from filetoolkit.utils import is_windows

if not is_windows():
    import fcntl

# Set up module-level logger
logger = logging.getLogger(__name__)

# Windows gets no advisory locking by default
DEFAULT_FILE_LOCK = not is_windows()


class NoLock:
    """Lock strategy that never locks."""

    def acquire(self, fileobj: IO) -> None:
        pass

    def release(self, fileobj: IO) -> None:
        pass

    @contextmanager
    def held(self, fileobj: IO):
        """Hold the lock on ``fileobj`` for the duration of the block."""
        self.acquire(fileobj)
        try:
            yield fileobj
        finally:
            fileobj.flush()
            self.release(fileobj)

    def __repr__(self):
        return f"{type(self).__name__}()"


class ExclusiveLock(NoLock):
    """Blocking exclusive ``flock`` on the open file."""

    def acquire(self, fileobj: IO) -> None:
        fcntl.flock(fileobj.fileno(), fcntl.LOCK_EX)

    def release(self, fileobj: IO) -> None:
        fcntl.flock(fileobj.fileno(), fcntl.LOCK_UN)


def lock_for(file_lock: bool = DEFAULT_FILE_LOCK) -> NoLock:
    """
    Pick a lock strategy from a flag.

    Args:
        file_lock: Whether to use OS advisory locks

    Returns:
        ``ExclusiveLock`` or ``NoLock``
    """
    if file_lock and is_windows():
        logger.warning("Advisory file locks are not supported on Windows, record access is unlocked")
        return NoLock()
    return ExclusiveLock() if file_lock else NoLock()
