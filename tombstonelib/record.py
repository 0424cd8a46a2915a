"""
The graveyard record: an append-only log of buried objects.

The record is a tab-separated text file named ``.record`` at the root of the
graveyard. Its first line is always the header ``Time<TAB>Original<TAB>Destination``
and every following line is one burial, oldest first::

    Time	Original	Destination
    2024-12-21T16:47:21.922660-05:00	/home/u/notes.txt	/graveyard/home/u/notes.txt

Rows are only ever appended or removed; removal rewrites the whole file. All
access goes through the ``Record``'s lock strategy, and readers that iterate
lazily hold the handle (and the lock) until they are exhausted or closed.
"""

import os
import re
import logging
from contextlib import ExitStack, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, NamedTuple, Optional, Set, Tuple, Union

from filetoolkit import symlink_exists

from .errors import (
    LegacyRecordError,
    NoGravesError,
    RecordFormatError,
    RecordNotFoundError
)
from .locking import DEFAULT_FILE_LOCK, NoLock, lock_for

# Set up module-level logger
logger = logging.getLogger(__name__)

# Name of the record file inside the graveyard
RECORD = '.record'

HEADER = ('Time', 'Original', 'Destination')
HEADER_LINE = '\t'.join(HEADER)

# Paths that aren't valid UTF-8 round-trip through surrogate escapes
ENCODING = 'utf-8'
ERRORS = 'surrogateescape'

# Timestamps of the old tool look like "Sun Dec  1 02:15:56 2024"
_LEGACY_TIME_CHARS = re.compile(r'[A-Za-z0-9:\s]+')

DISPLAY_TIME_FORMAT = '%Y-%m-%dT%H:%M:%S'


def now_timestamp() -> str:
    """Current local time as an RFC3339 timestamp with offset."""
    return datetime.now().astimezone().isoformat()


class Grave(NamedTuple):
    """One row of the record."""

    time: str
    original: Path
    destination: Path

    @classmethod
    def from_line(cls, line: str) -> 'Grave':
        """
        Parse a record row.

        Raises:
            RecordFormatError: If the row has fewer than three columns
        """
        tokens = line.rstrip('\r\n').split('\t')
        if len(tokens) < 3:
            raise RecordFormatError(f"Bad format in record line: {line!r}")
        return cls(tokens[0], Path(tokens[1]), Path(tokens[2]))

    def to_line(self) -> str:
        return f"{self.time}\t{self.original}\t{self.destination}"

    def parse_timestamp(self) -> datetime:
        """
        Parse the burial time into an aware datetime in the local zone.

        Raises:
            LegacyRecordError: If the time was written by the old tool
            RecordFormatError: If the time can't be parsed otherwise
        """
        try:
            parsed = datetime.fromisoformat(self.time)
        except ValueError:
            parsed = None

        if parsed is not None and parsed.tzinfo is not None:
            return parsed.astimezone()

        is_legacy = (
            len(self.time.split()) == 5
            and _LEGACY_TIME_CHARS.fullmatch(self.time) is not None
        )
        if is_legacy:
            raise LegacyRecordError(
                f"Found timestamp '{self.time}' from old rip format. "
                f"You will need to delete the `{RECORD}` file and start over. "
                "You can see the path with `tombstone graveyard`."
            )
        raise RecordFormatError(f"Failed to parse time '{self.time}' as RFC3339 format")

    def format_time_for_display(self) -> str:
        """Burial time in local time, truncated to seconds."""
        return self.parse_timestamp().strftime(DISPLAY_TIME_FORMAT)


def is_under(path: Union[str, Path], prefix: Union[str, Path]) -> bool:
    """Component-wise prefix check: ``/a/bc`` is not under ``/a/b``."""
    path_parts = Path(path).parts
    prefix_parts = Path(prefix).parts
    return path_parts[:len(prefix_parts)] == prefix_parts


class GraveReader:
    """
    Lazy iterator over the graves of a record.

    The reader opens the record, takes the lock and validates the header when
    it is created, so a foreign file fails before anything is yielded. The
    handle and the lock stay held until the rows run out, ``close()`` is
    called, or the ``with`` block the reader is used in ends.
    """

    def __init__(self, record: 'Record', predicate: Optional[Callable[[Grave], bool]] = None):
        self._predicate = predicate
        self._fh = None
        self._stack = ExitStack()
        try:
            self._fh = self._stack.enter_context(record._locked('r'))
            record._check_header(self._fh)
        except BaseException:
            self._stack.close()
            raise

    def __iter__(self) -> 'GraveReader':
        return self

    def __next__(self) -> Grave:
        if self._fh is None:
            raise StopIteration
        try:
            for line in self._fh:
                if not line.strip():
                    continue
                grave = Grave.from_line(line)
                if self._predicate is None or self._predicate(grave):
                    return grave
        except BaseException:
            self.close()
            raise
        self.close()
        raise StopIteration

    def close(self) -> None:
        if self._fh is not None:
            self._fh = None
            self._stack.close()

    def __enter__(self) -> 'GraveReader':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __del__(self):
        self.close()


class Record:
    """
    Handle on the record file of a graveyard.

    Args:
        graveyard: Graveyard directory (must exist)
        lock: Lock strategy, or a bool choosing between ``ExclusiveLock`` and
            ``NoLock``. Defaults to ``DEFAULT_FILE_LOCK``.
    """

    def __init__(self, graveyard: Union[str, Path], lock: Union[NoLock, bool, None] = None):
        self.graveyard = Path(graveyard).absolute()
        self.path = self.graveyard / RECORD
        if lock is None:
            lock = DEFAULT_FILE_LOCK
        if isinstance(lock, bool):
            lock = lock_for(lock)
        self.lock = lock

        if not self.path.exists():
            self._create()

    def __repr__(self):
        return f"Record({str(self.graveyard)!r}, lock={self.lock!r})"

    def _create(self) -> None:
        # Appending means a concurrent creator can't wipe rows already written
        with open(self.path, 'a', encoding=ENCODING, errors=ERRORS) as fh, self.lock.held(fh):
            if os.fstat(fh.fileno()).st_size == 0:
                fh.write(HEADER_LINE + '\n')
                logger.debug(f"Created record at {self.path}")

    @contextmanager
    def _locked(self, mode: str = 'r'):
        try:
            fh = open(self.path, mode, encoding=ENCODING, errors=ERRORS)
        except FileNotFoundError as e:
            raise RecordNotFoundError(f"Failed to read record at {self.path}") from e
        with fh, self.lock.held(fh):
            yield fh

    def _check_header(self, fh) -> None:
        header = fh.readline().rstrip('\r\n')
        if header != HEADER_LINE:
            raise RecordFormatError(
                f"Invalid record file header at {self.path}:\n"
                f"  Expected: '{HEADER_LINE}'\n"
                f"  Got:      '{header}'"
            )

    def _read_rows(self, fh) -> List[Tuple[str, Grave]]:
        rows = []
        for line in fh:
            line = line.rstrip('\r\n')
            if line.strip():
                rows.append((line, Grave.from_line(line)))
        return rows

    def _rewrite(self, fh, rows: List[Tuple[str, Grave]], graves: Set[Path]) -> int:
        kept = [line for line, grave in rows if grave.destination not in graves]
        fh.seek(0)
        fh.truncate()
        fh.write(HEADER_LINE + '\n')
        for line in kept:
            fh.write(line + '\n')
        removed = len(rows) - len(kept)
        logger.debug(f"Removed {removed} row(s) from {self.path}")
        return removed

    def open(self) -> GraveReader:
        """Iterate over every grave in the record, oldest first."""
        return GraveReader(self)

    def write_log(self, original: Union[str, Path], destination: Union[str, Path]) -> None:
        """
        Append one burial to the record.

        The header is written first if the file is missing or empty. Each
        field goes out as its own unbuffered write, so only the lock keeps
        rows from concurrent writers apart. All fields are encoded before
        anything is written.

        Raises:
            OSError: If the record can't be written
        """
        fields = [
            field.encode(ENCODING, ERRORS)
            for field in (now_timestamp(), str(original), str(destination))
        ]
        try:
            with open(self.path, 'ab', buffering=0) as fh, self.lock.held(fh):
                if os.fstat(fh.fileno()).st_size == 0:
                    fh.write((HEADER_LINE + '\n').encode(ENCODING))
                for index, field in enumerate(fields):
                    fh.write(field)
                    fh.write(b'\n' if index == len(fields) - 1 else b'\t')
        except OSError as e:
            raise OSError(e.errno, f"Failed to write record at {self.path}: {e.strerror}") from e
        logger.debug(f"Recorded {original} -> {destination}")

    def seance(self, gravepath: Union[str, Path]) -> GraveReader:
        """
        Iterate over graves whose destination is under ``gravepath``.

        Raises:
            RecordFormatError: Immediately, if the header is wrong
        """
        prefix = Path(gravepath)
        return GraveReader(self, lambda grave: is_under(grave.destination, prefix))

    def lines_of_graves(self, graves: Iterable[Union[str, Path]]) -> GraveReader:
        """Iterate over the rows whose destination is one of ``graves``."""
        wanted = {Path(grave) for grave in graves}
        return GraveReader(self, lambda grave: grave.destination in wanted)

    def get_last_bury(self) -> Path:
        """
        Return the graveyard path of the most recent burial still on disk.

        Rows newer than it whose destination has disappeared are removed from
        the record as a side effect; if nothing is left on disk every stale
        row is removed before ``NoGravesError`` is raised.
        """
        with self._locked('r+') as fh:
            self._check_header(fh)
            rows = self._read_rows(fh)

            stale = set()
            last = None
            for _, grave in reversed(rows):
                if symlink_exists(grave.destination):
                    last = grave.destination
                    break
                stale.add(grave.destination)

            if stale:
                logger.debug(f"Pruning {len(stale)} stale grave(s) from {self.path}")
                self._rewrite(fh, rows, stale)

        if last is None:
            raise NoGravesError("No files in graveyard")
        return last

    def delete_lines(self, graves: Iterable[Union[str, Path]]) -> int:
        """
        Remove the rows of the given graves, keeping every other row in order.

        Returns:
            Number of rows removed
        """
        targets = {Path(grave) for grave in graves}
        with self._locked('r+') as fh:
            self._check_header(fh)
            rows = self._read_rows(fh)
            return self._rewrite(fh, rows, targets)

    def log_exhumed_graves(self, graves: Iterable[Union[str, Path]]) -> int:
        """Remove the rows of graves that were just restored."""
        try:
            return self.delete_lines(graves)
        except OSError as e:
            raise OSError(e.errno, f"Failed to remove unburied files from record: {e}") from e
