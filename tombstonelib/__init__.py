"""
tombstonelib - Library behind the tombstone graveyard.

This package keeps the record of buried objects and implements the bury,
unbury, seance and decompose operations on top of filetoolkit.
"""

import logging

# Package-level logger; handlers are configured by the application
logger = logging.getLogger(__name__)

from .errors import (
    TombstoneError,
    NotFoundError,
    TargetNotFoundError,
    NoGravesError,
    RecordNotFoundError,
    ArgumentConflictError,
    InvalidTargetError,
    RecordFormatError,
    LegacyRecordError,
    RelocationError
)

from .locking import DEFAULT_FILE_LOCK, ExclusiveLock, NoLock, lock_for

from .record import RECORD, HEADER_LINE, Grave, GraveReader, Record

from .operations import (
    BuryResult,
    BURIED,
    DELETED,
    UNLINKED,
    SKIPPED,
    ensure_graveyard,
    graveyard_subdir,
    inspect_target,
    bury,
    unbury,
    seance,
    decompose
)

__version__ = '0.2.0'

# __all__ defines the public API
__all__ = [
    '__version__',

    # Errors
    'TombstoneError',
    'NotFoundError',
    'TargetNotFoundError',
    'NoGravesError',
    'RecordNotFoundError',
    'ArgumentConflictError',
    'InvalidTargetError',
    'RecordFormatError',
    'LegacyRecordError',
    'RelocationError',

    # Locking
    'DEFAULT_FILE_LOCK',
    'ExclusiveLock',
    'NoLock',
    'lock_for',

    # Record
    'RECORD',
    'HEADER_LINE',
    'Grave',
    'GraveReader',
    'Record',

    # Operations
    'BuryResult',
    'BURIED',
    'DELETED',
    'UNLINKED',
    'SKIPPED',
    'ensure_graveyard',
    'graveyard_subdir',
    'inspect_target',
    'bury',
    'unbury',
    'seance',
    'decompose'
]
