"""
Exceptions raised by tombstonelib.

I/O failures while moving objects surface as ``filetoolkit.RelocationError``
(an ``OSError``); everything tombstone-specific derives from
``TombstoneError``.
"""

from filetoolkit import RelocationError


class TombstoneError(Exception):
    """Base class for graveyard errors."""


class NotFoundError(TombstoneError):
    """Something the operation needs does not exist."""


class TargetNotFoundError(NotFoundError):
    """The object asked to be buried does not exist."""


class NoGravesError(NotFoundError):
    """There is nothing in the graveyard to restore."""


class RecordNotFoundError(NotFoundError):
    """The record file is missing."""


class ArgumentConflictError(TombstoneError):
    """Options were given that can't be used together."""


class InvalidTargetError(TombstoneError):
    """The target can never be buried (the record, or an ancestor of the graveyard)."""


class RecordFormatError(TombstoneError):
    """The record file holds data that can't be parsed."""


class LegacyRecordError(RecordFormatError):
    """The record file was written by an older, incompatible tool."""


__all__ = [
    'TombstoneError',
    'NotFoundError',
    'TargetNotFoundError',
    'NoGravesError',
    'RecordNotFoundError',
    'ArgumentConflictError',
    'InvalidTargetError',
    'RecordFormatError',
    'LegacyRecordError',
    'RelocationError'
]
