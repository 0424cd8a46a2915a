"""
Configuration for the tombstone command.

Settings come from command-line flags first and the environment second:

    TOMBSTONE_GRAVEYARD         Graveyard directory
    XDG_DATA_HOME               Graveyard is $XDG_DATA_HOME/graveyard
    __TOMBSTONE_ALLOW_RENAME    "false" forces copy+delete instead of rename

Without either variable the graveyard is ``<tmp>/graveyard-<user>``.
"""

import os
import logging
from pathlib import Path
from typing import Mapping, Optional, Union

from filetoolkit.utils import get_system_temp_dir, get_user
from tombstonelib import DEFAULT_FILE_LOCK, ArgumentConflictError

logger = logging.getLogger(__name__)

ENV_GRAVEYARD = 'TOMBSTONE_GRAVEYARD'
ENV_XDG_DATA_HOME = 'XDG_DATA_HOME'
ENV_ALLOW_RENAME = '__TOMBSTONE_ALLOW_RENAME'


def get_graveyard(
    graveyard: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> Path:
    """
    Work out where the graveyard lives.

    Args:
        graveyard: Explicit location (the --graveyard flag), wins if given
        environ: Environment to read (os.environ by default)

    Returns:
        Absolute graveyard path; relative settings are taken from the
        current directory
    """
    environ = os.environ if environ is None else environ
    if graveyard:
        path = Path(graveyard)
    elif environ.get(ENV_GRAVEYARD):
        path = Path(environ[ENV_GRAVEYARD])
    elif environ.get(ENV_XDG_DATA_HOME):
        path = Path(environ[ENV_XDG_DATA_HOME]) / 'graveyard'
    else:
        path = get_system_temp_dir() / f"graveyard-{get_user()}"
    return path.absolute()


def allow_rename(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Whether a plain rename may be tried before copying."""
    environ = os.environ if environ is None else environ
    return environ.get(ENV_ALLOW_RENAME, '').strip().lower() != 'false'


class TombstoneConfig:
    """
    Resolved settings for one invocation.

    Attributes:
        graveyard: Graveyard directory
        allow_rename: Try rename before copy+delete
        file_lock: Lock the record with OS advisory locks
        force: Never prompt
    """

    def __init__(
        self,
        graveyard: Union[str, Path],
        allow_rename: bool = True,
        file_lock: bool = DEFAULT_FILE_LOCK,
        force: bool = False
    ):
        self.graveyard = Path(graveyard).absolute()
        self.allow_rename = allow_rename
        self.file_lock = file_lock
        self.force = force

    @classmethod
    def from_env(
        cls,
        graveyard: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
        force: bool = False
    ) -> 'TombstoneConfig':
        """Build the configuration from the environment, with an optional graveyard override."""
        config = cls(
            graveyard=get_graveyard(graveyard, environ),
            allow_rename=allow_rename(environ),
            force=force
        )
        logger.debug(f"Configuration: {config}")
        return config

    @classmethod
    def from_args(cls, args, environ: Optional[Mapping[str, str]] = None) -> 'TombstoneConfig':
        """Build the configuration from parsed arguments and the environment."""
        return cls.from_env(
            getattr(args, 'graveyard', None),
            environ,
            force=getattr(args, 'force', False)
        )

    def __repr__(self):
        return (
            f"TombstoneConfig(graveyard={str(self.graveyard)!r}, allow_rename={self.allow_rename}, "
            f"file_lock={self.file_lock}, force={self.force})"
        )


def validate_args(args) -> None:
    """
    Reject option combinations that make no sense.

    Raises:
        ArgumentConflictError: On a conflict
    """
    if getattr(args, 'command', None) == 'graveyard':
        return

    if args.force and args.inspect:
        raise ArgumentConflictError("-f,--force and -i,--inspect cannot be used together")

    if args.decompose and (args.seance or args.unbury or args.inspect or args.targets):
        raise ArgumentConflictError("-d,--decompose can only be used with --graveyard")
