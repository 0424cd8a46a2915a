"""
Compatibility utilities for cross-platform operations.

This module smooths over the platform differences the graveyard cares about:
which OS we are on, who the current user is, and where temporary files live.
"""

import os
import getpass
import platform
import logging
import tempfile
from pathlib import Path

# Set up module-level logger
logger = logging.getLogger(__name__)

# Detect platform
PLATFORM = platform.system().lower()


def is_windows() -> bool:
    """
    Check if the current platform is Windows.

    Returns:
        bool: True if Windows, False otherwise
    """
    return PLATFORM == 'windows'


def get_user() -> str:
    """
    Get the name of the current user.

    Falls back to the USER / USERNAME environment variables, then to
    ``unknown`` when the account database can't be queried.
    """
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        logger.debug("Cannot look up current user, falling back to environment")
        return os.environ.get('USER') or os.environ.get('USERNAME') or 'unknown'


def get_system_temp_dir() -> Path:
    """
    Get the system temporary directory in a cross-platform way.

    Returns:
        Path to the system temporary directory
    """
    return Path(tempfile.gettempdir())
