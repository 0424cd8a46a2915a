"""
filetoolkit - Path and relocation primitives for moving files into a graveyard.

This package provides collision-safe path arithmetic and a move operation that
falls back to copy+delete across mount points while keeping permissions,
symlinks and FIFOs intact.
"""

import logging

# Package-level logger; handlers are configured by the application
logger = logging.getLogger(__name__)

from .paths import (
    join_absolute,
    symlink_exists,
    rename_grave,
    canonicalize,
    is_within_directory,
    ancestors
)

from .operations import (
    BIG_FILE_THRESHOLD,
    RelocationError,
    format_size,
    create_dirs_with_permissions,
    move_target,
    move_dir,
    copy_file,
    remove_path
)

__version__ = '0.2.0'

# __all__ defines the public API
__all__ = [
    # Version
    '__version__',

    # Path functions
    'join_absolute',
    'symlink_exists',
    'rename_grave',
    'canonicalize',
    'is_within_directory',
    'ancestors',

    # Operation functions
    'BIG_FILE_THRESHOLD',
    'RelocationError',
    'format_size',
    'create_dirs_with_permissions',
    'move_target',
    'move_dir',
    'copy_file',
    'remove_path'
]
