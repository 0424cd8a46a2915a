"""
Initialization file for the filetoolkit.utils package.

This package provides platform and logging helpers for the filetoolkit library.
"""

from .compat import is_windows, get_user, get_system_temp_dir

from .logger import setup_logger, add_log_file, ColoredFormatter

# Define exported functions
__all__ = [
    # Compatibility functions
    'is_windows', 'get_user', 'get_system_temp_dir',

    # Logger functions
    'setup_logger', 'add_log_file', 'ColoredFormatter'
]
