"""
tombstone - A safe alternative to rm.

This package provides the tombstone command-line tool, which sends files to a
graveyard directory instead of unlinking them and can bring them back later.
"""

import logging

# Version information
__version__ = "0.2.0"

# Set up package-level logger
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Handlers are configured by tombstone.py's setup_logging

# Import core functionality
from .tombstone import main, run

__all__ = ['main', 'run']
