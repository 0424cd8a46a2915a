"""
Command-line interface and argument parser for the tombstone tool.

This module contains all CLI-related functionality including
argument parsing, help text, and command structure definition.
"""

import argparse

from tombstone import __version__


EPILOG = '''Examples:
  tombstone notes.txt build/        Send notes.txt and build/ to the graveyard
  tombstone -u                      Restore the last buried object
  tombstone -u GRAVE [GRAVE ...]    Restore specific graves
  tombstone -s                      List graves buried from this directory
  tombstone -s -u                   Restore everything buried from this directory
  tombstone -d                      Permanently delete the graveyard
  tombstone graveyard [-s]          Print the graveyard path

A file literally named "graveyard" must be given as ./graveyard.'''


def _create_common_parser():
    """Options shared by the main parser and the graveyard command"""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output')
    common.add_argument('--quiet', '-q', action='store_true',
                        help='Suppress all non-error output')
    common.add_argument('--log', help='Write log to specified file')
    common.add_argument('--no-color', action='store_true',
                        help='Disable colored output')
    return common


def create_parser():
    """Create argument parser with all CLI options"""
    parser = argparse.ArgumentParser(
        prog='tombstone',
        description='A safe alternative to rm: send files to a graveyard and bring them back',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[_create_common_parser()]
    )
    parser.set_defaults(command=None)

    parser.add_argument('--version', '-V', action='version',
                        version=f'tombstone {__version__}')
    parser.add_argument('targets', nargs='*', metavar='FILES',
                        help='Files or directories to remove (graves to restore with --unbury)')
    parser.add_argument('--graveyard',
                        help='Directory where deleted files rest')
    parser.add_argument('--decompose', '-d', action='store_true',
                        help='Permanently delete the graveyard')
    parser.add_argument('--seance', '-s', action='store_true',
                        help='Print files that were deleted in the current directory')
    parser.add_argument('--unbury', '-u', action='store_true',
                        help='Restore the given graves, or the last buried file if none are given')
    parser.add_argument('--inspect', '-i', action='store_true',
                        help='Print some info about each target before burying it')
    parser.add_argument('--force', '-f', action='store_true',
                        help='Never prompt; big files are copied and special files are an error')

    return parser


def create_graveyard_parser():
    """Create the parser for `tombstone graveyard`"""
    parser = argparse.ArgumentParser(
        prog='tombstone graveyard',
        description='Print the graveyard path',
        parents=[_create_common_parser()]
    )
    parser.set_defaults(command='graveyard')
    parser.add_argument('--seance', '-s', action='store_true',
                        help='Print the graveyard subdirectory of the current directory')
    return parser


def parse_args(argv):
    """Parse a command line, routing `graveyard` to its own parser"""
    if argv and argv[0] == 'graveyard':
        return create_graveyard_parser().parse_args(argv[1:])
    return create_parser().parse_args(argv)
