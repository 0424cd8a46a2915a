"""
Utility functions for the tombstone command-line tool.

This module provides colour handling and interactive confirmation for the
tombstone CLI.
"""

import logging

from colorama import Fore, Style

# Set up module-level logger
logger = logging.getLogger(__name__)

COLORS = {
    'RED': Fore.RED,
    'GREEN': Fore.GREEN,
    'YELLOW': Fore.YELLOW,
    'CYAN': Fore.CYAN,
    'BOLD': Style.BRIGHT,
}

# Flag to indicate if color is enabled
color_enabled = True


def disable_color():
    """Disable colored output."""
    global color_enabled
    color_enabled = False


def enable_color():
    """Enable colored output."""
    global color_enabled
    color_enabled = True


def colorize(text: str, color: str) -> str:
    """
    Add color to text for terminal output.

    Args:
        text: The text to colorize
        color: The color to apply (must be a key in COLORS dict)

    Returns:
        Colorized string if color is enabled, otherwise the original string
    """
    if not color_enabled or color not in COLORS:
        return text

    return f"{COLORS[color]}{text}{Style.RESET_ALL}"


def confirm_operation(prompt: str, default: bool = False) -> bool:
    """
    Ask the user to confirm an operation.

    Multi-line prompts print every line but the last as context and ask the
    last line as the question.

    Args:
        prompt: The prompt to display
        default: Default choice if user presses Enter

    Returns:
        True if user confirmed, False otherwise
    """
    yes_choices = ['y', 'yes']
    no_choices = ['n', 'no']

    *context, question = prompt.split('\n')
    for line in context:
        print(line)

    if default:
        yes_choices.append('')
        question = f"{colorize(question, 'YELLOW')} [Y/n] "
    else:
        no_choices.append('')
        question = f"{colorize(question, 'YELLOW')} [y/N] "

    while True:
        try:
            response = input(question).strip().lower()
        except (KeyboardInterrupt, EOFError):
            print()
            return False
        if response in yes_choices:
            return True
        elif response in no_choices:
            return False
        print("Please answer with 'y' or 'n'.")
