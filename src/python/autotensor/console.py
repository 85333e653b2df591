"""Colored reporting to the console."""

from termcolor import colored


def report(message: str, *, verbose: bool, color: str = "white") -> None:
    """Print a colored message when verbosity is enabled.

    Args:
        message: text to show.
        verbose: whether the caller wants output at all.
        color: termcolor name used for the message.

    """
    if verbose:
        print(colored(message, color))
