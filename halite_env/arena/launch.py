"""Turning bot launch strings into argument vectors."""

import shlex
from typing import List

from ..errors import ConfigurationError


def parse_launch_command(command: str) -> List[str]:
    """
    Split a launch string like ``"python3 MyBot.py --fast"`` into argv.

    Raises:
        ConfigurationError: If the string is empty or unbalanced.
    """
    try:
        argv = shlex.split(command)
    except ValueError as e:
        raise ConfigurationError(f"Invalid bot launch command {command!r}: {e}") from e
    if not argv:
        raise ConfigurationError("Empty bot launch command")
    return argv
