"""
Agent commands and their text encoding.

Each command targets one ship for one turn:

    t <ship_id> <magnitude> <angle_degrees>    thrust
    d <ship_id> <planet_id>                    dock
    u <ship_id>                                undock
    n <ship_id>                                no-op

A response line holds any number of commands separated by whitespace.
Parsing is total: malformed tokens are skipped and never raise, so one bad
command cannot void the rest of an agent's turn.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Union


def _format_real(value: float) -> str:
    # Short form when it reads back exactly, full precision otherwise
    short = f"{value:g}"
    return short if float(short) == value else repr(value)


# Arguments following each command kind
_ARITY = {
    "t": 3,
    "d": 2,
    "u": 1,
    "n": 1,
}


@dataclass(frozen=True)
class ThrustCommand:
    """Accelerate by ``magnitude`` toward ``angle`` degrees."""
    ship_id: int
    magnitude: float
    angle: float
    kind = "t"

    def encode(self) -> str:
        return f"t {self.ship_id} {_format_real(self.magnitude)} {_format_real(self.angle)}"


@dataclass(frozen=True)
class DockCommand:
    """Begin docking to a planet."""
    ship_id: int
    planet_id: int
    kind = "d"

    def encode(self) -> str:
        return f"d {self.ship_id} {self.planet_id}"


@dataclass(frozen=True)
class UndockCommand:
    """Begin undocking from the current planet."""
    ship_id: int
    kind = "u"

    def encode(self) -> str:
        return f"u {self.ship_id}"


@dataclass(frozen=True)
class NoOpCommand:
    """Explicitly do nothing. ``ship_id`` is -1 when no ship could be read."""
    ship_id: int = -1
    kind = "n"

    def encode(self) -> str:
        return f"n {self.ship_id}"


Command = Union[ThrustCommand, DockCommand, UndockCommand, NoOpCommand]


# =============================================================================
# PARSING
# =============================================================================

def _parse_int(token: str) -> Optional[int]:
    try:
        value = int(token)
    except ValueError:
        return None
    return value if value >= 0 else None


def _parse_real(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_command(tokens: Sequence[str]) -> Command:
    """
    Parse one command from its tokens.

    Always returns a valid command: anything that cannot be read becomes a
    ``NoOpCommand``.

    Args:
        tokens: The kind token followed by its arguments

    Returns:
        The parsed command
    """
    if not tokens:
        return NoOpCommand()

    kind = tokens[0]
    arity = _ARITY.get(kind)
    if arity is None or len(tokens) != arity + 1:
        return NoOpCommand()

    ship_id = _parse_int(tokens[1])
    if ship_id is None:
        return NoOpCommand()

    if kind == "t":
        magnitude = _parse_real(tokens[2])
        angle = _parse_real(tokens[3])
        if magnitude is None or angle is None:
            return NoOpCommand(ship_id)
        return ThrustCommand(ship_id, magnitude, angle)
    if kind == "d":
        planet_id = _parse_int(tokens[2])
        if planet_id is None:
            return NoOpCommand(ship_id)
        return DockCommand(ship_id, planet_id)
    if kind == "u":
        return UndockCommand(ship_id)
    return NoOpCommand(ship_id)


def parse_commands(line: str) -> list[Command]:
    """
    Parse a full response line.

    Unknown tokens are skipped one at a time. When a known kind is followed
    by unreadable arguments only the kind token is dropped, so parsing
    resynchronizes on the next token.

    Returns:
        Commands in the order they appeared, no-ops included.
    """
    tokens = line.split()
    commands: list[Command] = []
    i = 0
    while i < len(tokens):
        kind = tokens[i]
        arity = _ARITY.get(kind)
        if arity is None:
            i += 1
            continue

        chunk = tokens[i:i + arity + 1]
        command = parse_command(chunk)
        if isinstance(command, NoOpCommand) and (
            kind != "n" or command.ship_id < 0
        ):
            # Arguments did not fit this kind
            i += 1
            continue

        commands.append(command)
        i += arity + 1
    return commands


def encode_commands(commands: Sequence[Command]) -> str:
    """Inverse of ``parse_commands`` for well-formed commands."""
    return " ".join(c.encode() for c in commands)
