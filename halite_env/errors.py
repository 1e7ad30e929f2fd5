"""
Exception types for the Halite match engine.

Agent misbehaviour is never raised: it is reported as an ``AgentFault``
value by the arena layer. Only problems that make a match meaningless are
exceptions here.
"""


class HaliteError(Exception):
    """Base class for engine errors."""


class ConfigurationError(HaliteError):
    """
    Raised before a match starts when its setup is invalid.

    Examples: unknown or negative constants, a player count the map cannot
    accommodate, or a channel list that does not match the world's players.
    """


class InvariantViolation(HaliteError):
    """
    Raised when the world reaches a state the rules can never produce.

    This indicates a resolver bug. The match must be aborted because any
    statistics derived from it would be meaningless.
    """

    def __init__(self, message: str, turn: int = -1):
        super().__init__(f"turn {turn}: {message}" if turn >= 0 else message)
        self.turn = turn
