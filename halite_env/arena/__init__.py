"""
Arena module for the Halite match engine.

Runs matches between untrusted agents: per-agent channels with deadlines,
the turn coordinator, the replay recorder and match statistics.
"""

from .channel import (
    AgentChannel,
    AgentFault,
    AgentResponse,
    FaultKind,
    InProcessAgentChannel,
    SubprocessAgentChannel,
)
from .coordinator import MatchConfig, MatchResult, MatchState, TurnCoordinator, default_max_turns
from .launch import parse_launch_command
from .protocol import init_message, parse_name, serialize_world
from .recorder import ReplayRecorder, TurnRecord, create_replay_filename, load_replay, verify_replay
from .statistics import PlayerStatistics, compute_statistics, format_quiet, format_summary

__all__ = [
    # Channels
    "AgentChannel",
    "AgentFault",
    "AgentResponse",
    "FaultKind",
    "InProcessAgentChannel",
    "SubprocessAgentChannel",
    "parse_launch_command",
    # Coordinator
    "MatchConfig",
    "MatchResult",
    "MatchState",
    "TurnCoordinator",
    "default_max_turns",
    # Protocol
    "init_message",
    "parse_name",
    "serialize_world",
    # Recorder
    "ReplayRecorder",
    "TurnRecord",
    "create_replay_filename",
    "load_replay",
    "verify_replay",
    # Statistics
    "PlayerStatistics",
    "compute_statistics",
    "format_quiet",
    "format_summary",
]
