"""
Replay Recorder - Records every resolved turn for replay and scoring.

Captures per frame:
- The full world snapshot after the turn resolved
- The commands that were applied, per player
- Damage, spawn, docking, elimination and fault events

Frame 0 is the initial world. The log is append-only and every record is a
deep copy, so later mutation of the live world never reaches the replay.
A stored replay can be re-simulated frame by frame with ``verify_replay``.
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..commands import parse_commands
from ..constants import DEFAULT_CONSTANTS, GameConstants
from ..errors import ConfigurationError, InvariantViolation
from ..simulation import Simulation
from ..world import World, world_hash
from .statistics import PlayerStatistics, compute_statistics


REPLAY_VERSION = "1.0"


@dataclass(frozen=True)
class TurnRecord:
    """One recorded frame."""
    turn: int
    snapshot: Dict[str, Any]
    commands: Dict[str, List[str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "snapshot": self.snapshot,
            "commands": self.commands,
            "events": self.events,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TurnRecord':
        return cls(
            turn=data["turn"],
            snapshot=copy.deepcopy(data["snapshot"]),
            commands=copy.deepcopy(data.get("commands", {})),
            events=copy.deepcopy(data.get("events", [])),
        )


class ReplayRecorder:
    """
    Append-only log of a match.

    Usage:
        recorder = ReplayRecorder(width=160, height=160, seed=42)
        recorder.record_turn(world.snapshot())             # frame 0
        recorder.record_turn(world.snapshot(), commands, events)
        statistics = recorder.finalize()
        recorder.save("replays")
    """

    def __init__(
        self,
        width: float,
        height: float,
        seed: int,
        constants: Optional[GameConstants] = None,
    ):
        self.width = width
        self.height = height
        self.seed = seed
        self.constants = constants or DEFAULT_CONSTANTS
        self.frames: List[TurnRecord] = []
        self.statistics: List[PlayerStatistics] = []
        self.recorded_at = datetime.now().isoformat()

    def record_turn(
        self,
        snapshot: Mapping[str, Any],
        commands: Optional[Mapping[str, Sequence[str]]] = None,
        events: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> TurnRecord:
        """
        Append one frame.

        Raises:
            InvariantViolation: If the frame's turn does not follow the
                previous frame's turn by exactly one.
        """
        turn = snapshot["turn"]
        expected = self.frames[-1].turn + 1 if self.frames else 0
        if turn != expected:
            raise InvariantViolation(f"recorded frame {turn}, expected {expected}", turn)

        record = TurnRecord(
            turn=turn,
            snapshot=copy.deepcopy(dict(snapshot)),
            commands={str(k): list(v) for k, v in (commands or {}).items()},
            events=copy.deepcopy([dict(e) for e in (events or [])]),
        )
        self.frames.append(record)
        return record

    @property
    def turns_recorded(self) -> int:
        return len(self.frames)

    def finalize(self) -> List[PlayerStatistics]:
        """Compute and store the final statistics."""
        self.statistics = compute_statistics(self.frames)
        return self.statistics

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def player_names(self) -> Dict[str, str]:
        if not self.frames:
            return {}
        return {
            str(p["id"]): p.get("name", "")
            for p in self.frames[-1].snapshot["players"]
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": REPLAY_VERSION,
            "recorded_at": self.recorded_at,
            "seed": self.seed,
            "width": self.width,
            "height": self.height,
            "constants": self.constants.to_dict(),
            "player_names": self.player_names(),
            "num_frames": len(self.frames),
            "frames": [f.to_dict() for f in self.frames],
            "statistics": [s.to_dict() for s in self.statistics],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, directory: str, filename: Optional[str] = None) -> str:
        """Write the replay to ``directory`` and return its path."""
        if filename is None:
            filename = create_replay_filename(self.seed, self.width, self.height)
        path = Path(directory) / filename
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            f.write(self.to_json())

        return str(path)


def create_replay_filename(
    seed: int,
    width: float,
    height: float,
    timestamp: Optional[datetime] = None,
) -> str:
    """Generate a filename for a replay."""
    if timestamp is None:
        timestamp = datetime.now()
    date_str = timestamp.strftime("%Y%m%d_%H%M%S")
    return f"replay_{date_str}_{seed}_{int(width)}_{int(height)}.json"


# =============================================================================
# REPLAY VERIFICATION
# =============================================================================

def load_replay(path: str) -> Dict[str, Any]:
    """Read a saved replay."""
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read replay {path}: {e}") from e


def verify_replay(replay: Mapping[str, Any]) -> List[int]:
    """
    Re-simulate a replay and compare every frame.

    Each frame is rebuilt from the previous frame's snapshot by eliminating
    the players recorded as faulted and resolving the recorded commands.

    Returns:
        Turns whose re-simulated world differs from the recorded one.
    """
    constants = GameConstants.from_dict(replay.get("constants", {}))
    frames = [TurnRecord.from_dict(f) for f in replay["frames"]]

    mismatches: List[int] = []
    for previous, current in zip(frames, frames[1:]):
        world = World.from_snapshot(previous.snapshot)
        for event in current.events:
            if event.get("type") == "fault":
                world.eliminate_player(event["player"], world.turn + 1, event["kind"])

        commands = {
            int(pid): parse_commands(" ".join(encoded))
            for pid, encoded in current.commands.items()
        }
        Simulation(world, constants).resolve_turn(commands)

        if world_hash(world) != world_hash(World.from_snapshot(current.snapshot)):
            mismatches.append(current.turn)
    return mismatches
