"""
Turn Coordinator - Drives a match between agent channels.

Handles agent start-up, the per-turn exchange, turn resolution and the end
of the match.

Flow:
1. INIT: start every agent, send the initial block, read names
2. COLLECTING: send each living agent the world, gather replies concurrently
3. RESOLVING: eliminate faulted agents, resolve the turn, record the frame
4. CHECKING: stop at the turn limit or when too few players remain
5. FINISHED: score the replay, save it, close every channel
"""

import asyncio
import math
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from dotenv import load_dotenv

from ..constants import DEFAULT_CONSTANTS, GameConstants
from ..errors import ConfigurationError, InvariantViolation
from ..simulation import Simulation
from ..world import World
from .channel import AgentChannel, AgentFault
from .protocol import init_message, parse_name, serialize_world
from .recorder import ReplayRecorder
from .statistics import PlayerStatistics, winner


def default_max_turns(width: float, height: float) -> int:
    """Turn limit used when none is configured."""
    return 100 + int(math.sqrt(width * height))


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _env_number(name: str, default, cast):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a {cast.__name__}, got {value!r}") from e


@dataclass
class MatchConfig:
    """Configuration for one match."""
    # Output
    verbose: bool = True

    # Deadlines (seconds). ignore_timeout waits forever, for debugging bots.
    ignore_timeout: bool = False
    turn_timeout_s: float = 2.0
    init_timeout_s: float = 30.0

    # None means 100 + sqrt(width * height)
    max_turns: Optional[int] = None

    # Recording
    record_replay: bool = True
    replay_dir: str = "replays"

    # Map seed, echoed to agents in the initial block
    seed: int = 0

    def __post_init__(self):
        if self.turn_timeout_s <= 0 or self.init_timeout_s <= 0:
            raise ConfigurationError("Timeouts must be positive")
        if self.max_turns is not None and self.max_turns < 1:
            raise ConfigurationError(f"max_turns must be at least 1, got {self.max_turns}")

    @property
    def turn_deadline(self) -> Optional[float]:
        return None if self.ignore_timeout else self.turn_timeout_s

    @property
    def init_deadline(self) -> Optional[float]:
        return None if self.ignore_timeout else self.init_timeout_s

    @classmethod
    def from_env(cls, **overrides) -> 'MatchConfig':
        """
        Build a config from HALITE_* environment variables (and a .env file).

        Recognized: HALITE_VERBOSE, HALITE_IGNORE_TIMEOUT, HALITE_TURN_TIMEOUT,
        HALITE_INIT_TIMEOUT, HALITE_MAX_TURNS, HALITE_RECORD_REPLAY,
        HALITE_REPLAY_DIR, HALITE_SEED. Keyword overrides win.
        """
        load_dotenv()
        values = {
            "verbose": _env_bool("HALITE_VERBOSE", cls.verbose),
            "ignore_timeout": _env_bool("HALITE_IGNORE_TIMEOUT", cls.ignore_timeout),
            "turn_timeout_s": _env_number("HALITE_TURN_TIMEOUT", cls.turn_timeout_s, float),
            "init_timeout_s": _env_number("HALITE_INIT_TIMEOUT", cls.init_timeout_s, float),
            "max_turns": _env_number("HALITE_MAX_TURNS", cls.max_turns, int),
            "record_replay": _env_bool("HALITE_RECORD_REPLAY", cls.record_replay),
            "replay_dir": os.getenv("HALITE_REPLAY_DIR") or cls.replay_dir,
            "seed": _env_number("HALITE_SEED", cls.seed, int),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class MatchState(str, Enum):
    """Coordinator state machine."""
    INIT = "init"
    RUNNING = "running"
    COLLECTING = "collecting"
    RESOLVING = "resolving"
    CHECKING = "checking"
    FINISHED = "finished"


@dataclass
class MatchResult:
    """Result of a finished match."""
    statistics: List[PlayerStatistics]
    replay: ReplayRecorder
    winner: Optional[int]
    turns_played: int
    names: Dict[int, str] = field(default_factory=dict)
    faults: List[AgentFault] = field(default_factory=list)
    replay_file: Optional[str] = None


class TurnCoordinator:
    """
    Runs one match to completion.

    Usage:
        coordinator = TurnCoordinator(world, channels, constants, config)
        result = coordinator.run()

    Every channel answers for exactly one player of the world. A fault
    eliminates only its own player; the match continues for everyone else.
    """

    def __init__(
        self,
        world: World,
        channels: Sequence[AgentChannel],
        constants: Optional[GameConstants] = None,
        config: Optional[MatchConfig] = None,
        recorder: Optional[ReplayRecorder] = None,
        names: Optional[Mapping[int, str]] = None,
    ):
        self.world = world
        self.constants = constants or DEFAULT_CONSTANTS
        self.config = config or MatchConfig()

        ids = [c.player_id for c in channels]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(f"Duplicate player ids among channels: {sorted(ids)}")
        if set(ids) != set(world.players):
            raise ConfigurationError(
                f"Channels for players {sorted(ids)} do not match world players "
                f"{sorted(world.players)}"
            )
        self.channels: Dict[int, AgentChannel] = {c.player_id: c for c in channels}
        self.names = dict(names or {})

        self.simulation = Simulation(world, self.constants)
        self.recorder = recorder or ReplayRecorder(
            world.width, world.height, self.config.seed, self.constants
        )
        self.max_turns = self.config.max_turns or default_max_turns(world.width, world.height)
        self.state = MatchState.INIT
        self.faults: List[AgentFault] = []

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(self) -> MatchResult:
        """Run the match on a fresh event loop."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> MatchResult:
        """
        Run the match.

        Returns:
            MatchResult with statistics and the replay.

        Raises:
            ConfigurationError: If an agent cannot be launched.
            InvariantViolation: If the resolver produced an impossible world.
        """
        try:
            await self._initialize()
            self.state = MatchState.RUNNING
            while not self._is_finished():
                await self._play_turn()
            self.state = MatchState.FINISHED
            return self._finish()
        except InvariantViolation as e:
            print(f"[ARENA] Match aborted: {e}", file=sys.stderr)
            raise
        finally:
            await self._close_all()

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def _initialize(self) -> None:
        world = self.world
        await asyncio.gather(*(ch.start() for ch in self.channels.values()))

        player_ids = sorted(self.channels)
        results = await asyncio.gather(*(
            self.channels[pid].handshake(
                init_message(world, pid, self.config.seed),
                self.config.init_deadline,
            )
            for pid in player_ids
        ))

        events: List[dict] = []
        for pid, (line, fault) in zip(player_ids, results):
            if fault is not None:
                self._eliminate(fault, 0, events)
                continue
            world.players[pid].name = self.names.get(pid) or parse_name(line, pid)
            if self.config.verbose:
                print(f"[ARENA] Player {pid} connected as {world.players[pid].name!r}")

        self.recorder.record_turn(world.snapshot(), {}, events)

    async def _play_turn(self) -> None:
        world = self.world

        self.state = MatchState.COLLECTING
        living = world.living_players()
        messages = {pid: serialize_world(world, pid) for pid in living}
        responses = await asyncio.gather(*(
            self.channels[pid].exchange(messages[pid], self.config.turn_deadline)
            for pid in living
        ))

        self.state = MatchState.RESOLVING
        events: List[dict] = []
        commands = {}
        for pid, response in zip(living, responses):
            if response.fault is not None:
                self._eliminate(response.fault, world.turn + 1, events)
            else:
                commands[pid] = response.commands

        outcome = self.simulation.resolve_turn(commands)
        events.extend(outcome.events())
        self.recorder.record_turn(world.snapshot(), outcome.encoded_commands(), events)

        self.state = MatchState.CHECKING
        for pid in outcome.eliminated:
            await self.channels[pid].close()
            if self.config.verbose:
                print(f"[ARENA] Player {pid} eliminated: no ships left")

        if self.config.verbose:
            fleet = ", ".join(f"P{pid}:{world.ship_count(pid)}" for pid in sorted(world.players))
            print(f"[ARENA] Turn {world.turn}/{self.max_turns} | ships {fleet}")

    def _is_finished(self) -> bool:
        if self.world.turn >= self.max_turns:
            return True
        alive = len(self.world.living_players())
        if self.world.player_count == 1:
            return alive == 0
        return alive <= 1

    def _finish(self) -> MatchResult:
        statistics = self.recorder.finalize()

        replay_file = None
        if self.config.record_replay:
            try:
                replay_file = self.recorder.save(self.config.replay_dir)
            except OSError as e:
                print(f"[ARENA] Warning: could not save replay: {e}", file=sys.stderr)

        if self.config.verbose:
            print(f"[ARENA] Match finished after {self.world.turn} turns")
            if replay_file:
                print(f"[ARENA] Replay saved to {replay_file}")

        return MatchResult(
            statistics=statistics,
            replay=self.recorder,
            winner=winner(statistics),
            turns_played=self.world.turn,
            names={pid: p.name for pid, p in self.world.players.items()},
            faults=list(self.faults),
            replay_file=replay_file,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _eliminate(self, fault: AgentFault, turn: int, events: List[dict]) -> None:
        self.faults.append(fault)
        self.world.eliminate_player(fault.player_id, turn, fault.kind.value)
        events.append(fault.to_dict())
        if self.config.verbose:
            print(f"[ARENA] Player {fault.player_id} eliminated: {fault.kind.value} {fault.detail}")

    async def _close_all(self) -> None:
        await asyncio.gather(*(ch.close() for ch in self.channels.values()))
