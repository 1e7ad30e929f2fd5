"""
Tests for the turn coordinator.

Tests cover:
- Deadline isolation: a slow agent cannot hold up the others
- Elimination finality after a fault
- Handshake faults before the first frame
- End conditions (turn limit, last player standing, single player)
- End-to-end matches with in-process and subprocess agents
- Configuration errors and invariant aborts

Run with: pytest tests/test_coordinator.py -v
"""

import asyncio
import json
import sys
import time
from pathlib import Path

import pytest

from halite_env.arena import (
    FaultKind,
    InProcessAgentChannel,
    MatchConfig,
    MatchState,
    SubprocessAgentChannel,
    TurnCoordinator,
    default_max_turns,
    verify_replay,
)
from halite_env.errors import ConfigurationError, InvariantViolation
from halite_env.world import Planet, World


BOTS_DIR = Path(__file__).parent / "bots"


# =============================================================================
# FIXTURES
# =============================================================================

def quiet_config(**kwargs):
    values = {"verbose": False, "record_replay": False, "max_turns": 10}
    values.update(kwargs)
    return MatchConfig(**values)


def scripted_agent(name, reply="", delay=0.0, calls=None):
    """Async agent that answers the handshake with ``name`` and every turn with ``reply``."""
    state = {"n": 0}

    async def handler(message):
        state["n"] += 1
        if calls is not None:
            calls.append(message)
        if state["n"] == 1:
            return name
        if delay:
            await asyncio.sleep(delay)
        return reply

    return handler


def line_world(player_count, width=160, height=160):
    """One ship per player, spread along the x axis."""
    world = World(width, height, player_count)
    for pid in range(player_count):
        world.spawn_ship(pid, 20.0 + 40.0 * pid, 80.0, 255)
    return world


@pytest.fixture
def economy_world():
    """Player 0 next to a planet near (40, 40); player 1 far away."""
    world = World(160, 160, player_count=2)
    world.add_planet(Planet(
        planet_id=0, x=40.0, y=40.0, radius=6.0,
        docking_spots=3, remaining_production=2000,
    ))
    world.spawn_ship(0, 40.0, 49.0, 255)
    world.spawn_ship(1, 120.0, 120.0, 255)
    return world


# =============================================================================
# CONFIGURATION
# =============================================================================

class TestMatchConfig:
    """Tests for match configuration."""

    def test_defaults(self):
        config = MatchConfig()
        assert config.turn_deadline == 2.0
        assert config.init_deadline == 30.0

    def test_ignore_timeout(self):
        config = MatchConfig(ignore_timeout=True)
        assert config.turn_deadline is None
        assert config.init_deadline is None

    def test_default_max_turns(self):
        assert default_max_turns(160, 160) == 260

    @pytest.mark.parametrize("kwargs", [
        {"turn_timeout_s": 0},
        {"init_timeout_s": -1.0},
        {"max_turns": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            MatchConfig(**kwargs)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HALITE_VERBOSE", "false")
        monkeypatch.setenv("HALITE_TURN_TIMEOUT", "0.5")
        monkeypatch.setenv("HALITE_MAX_TURNS", "12")
        monkeypatch.setenv("HALITE_REPLAY_DIR", "/tmp/halite-replays")
        config = MatchConfig.from_env(seed=9)
        assert config.verbose is False
        assert config.turn_timeout_s == 0.5
        assert config.max_turns == 12
        assert config.replay_dir == "/tmp/halite-replays"
        assert config.seed == 9

    def test_from_env_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("HALITE_MAX_TURNS", "many")
        with pytest.raises(ConfigurationError):
            MatchConfig.from_env()

    def test_channel_mismatch(self):
        world = line_world(2)
        with pytest.raises(ConfigurationError):
            TurnCoordinator(world, [InProcessAgentChannel(0, scripted_agent("a"))])

    def test_duplicate_channels(self):
        world = line_world(2)
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(0, scripted_agent("b")),
        ]
        with pytest.raises(ConfigurationError):
            TurnCoordinator(world, channels)


# =============================================================================
# FAULT ISOLATION
# =============================================================================

class TestFaultIsolation:
    """Tests for per-agent deadlines and elimination."""

    def test_slow_agent_does_not_delay_others(self):
        world = line_world(3)
        slow_calls = []
        channels = [
            InProcessAgentChannel(0, scripted_agent("fast", delay=0.01)),
            InProcessAgentChannel(1, scripted_agent("slow", delay=5.0, calls=slow_calls)),
            InProcessAgentChannel(2, scripted_agent("fast2", delay=0.01)),
        ]
        coordinator = TurnCoordinator(
            world, channels, config=quiet_config(turn_timeout_s=0.1, max_turns=5)
        )

        start = time.monotonic()
        result = coordinator.run()
        elapsed = time.monotonic() - start

        assert elapsed < 3.0
        assert result.turns_played == 5
        assert [(f.player_id, f.kind) for f in result.faults] == [(1, FaultKind.TIMEOUT)]
        assert world.players[1].eliminated_turn == 1
        assert world.players[1].fault == "timeout"
        assert world.players[0].alive and world.players[2].alive
        # Handshake plus the one turn that timed out
        assert len(slow_calls) == 2

    def test_eliminated_player_leaves_no_trace(self):
        world = line_world(3)
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, scripted_agent("b", delay=5.0)),
            InProcessAgentChannel(2, scripted_agent("c")),
        ]
        coordinator = TurnCoordinator(
            world, channels, config=quiet_config(turn_timeout_s=0.1, max_turns=4)
        )
        result = coordinator.run()

        frames = result.replay.frames
        assert any(s["owner"] == 1 for s in frames[0].snapshot["ships"])
        for frame in frames[1:]:
            assert all(s["owner"] != 1 for s in frame.snapshot["ships"])
            assert all(p["owner"] != 1 for p in frame.snapshot["planets"])
        assert {"type": "fault", "player": 1, "kind": "timeout"}.items() <= frames[1].events[0].items()

    def test_handshake_fault_before_first_frame(self):
        async def broken(message):
            raise RuntimeError("no name")

        world = line_world(3)
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, broken),
            InProcessAgentChannel(2, scripted_agent("c")),
        ]
        result = TurnCoordinator(world, channels, config=quiet_config(max_turns=3)).run()

        frame0 = result.replay.frames[0]
        players = {p["id"]: p for p in frame0.snapshot["players"]}
        assert players[1]["alive"] is False
        assert players[1]["eliminated_turn"] == 0
        assert frame0.events[0]["kind"] == FaultKind.PROCESS_EXITED.value
        assert result.turns_played == 3

    def test_stuck_sync_agent_does_not_delay_result(self):
        def stuck(message):
            if message.count("\n") >= 2:
                return "stuck"
            time.sleep(4.0)
            return ""

        world = line_world(3)
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, stuck),
            InProcessAgentChannel(2, scripted_agent("c")),
        ]
        coordinator = TurnCoordinator(
            world, channels, config=quiet_config(turn_timeout_s=0.1, max_turns=3)
        )

        start = time.monotonic()
        result = coordinator.run()
        elapsed = time.monotonic() - start

        assert elapsed < 2.0
        assert result.turns_played == 3
        assert [(f.player_id, f.kind) for f in result.faults] == [(1, FaultKind.TIMEOUT)]

    def test_last_player_standing_ends_match(self):
        world = line_world(2)
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, scripted_agent("b", delay=5.0)),
        ]
        result = TurnCoordinator(
            world, channels, config=quiet_config(turn_timeout_s=0.1, max_turns=50)
        ).run()
        assert result.turns_played == 1
        assert result.winner == 0


# =============================================================================
# MATCH FLOW
# =============================================================================

class TestMatchFlow:
    """Tests for whole matches."""

    def test_docking_agent_outproduces_idle_agent(self, economy_world):
        channels = [
            InProcessAgentChannel(0, scripted_agent("Docker", reply="d 0 0")),
            InProcessAgentChannel(1, scripted_agent("Idler")),
        ]
        coordinator = TurnCoordinator(economy_world, channels, config=quiet_config(max_turns=30))
        result = coordinator.run()

        assert coordinator.state is MatchState.FINISHED
        assert result.turns_played == 30
        assert result.names == {0: "Docker", 1: "Idler"}

        by_player = {s.player_id: s for s in result.statistics}
        assert by_player[0].total_units_produced == 2
        assert by_player[1].total_units_produced == 0
        assert by_player[0].rank == 1
        assert by_player[1].rank == 2
        assert by_player[0].last_frame_alive == 30
        assert result.winner == 0

    def test_frames_are_consecutive_and_replayable(self, economy_world):
        channels = [
            InProcessAgentChannel(0, scripted_agent("Docker", reply="d 0 0")),
            InProcessAgentChannel(1, scripted_agent("Mover", reply="t 1 7 180")),
        ]
        result = TurnCoordinator(economy_world, channels, config=quiet_config(max_turns=20)).run()

        assert [f.turn for f in result.replay.frames] == list(range(21))
        replay = json.loads(result.replay.to_json())
        assert verify_replay(replay) == []

    def test_single_player_runs_to_turn_limit(self):
        world = line_world(1)
        channels = [InProcessAgentChannel(0, scripted_agent("solo"))]
        result = TurnCoordinator(world, channels, config=quiet_config(max_turns=4)).run()
        assert result.turns_played == 4
        assert result.statistics[0].rank == 1

    def test_replay_saved(self, tmp_path, economy_world):
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, scripted_agent("b")),
        ]
        config = quiet_config(max_turns=2, record_replay=True, replay_dir=str(tmp_path))
        result = TurnCoordinator(economy_world, channels, config=config).run()

        assert result.replay_file is not None
        data = json.loads(Path(result.replay_file).read_text())
        assert data["num_frames"] == 3
        assert data["player_names"] == {"0": "a", "1": "b"}

    def test_subprocess_bots(self):
        world = line_world(2)
        channels = [
            SubprocessAgentChannel(pid, [sys.executable, str(BOTS_DIR / "idle_bot.py")])
            for pid in range(2)
        ]
        result = TurnCoordinator(
            world, channels, config=quiet_config(max_turns=3, init_timeout_s=10.0, turn_timeout_s=5.0)
        ).run()

        assert result.turns_played == 3
        assert result.names == {0: "IdleBot", 1: "IdleBot"}
        assert result.faults == []
        assert all(ch.returncode is not None for ch in channels)

    def test_name_override(self):
        world = line_world(2)
        channels = [
            InProcessAgentChannel(0, scripted_agent("sent-name")),
            InProcessAgentChannel(1, scripted_agent("")),
        ]
        result = TurnCoordinator(
            world, channels, config=quiet_config(max_turns=1), names={0: "override"}
        ).run()
        assert result.names == {0: "override", 1: "Player 1"}

    def test_quiet_match_keeps_stdout_clean(self, tmp_path, capsys, economy_world):
        # A file where the replay directory should be makes the save fail
        blocked = tmp_path / "replays"
        blocked.write_text("not a directory")
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, scripted_agent("b")),
        ]
        config = quiet_config(max_turns=2, record_replay=True, replay_dir=str(blocked))
        result = TurnCoordinator(economy_world, channels, config=config).run()

        captured = capsys.readouterr()
        assert result.replay_file is None
        assert captured.out == ""
        assert "could not save replay" in captured.err

    def test_invariant_violation_aborts(self):
        world = line_world(2)
        channels = [
            InProcessAgentChannel(0, scripted_agent("a")),
            InProcessAgentChannel(1, scripted_agent("b")),
        ]
        coordinator = TurnCoordinator(world, channels, config=quiet_config())

        def broken_resolve(commands):
            raise InvariantViolation("ship out of bounds", 1)

        coordinator.simulation.resolve_turn = broken_resolve
        with pytest.raises(InvariantViolation):
            coordinator.run()
        assert all(ch._closed for ch in channels)
