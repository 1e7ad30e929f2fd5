"""
Match statistics derived from a replay log.

``compute_statistics`` is a pure function of the recorded frames: the same
log always yields the same ranking, so a stored replay can be re-scored
without re-running the match.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class PlayerStatistics:
    """Final standing of one player."""
    player_id: int
    rank: int
    last_frame_alive: int
    total_units_produced: int
    damage_dealt: int
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _players(snapshot: Dict[str, Any]) -> Dict[int, Dict[str, Any]]:
    return {p["id"]: p for p in snapshot["players"]}


def _ship_count(snapshot: Dict[str, Any], player_id: int) -> int:
    return sum(1 for s in snapshot["ships"] if s["owner"] == player_id)


def compute_statistics(frames: Sequence[Any]) -> List[PlayerStatistics]:
    """
    Score every player from the recorded frames.

    Args:
        frames: TurnRecord-like objects (``turn``, ``snapshot``, ``events``)
            in recording order, frame 0 first.

    Returns:
        Statistics ordered by player id.

    Ranking: players alive in the final frame come first. Everyone is then
    ordered by the later last alive frame, then by ships owned in that
    frame, then by damage dealt, then by ascending player id.
    """
    if not frames:
        return []

    initial = frames[0].snapshot
    initial_ships = {s["id"] for s in initial["ships"]}
    final_players = _players(frames[-1].snapshot)
    player_ids = sorted(_players(initial))

    last_alive: Dict[int, Optional[Any]] = {pid: None for pid in player_ids}
    produced: Dict[int, set] = {pid: set() for pid in player_ids}
    damage: Dict[int, int] = {pid: 0 for pid in player_ids}

    for frame in frames:
        snapshot = frame.snapshot
        for pid, player in _players(snapshot).items():
            if player["alive"] and pid in last_alive:
                last_alive[pid] = frame
        for ship in snapshot["ships"]:
            if ship["id"] not in initial_ships and ship["owner"] in produced:
                produced[ship["owner"]].add(ship["id"])
        for event in frame.events:
            kind = event.get("type")
            if kind == "damage" and event["attacker_owner"] in damage:
                damage[event["attacker_owner"]] += event["amount"]
            elif kind == "spawn" and event["owner"] in produced:
                produced[event["owner"]].add(event["ship"])

    def sort_key(pid: int):
        frame = last_alive[pid]
        survived = bool(final_players.get(pid, {}).get("alive", False))
        last_frame = frame.turn if frame is not None else 0
        units = _ship_count(frame.snapshot, pid) if frame is not None else 0
        return (not survived, -last_frame, -units, -damage[pid], pid)

    ranking = sorted(player_ids, key=sort_key)
    ranks = {pid: i + 1 for i, pid in enumerate(ranking)}

    names = {pid: p.get("name", "") for pid, p in final_players.items()}
    return [
        PlayerStatistics(
            player_id=pid,
            rank=ranks[pid],
            last_frame_alive=last_alive[pid].turn if last_alive[pid] is not None else 0,
            total_units_produced=len(produced[pid]),
            damage_dealt=damage[pid],
            name=names.get(pid, ""),
        )
        for pid in player_ids
    ]


def winner(statistics: Sequence[PlayerStatistics]) -> Optional[int]:
    """Player ranked first, if any."""
    for stats in statistics:
        if stats.rank == 1:
            return stats.player_id
    return None


def format_quiet(statistics: Sequence[PlayerStatistics]) -> str:
    """
    Machine-parsable result, one line per player:

        <player_id> <rank> <last_frame_alive> <units_produced> <damage_dealt>
    """
    return "\n".join(
        f"{s.player_id} {s.rank} {s.last_frame_alive} "
        f"{s.total_units_produced} {s.damage_dealt}"
        for s in statistics
    )


def format_summary(statistics: Sequence[PlayerStatistics]) -> str:
    """Human-readable result, one sentence per player."""
    return "\n".join(
        f"Player #{s.player_id}, {s.name or f'Player {s.player_id}'}, "
        f"came in rank #{s.rank} and was last alive on frame #{s.last_frame_alive}, "
        f"producing {s.total_units_produced} ships and dealing {s.damage_dealt} damage!"
        for s in statistics
    )
