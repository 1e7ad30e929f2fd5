#!/usr/bin/env python3
"""
Run a Halite match between bot processes.

Usage:
    python scripts/run_match.py "python3 MyBot.py" "python3 OtherBot.py"
    python scripts/run_match.py -d "160 160" -s 42 -q "./bot_a" "./bot_b"
    python scripts/run_match.py --print-constants
"""

import argparse
import sys
import time
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from halite_env.constants import DEFAULT_CONSTANTS, GameConstants
from halite_env.errors import HaliteError
from halite_env.mapgen import choose_dimensions, generate_world
from halite_env.arena import (
    InProcessAgentChannel,
    MatchConfig,
    SubprocessAgentChannel,
    TurnCoordinator,
    format_quiet,
    format_summary,
    parse_launch_command,
)


def parse_dimensions(value: str):
    parts = value.replace(",", " ").split()
    if len(parts) != 2:
        raise argparse.ArgumentTypeError("dimensions must be two integers, e.g. \"160 160\"")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError("dimensions must be two integers")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("dimensions must be positive")
    return width, height


def idle_agent(message: str) -> str:
    """Placeholder for map slots with no bot attached."""
    return ""


def main():
    parser = argparse.ArgumentParser(
        description="Halite Game Environment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_match.py "python3 MyBot.py" "python3 MyBot.py"
    python scripts/run_match.py -n 2 "python3 MyBot.py"
    python scripts/run_match.py -o "./bot_a" alpha "./bot_b" beta
        """,
    )

    # Switches
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode, producing machine-parsable output",
    )
    parser.add_argument(
        "-o", "--override",
        action="store_true",
        help="Override bot-sent names: bot commands alternate with names",
    )
    parser.add_argument(
        "-t", "--timeout",
        action="store_true",
        help="Ignore timeouts (give all bots infinite time)",
    )
    parser.add_argument(
        "-r", "--noreplay",
        action="store_true",
        help="Turn off replay generation",
    )

    # Values
    parser.add_argument(
        "-n", "--nplayers",
        type=int,
        default=1,
        help="Create a map for n players (single bot only, default: 1)",
    )
    parser.add_argument(
        "-d", "--dimensions",
        type=parse_dimensions,
        default=None,
        help="Map dimensions as two integers, e.g. \"160 160\"",
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=0,
        help="Map generator seed (default: time based)",
    )
    parser.add_argument(
        "-i", "--replaydirectory",
        default=None,
        help="Directory for replay output",
    )
    parser.add_argument(
        "--max-turns",
        type=int,
        default=None,
        help="Turn limit (default: 100 + sqrt(width * height))",
    )
    parser.add_argument(
        "--constantsfile",
        default=None,
        help="JSON file containing game constants",
    )
    parser.add_argument(
        "--print-constants",
        action="store_true",
        help="Print the default constants and exit",
    )
    parser.add_argument(
        "bots",
        nargs="*",
        help="Launch commands for bots",
    )

    args = parser.parse_args()

    if args.print_constants:
        print(DEFAULT_CONSTANTS.to_json())
        return 0

    try:
        constants = DEFAULT_CONSTANTS
        if args.constantsfile:
            constants = GameConstants.from_json_file(args.constantsfile)
            if not args.quiet:
                print(constants.describe())
        elif not args.quiet:
            print("Game constants: all default")

        names = {}
        commands = list(args.bots)
        if args.override:
            if len(commands) < 4 or len(commands) % 2 != 0:
                print("Invalid number of player parameters with override switch enabled.")
                return 1
            names = {i: name for i, name in enumerate(commands[1::2])}
            commands = commands[0::2]

        if not commands:
            print("Please provide the launch command string for at least one bot.")
            print("Use the --help flag for usage details.")
            return 1

        if len(commands) > 1 and args.nplayers != 1:
            print("Only single-bot mode allows specifying n. Do not combine -n with several bots.")
            return 1
        player_count = len(commands) if len(commands) > 1 else args.nplayers

        seed = args.seed or int(time.time() * 1_000_000) % 4294967295
        if args.dimensions:
            width, height = args.dimensions
        else:
            width, height = choose_dimensions(seed)

        config = MatchConfig.from_env(
            verbose=not args.quiet,
            ignore_timeout=args.timeout or None,
            record_replay=False if args.noreplay else None,
            replay_dir=args.replaydirectory,
            max_turns=args.max_turns,
            seed=seed,
        )

        world = generate_world(width, height, seed, player_count, constants)
        channels = [
            SubprocessAgentChannel(pid, parse_launch_command(command))
            for pid, command in enumerate(commands)
        ]
        channels += [
            InProcessAgentChannel(pid, idle_agent)
            for pid in range(len(commands), player_count)
        ]

        coordinator = TurnCoordinator(world, channels, constants, config, names=names)
        result = coordinator.run()

        if args.quiet:
            print(format_quiet(result.statistics))
            if result.replay_file:
                print(result.replay_file)
        else:
            print(format_summary(result.statistics))

        return 0

    except HaliteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
