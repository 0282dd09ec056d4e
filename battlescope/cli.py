#!/usr/bin/env python3
"""
Battlescope command line
Replays a save state until the battle AI has picked a move enough times to
estimate how often it picks each one.

    battlescope red.gb battle.state -t 10000 --backend mybackend:Backend
"""

import argparse
import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from battlescope.config import POLL_INTERVAL, RunConfig
from battlescope.errors import BattlescopeError
from battlescope.report import (
    build_report,
    finished_message,
    print_progress,
    print_results_table,
    progress_line,
    save_report,
    terminal_columns,
)
from battlescope.simulator import Simulator

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='battlescope',
        description='Estimate the move distribution of a Pokémon battle AI',
    )
    parser.add_argument('rom', type=Path, help='ROM file')
    parser.add_argument('save_state', type=Path, help='Save state taken before the AI picks a move')
    parser.add_argument('-j', '--jobs', type=positive_int,
                        help='Number of CPU threads to use - by default, use all available CPU threads')
    parser.add_argument('-t', '--trials', type=positive_int,
                        help='Number of trials to calculate - by default, it will keep going until you press CTRL-C')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help="Don't output anything until finished")
    parser.add_argument('--backend', type=str,
                        help='Emulator backend as module:attribute (default: $BATTLESCOPE_BACKEND)')
    parser.add_argument('--seed', type=int, help='Seed for the random number generators')
    parser.add_argument('--json', dest='json_output', type=Path,
                        help='Also write the results to this JSON file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    return parser


def parse_config(argv: Optional[List[str]] = None) -> RunConfig:
    args = build_parser().parse_args(argv)
    return RunConfig(
        rom=args.rom,
        save_state=args.save_state,
        jobs=args.jobs,
        trials=args.trials,
        quiet=args.quiet,
        backend=args.backend,
        seed=args.seed,
        json_output=args.json_output,
        verbose=args.verbose,
    )


def run(config: RunConfig) -> int:
    """Run one simulation to completion or CTRL-C"""
    try:
        rom = config.rom.read_bytes()
    except OSError:
        print(f"Failed to read ROM {config.rom}", file=sys.stderr)
        return 1

    try:
        save_state = config.save_state.read_bytes()
    except OSError:
        print(f"Failed to read save state {config.save_state}", file=sys.stderr)
        return 1

    try:
        simulator = Simulator(rom, save_state, trials=config.trials,
                              backend=config.resolved_backend(), seed=config.seed)
    except BattlescopeError as e:
        print(f"Failed to load simulator: {e}", file=sys.stderr)
        return 1

    bail = threading.Event()

    def request_stop(signum, frame):
        bail.set()

    previous_handler = signal.signal(signal.SIGINT, request_stop)

    simulator.start(config.thread_count())
    if not config.quiet:
        print(f"Simulating {simulator.profile.display_name}... press CTRL-C to stop!")

    start = time.time()
    try:
        while True:
            time.sleep(POLL_INTERVAL)

            bailing = bail.is_set()
            if bailing:
                simulator.stop()

            results = simulator.results()
            sample_size = sum(results.values())
            elapsed = time.time() - start

            if not simulator.is_running():
                if not config.quiet:
                    print()
                print(finished_message(sample_size, elapsed, bailing))
                if bailing and sample_size == 0:
                    return 0
                break

            if not config.quiet:
                print_progress(progress_line(results, elapsed, terminal_columns()))
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        simulator.stop()

    results = simulator.results()
    print_results_table(results)

    if config.json_output:
        report = build_report(simulator.profile.display_name, results, elapsed, config.trials)
        try:
            save_report(report, config.json_output)
        except OSError as e:
            print(f"Failed to save results to {config.json_output}: {e}", file=sys.stderr)
            return 1
        print(f"Results saved to: {config.json_output}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_config(argv)
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
