#!/usr/bin/env python3
"""
Headless traffic session runner.

Runs one session for a fixed simulated duration, optionally replaying a
file of timed operator commands, and prints the final score and metrics.

Command file format, one per line (blank lines and ``#`` comments ignored):

    <simulated seconds> <command>
    30 UAL123 C 40 C OBK
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Tuple

import yaml
from tqdm import tqdm

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from atc_sim import (
    AtcSimError,
    SimulationConfig,
    TrafficController,
    default_airspace,
    load_aircraft_types,
    load_airspace,
    load_config,
)


logger = logging.getLogger("run_session")


def load_command_script(path: Path) -> List[Tuple[float, str]]:
    """Read ``<time> <command>`` lines, sorted by time."""
    script = []
    with open(path, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            time_str, _, command = line.partition(" ")
            try:
                at = float(time_str)
            except ValueError:
                logger.warning(f"{path}:{line_no}: invalid time {time_str!r}, skipped")
                continue
            script.append((at, command.strip()))
    script.sort(key=lambda item: item[0])
    return script


def main():
    parser = argparse.ArgumentParser(description="Run a headless traffic session")
    parser.add_argument("--config", type=str, default=None, help="Session config YAML")
    parser.add_argument("--airport", type=str, default=None, help="Airspace layout (.json/.yaml)")
    parser.add_argument("--aircraft-types", type=str, default=None, help="Aircraft performance table")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for traffic")
    parser.add_argument("--duration", type=float, default=300.0, help="Simulated seconds to run")
    parser.add_argument("--commands", type=str, default=None, help="File of '<time> <command>' lines")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else SimulationConfig()
        airspace = load_airspace(args.airport) if args.airport else default_airspace()
        aircraft_types = load_aircraft_types(args.aircraft_types) if args.aircraft_types else None
    except AtcSimError as e:
        logger.error(str(e))
        return 1

    try:
        script = load_command_script(Path(args.commands)) if args.commands else []
    except OSError as e:
        logger.error(f"Cannot read command script {args.commands}: {e}")
        return 1

    controller = TrafficController(
        airspace=airspace,
        config=config,
        seed=args.seed,
        aircraft_types=aircraft_types,
    )
    controller.on_log = lambda message: tqdm.write(f"[{controller.time_elapsed:7.1f}] {message}")
    controller.start()

    steps = int(round(args.duration / config.max_dt))
    next_command = 0
    with tqdm(total=steps, desc="Simulating", unit="tick") as progress:
        for _ in range(steps):
            while next_command < len(script) and script[next_command][0] <= controller.time_elapsed:
                controller.execute(script[next_command][1])
                next_command += 1

            controller.tick(config.max_dt)
            progress.update(1)
            progress.set_postfix(score=f"{controller.score:.1f}", traffic=len(controller.aircraft))

    print("=" * 80)
    print(f"Session summary: {airspace.name} ({airspace.code})")
    print("=" * 80)
    print(f"Score: {controller.score:.1f}")
    print(f"Aircraft in airspace: {len(controller.aircraft)}")
    print(yaml.dump(controller.metrics.to_dict(), default_flow_style=False, sort_keys=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
