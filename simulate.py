#!/usr/bin/env -S uv run

from __future__ import annotations

import argparse
from pathlib import Path

from oscnet.commands import run_distances, run_resonances, run_simulate
from oscnet.settings import DEFAULT_CONFIG_PATH


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate networks of coupled damped oscillators.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to the run configuration (JSON).")
    parser.add_argument("--resonances", action="store_true", help="Report natural frequencies and damping ratios, then exit.")
    parser.add_argument("--distances", action="store_true", help="Estimate spring rest lengths for the configured equilibrium, then exit.")
    parser.add_argument("--no-plots", action="store_true", help="Skip writing PNG figures.")
    args = parser.parse_args()

    if args.resonances and args.distances:
        raise SystemExit("Choose only one: --resonances OR --distances.")

    plots = False if args.no_plots else None

    if args.resonances:
        run_resonances(args.config, plots=plots)
        return

    if args.distances:
        run_distances(args.config)
        return

    run_simulate(args.config, plots=plots)


if __name__ == "__main__":
    main()
