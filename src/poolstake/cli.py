"""Command-line entry point: run a staking simulation and export results."""

import argparse
import logging
import sys

from .config.loader import load_config
from .reporting.export import export_csv, export_json
from .simulation.runner import SimulationRunner
from .validation.sanity_checks import validate_simulation_results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="poolstake-sim",
        description="Simulate multi-pool staking rewards over an emission schedule."
    )
    parser.add_argument("--config", help="YAML config (defaults to packaged defaults.yaml)")
    parser.add_argument("--seed", type=int, help="Override the simulation random seed")
    parser.add_argument("--csv", help="Write per-step metrics to this CSV file")
    parser.add_argument("--json", help="Write full results to this JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    config = load_config(args.config)
    result = SimulationRunner(config).run(random_seed=args.seed)

    if args.csv:
        export_csv(result, args.csv)
    if args.json:
        export_json(result, args.json)

    final = result.final_metrics
    print(f"Config hash:      {final['config_hash']}")
    print(f"Total emitted:    {final['final_total_emitted']:,}")
    print(f"Total disbursed:  {final['final_total_disbursed']:,}")
    print(f"Pending:          {final['final_total_pending']:,}")
    print(f"Forfeited:        {final['forfeited']:,}")
    print(f"Items staked:     {final['final_total_staked']:,}")

    warnings = validate_simulation_results(config, result.states, result.metrics_over_time)
    for warning in warnings:
        print(f"[{warning.severity}] {warning.category}: {warning.message}", file=sys.stderr)

    return 1 if any(w.severity == "error" for w in warnings) else 0


if __name__ == "__main__":
    sys.exit(main())
