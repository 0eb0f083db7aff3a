import os
import sys
import argparse
import logging
import json
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from gridist.belief.priors import density_prior
from gridist.environment.map_parser import load_map
from gridist.evaluation.experiment import Experiment, PLANNERS
from gridist.utils import load_config, log_exceptions, setup_logging, validate_config


class TrialRunner:

    def __init__(self, config_path: str, map_path: str):
        self.config = load_config(config_path)

        self.logger_system = setup_logging(self.config.logging)
        self.logger = logging.getLogger(__name__)

        errors = validate_config(self.config)
        if errors:
            for section, section_errors in errors.items():
                for error in section_errors:
                    self.logger.error(f"[{section}] {error}")
            raise ValueError(f"Invalid configuration: {sorted(errors)}")

        self.map_data = load_map(map_path)
        self.grid = self.map_data.to_grid_model(self.config.grid)

        self.logger.info(f"Trial runner initialized: {Path(map_path).name}")

    def run(self, planners, start: int, end: int, prior_maps=None):
        prior = None
        if prior_maps:
            prior = density_prior([load_map(p).blocked for p in prior_maps],
                                  self.grid.dimensions)

        experiment = Experiment(self.config.to_dict(), self.grid, prior=prior)
        results = experiment.compare(planners, start, end)

        for _, row in results.iterrows():
            self.logger.debug(f"{row['planner']} trial {row['trial']}: {row['status']}")

        return results, Experiment.summarize(results)


@log_exceptions("evaluation")
def main():
    parser = argparse.ArgumentParser(description="Run online pathfinding trials on a movingai map")
    parser.add_argument("map", type=str, help="Path to a .map file")
    parser.add_argument(
        "--config",
        type=str,
        default="config/main_config.yaml",
        help="Configuration file path",
    )
    parser.add_argument(
        "--planner",
        action="append",
        choices=PLANNERS,
        help="Planner to run (repeatable, default: all)",
    )
    parser.add_argument("--start", type=int, default=0, help="First trial index")
    parser.add_argument("--end", type=int, default=10, help="One past the last trial index")
    parser.add_argument("--seed", type=int, default=None, help="Trial seed override")
    parser.add_argument(
        "--prior-maps", nargs="*", default=None,
        help="Maps whose obstacle density sets the belief prior",
    )
    parser.add_argument("--output", type=str, default=None, help="CSV file for per-trial results")

    args = parser.parse_args()

    runner = TrialRunner(args.config, args.map)
    if args.seed is not None:
        runner.config.evaluation["seed"] = args.seed

    planners = args.planner or list(PLANNERS)
    try:
        results, summary = runner.run(planners, args.start, args.end, args.prior_maps)
    except Exception as e:
        runner.logger_system.log_error_with_context(
            "evaluation", e,
            {"map": args.map, "planners": planners, "window": [args.start, args.end]},
        )
        raise

    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        results.to_csv(args.output, index=False)
        runner.logger.info(f"Results saved to {args.output}")

    runner.logger_system.log_system_event(
        "experiment_summary", "evaluation",
        json.loads(summary.to_json(orient="index")),
    )

    print("\nTRIAL SUMMARY")
    print("=" * 50)
    print(summary.to_string())


if __name__ == "__main__":
    main()
