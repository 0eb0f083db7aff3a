"""
Experiment
Runs a planner over a window of trials and tabulates the results.
"""

import logging
import time
import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Any

from gridist.belief.priors import PriorLike
from gridist.environment.grid_model import GridModel
from gridist.evaluation.trial_generator import Trial, TrialGenerator
from gridist.planning.astar_planner import AStarPlanner, build_baseline_agent, ground_truth_cost
from gridist.planning.integration.agent_loop import AgentLoop, BaselineLoop, RunResult
from gridist.planning.integration.run_context import RunContext
from gridist.utils.logger import log_run_summary

INCREMENTAL_PLANNER = "incremental"
PLANNERS = (INCREMENTAL_PLANNER, "repeated_astar", "always_astar")


class Experiment:
    """
    Batch of independent runs over one map.

    Every trial gets its own fresh grid and run state; nothing is shared
    between runs. ``config`` is the full configuration with sections
    'belief', 'search', 'agent' and 'evaluation'.
    """

    def __init__(self, config: Dict[str, Any], grid: GridModel, prior: Optional[PriorLike] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.grid = grid
        self.prior = prior
        self.eval_config = config.get('evaluation', {})
        self.trial_generator = TrialGenerator(self.eval_config)
        self.compute_optimal = self.eval_config.get('compute_optimal', True)

        self.results: List[Dict[str, Any]] = []

        self.logger.info(f"Experiment initialized on {grid.dimensions} grid")

    def run_trial(self, trial: Trial, planner: str = INCREMENTAL_PLANNER) -> RunResult:
        agent_config = self.config.get('agent', {})

        if planner == INCREMENTAL_PLANNER:
            context = RunContext.from_config(self.config, self.grid, trial.start, trial.goal,
                                             prior=self.prior)
            loop = AgentLoop(agent_config, context)
        else:
            baseline = build_baseline_agent(self.config.get('search', {}), planner)
            loop = BaselineLoop(agent_config, self.grid.fresh(), trial.start, trial.goal, baseline)

        return loop.run()

    def run(self, planner: str = INCREMENTAL_PLANNER, start: Optional[int] = None,
            end: Optional[int] = None) -> pd.DataFrame:
        """
        Run ``planner`` over trials [start, end).

        Returns:
            One row per trial
        """
        if planner not in PLANNERS:
            raise ValueError(f"Unknown planner: {planner}, expected one of {PLANNERS}")

        start = self.eval_config.get('start', 0) if start is None else start
        end = self.eval_config.get('end', 10) if end is None else end
        trials = self.trial_generator.generate(self.grid, start, end)

        optimal_planner = AStarPlanner({'heuristic': 'auto'})
        true_cost = ground_truth_cost(self.grid)

        rows = []
        experiment_start = time.time()
        for trial in trials:
            self.logger.info(f"Trial {trial.index}: {trial.start} -> {trial.goal}")
            result = self.run_trial(trial, planner)
            log_run_summary(result, {"index": trial.index, "planner": planner,
                                     "start": trial.start, "goal": trial.goal}, self.logger)

            row = {
                'trial': trial.index,
                'planner': planner,
                'start': trial.start,
                'goal': trial.goal,
            }
            row.update(result.to_dict())
            if self.compute_optimal:
                optimal = optimal_planner.plan_path(self.grid, trial.start, trial.goal, true_cost)
                row['optimal_cost'] = optimal.total_cost
                row['suboptimality'] = (result.path_cost / optimal.total_cost
                                        if result.success and optimal.total_cost > 0 else np.nan)
            rows.append(row)

        self.results.extend(rows)
        self.logger.info(f"{planner}: {len(rows)} trials in {time.time() - experiment_start:.2f}s")
        return pd.DataFrame(rows)

    def compare(self, planners=PLANNERS, start: Optional[int] = None,
                end: Optional[int] = None) -> pd.DataFrame:
        frames = [self.run(planner, start, end) for planner in planners]
        return pd.concat(frames, ignore_index=True)

    @staticmethod
    def summarize(results: pd.DataFrame) -> pd.DataFrame:
        """Aggregate per planner: success rate and means of the run metrics."""
        if results.empty:
            return pd.DataFrame()

        grouped = results.groupby('planner')
        summary = grouped.agg(
            trials=('trial', 'count'),
            success_rate=('success', 'mean'),
            mean_cost=('path_cost', 'mean'),
            mean_steps=('steps', 'mean'),
            mean_expanded=('cells_expanded', 'mean'),
            mean_replans=('replan_count', 'mean'),
            mean_run_time=('run_time', 'mean'),
        )
        if 'suboptimality' in results.columns:
            summary['mean_suboptimality'] = grouped['suboptimality'].mean()
        return summary
