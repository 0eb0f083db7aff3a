"""
Evaluation module.
Seeded trial generation and batch experiments over benchmark maps.
"""

from gridist.evaluation.trial_generator import Trial, TrialGenerator
from gridist.evaluation.experiment import Experiment, PLANNERS

__all__ = ["Trial", "TrialGenerator", "Experiment", "PLANNERS"]
