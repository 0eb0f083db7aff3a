"""
Planning module.
Incremental D* Lite search, baseline A* and the agent loop that drives them.
"""

from gridist.planning.heuristics import GridHeuristics
from gridist.planning.incremental_search import IncrementalSearch, Path, SearchEntry, SearchState
from gridist.planning.astar_planner import (
    AStarPlanner,
    AlwaysAStarAgent,
    PlanningResult,
    RepeatedAStarAgent,
    build_baseline_agent,
)

__all__ = [
    "GridHeuristics",
    "IncrementalSearch",
    "Path",
    "SearchEntry",
    "SearchState",
    "AStarPlanner",
    "AlwaysAStarAgent",
    "PlanningResult",
    "RepeatedAStarAgent",
    "build_baseline_agent",
]
