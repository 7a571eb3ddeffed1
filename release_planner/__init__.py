"""
Release Planner

Assigns prioritized, skill-tagged features with precedence dependencies to
employees over a bounded horizon, and replans around frozen commitments.
"""

__version__ = "1.0.0"

from .config import PlannerConfig, load_config
from .entities import (
    Employee,
    Feature,
    PlannedFeature,
    PriorityLevel,
    Problem,
    Score,
    Skill,
    Solution,
    SolveStatus,
    UnknownFeatureError,
    ConstraintViolationError,
)
from .planner import ReleasePlanner, plan, replan, solve_request
from .replan import ReplanController
from .search import ScheduleGenerator
from .tools import (
    ConstraintValidator,
    DependencyAnalyzer,
    PlanAnalyzer,
    SolutionScorer,
)

__all__ = [
    "Employee",
    "Feature",
    "PlannedFeature",
    "PriorityLevel",
    "Problem",
    "Score",
    "Skill",
    "Solution",
    "SolveStatus",
    "UnknownFeatureError",
    "ConstraintViolationError",
    "PlannerConfig",
    "load_config",
    "ReleasePlanner",
    "plan",
    "replan",
    "solve_request",
    "ReplanController",
    "ScheduleGenerator",
    "ConstraintValidator",
    "DependencyAnalyzer",
    "PlanAnalyzer",
    "SolutionScorer",
]
