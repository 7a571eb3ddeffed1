"""
Release Planner - Replan Controller

Re-optimizes an updated problem around the commitments of a prior solution.
"""

from typing import Dict, List, Optional, Tuple
import logging

from .config import PlannerConfig
from .entities import Employee, PlannedFeature, Problem, Solution
from .search import ScheduleGenerator

logger = logging.getLogger(__name__)


class ReplanController:
    """
    Seeds a new search from a prior solution.

    Pinned entries are carried over exactly as they were (same employee and
    hours), even when the updated problem would no longer allow them; their
    hours still count against their employee and their end hours are the
    earliest start of their dependents. Only the remaining eligible features
    are searched.

    With `freeze_all` (the default) every prior entry is pinned. Otherwise only
    entries already flagged frozen are pinned and the others are a warm start
    the search is free to change.
    """

    def __init__(self, config: Optional[PlannerConfig] = None):
        self.config = config or PlannerConfig()
        self.last_generator: Optional[ScheduleGenerator] = None

    def replan(self, problem: Problem, prior: Solution, freeze_all: bool = True) -> Solution:
        pinned, seed = self.split_prior(problem, prior, freeze_all)
        logger.info("Replanning with %d frozen and %d warm-start assignment(s)", len(pinned), len(seed))

        generator = ScheduleGenerator(problem, self.config, pinned)
        self.last_generator = generator
        return generator.generate(seed)

    def split_prior(self, problem: Problem, prior: Solution,
                    freeze_all: bool = True) -> Tuple[List[PlannedFeature], Dict[str, Employee]]:
        """Split prior entries into frozen commitments and warm-start assignments."""
        employees = problem.employee_index
        pinned = []
        seed = {}
        for pf in prior.planned_features:
            if freeze_all or pf.frozen:
                pinned.append(pf.freeze())
            elif pf.employee.name in employees:
                # Warm start uses the employee as the updated problem knows it
                seed[pf.feature.name] = employees[pf.employee.name]
            else:
                logger.debug("Dropping warm start of %s: employee %s is gone",
                             pf.feature.name, pf.employee.name)
        return pinned, seed


def replan_schedule(problem: Problem, prior: Solution, config: Optional[PlannerConfig] = None,
                    freeze_all: bool = True) -> Solution:
    """Tool wrapper: Replan a problem around a prior solution."""
    return ReplanController(config).replan(problem, prior, freeze_all)
