"""
Test fixtures and utilities for release planner tests.
"""

import random
from dataclasses import replace
from typing import List, Optional, Tuple

from release_planner.config import MonitoringConfig, PlannerConfig, SearchConfig
from release_planner.entities import (
    Employee, Feature, PlannedFeature, PriorityLevel, Problem, Skill, Solution,
)


# Test data fixtures
JAVA = Skill("java")
PYTHON = Skill("python")
SQL = Skill("sql")

SAMPLE_EMPLOYEES = [
    Employee("alice", 40.0, [JAVA, PYTHON]),
    Employee("bob", 30.0, [PYTHON, SQL]),
    Employee("carol", 20.0, [JAVA]),
]

SAMPLE_FEATURES = [
    Feature("login", 8.0, PriorityLevel.ONE, [JAVA]),
    Feature("reports", 6.0, PriorityLevel.THREE, [SQL], ["login"]),
    Feature("export", 4.0, PriorityLevel.FIVE, [PYTHON], ["reports"]),
    Feature("search", 10.0, PriorityLevel.TWO, [PYTHON]),
    Feature("audit", 5.0, PriorityLevel.FOUR, []),
]


def sample_problem(nb_weeks: int = 3, hours_per_week: float = 40.0) -> Problem:
    return Problem(SAMPLE_FEATURES, SAMPLE_EMPLOYEES, nb_weeks, hours_per_week)


def create_test_config(max_iterations: int = 300, seed: int = 7, workers: int = 1) -> PlannerConfig:
    """Create a small, deterministic configuration for tests."""
    return PlannerConfig(
        search=SearchConfig(
            max_iterations=max_iterations,
            time_limit_seconds=60.0,
            random_seed=seed,
            parallel_workers=workers,
        ),
        monitoring=MonitoringConfig(enable_monitoring=False),
    )


class RandomProblemFactory:
    """
    Builds random skills, features and employees from a caller-supplied
    random number generator, so every test controls its own randomness.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random(0)
        self._counter = 0

    def _next(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"

    def skill(self) -> Skill:
        return Skill(self._next("skill"))

    def skill_list(self, n: int) -> List[Skill]:
        return [self.skill() for _ in range(n)]

    def feature(self, skills=(), previous=()) -> Feature:
        return Feature(
            self._next("feature"),
            float(self.rng.randint(1, 10)),
            PriorityLevel(self.rng.randint(1, 5)),
            skills,
            previous,
        )

    def feature_list(self, n: int) -> List[Feature]:
        return [self.feature() for _ in range(n)]

    def employee(self, skills=()) -> Employee:
        return Employee(self._next("employee"), float(self.rng.choice([20, 40, 60, 80])), skills)

    def employee_list(self, n: int) -> List[Employee]:
        return [self.employee() for _ in range(n)]

    def mix(self, features: List[Feature], skills: List[Skill],
            employees: List[Employee]) -> Tuple[List[Feature], List[Employee]]:
        """Random skills for everyone and random (acyclic) dependencies between features."""
        mixed_employees = [
            replace(e, skills=frozenset(self.rng.sample(skills, self.rng.randint(1, min(3, len(skills))))))
            for e in employees
        ]
        mixed_features = []
        for i, f in enumerate(features):
            required = frozenset(self.rng.sample(skills, self.rng.randint(0, min(2, len(skills)))))
            previous = ()
            if i > 0 and self.rng.random() < 0.4:
                previous = (features[self.rng.randrange(i)].name,)
            mixed_features.append(replace(f, required_skills=required, previous_features=previous))
        return mixed_features, mixed_employees

    def violate_precedences(self, solution: Solution) -> Solution:
        """Copy of the solution where a planned dependent starts before its predecessor ends."""
        violated = solution.copy()
        for pf in violated.planned_features:
            for previous in pf.feature.previous_features:
                before = violated.get(previous)
                if before is not None:
                    pf.begin_hour = before.begin_hour
                    pf.end_hour = before.begin_hour + pf.feature.duration
                    return violated
        raise ValueError("Solution has no planned dependent feature to break")


def planned(feature: Feature, employee: Employee, begin: float, frozen: bool = False,
            end: Optional[float] = None) -> PlannedFeature:
    """Shorthand for building planned features in tests."""
    return PlannedFeature(feature, employee, begin, end, frozen)
