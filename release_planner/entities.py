"""
Release Planner - Domain Model

Value types describing one next-release planning request and its answer:

1. Skill / PriorityLevel / Employee / Feature - read-only problem facts
2. Unassigned / Assigned / Frozen - the state a feature's decision variable can be in
3. PlannedFeature - one feature done by one employee between two hours
4. Problem - the full request (features, employees, horizon)
5. Score / SolveStatus / Solution - what the engine hands back

Features reference their predecessors by name, so self-dependencies and
dependency cycles can be expressed with immutable values and are resolved
against the Problem that owns them.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union


class UnknownFeatureError(ValueError):
    """Raised when a feature depends on a feature that is not part of the problem."""

    def __init__(self, feature: str, reference: str):
        self.feature = feature
        self.reference = reference
        super().__init__(f"Unknown feature reference: '{feature}' depends on '{reference}'")


class ConstraintViolationError(AssertionError):
    """Raised by the validator when a solution breaks a constraint it must honour."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


@dataclass(frozen=True)
class Skill:
    name: str

    def __str__(self) -> str:
        return self.name


class PriorityLevel(IntEnum):
    """Five ranks, ONE being the most important."""
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5

    @property
    def weight(self) -> int:
        """Optimization weight: ONE -> 5 ... FIVE -> 1."""
        return 6 - int(self)

    @classmethod
    def from_level(cls, level: int) -> "PriorityLevel":
        try:
            return cls(level)
        except ValueError:
            return cls.FIVE


def _skill_set(skills: Iterable[Union[Skill, str]]) -> FrozenSet[Skill]:
    return frozenset(s if isinstance(s, Skill) else Skill(s) for s in skills)


@dataclass(frozen=True)
class Employee:
    """A resource with a skill set and the hours it can work within the horizon."""
    name: str
    availability: float = field(compare=False)
    skills: FrozenSet[Skill] = field(default=frozenset(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'skills', _skill_set(self.skills))
        if self.availability < 0:
            raise ValueError(f"Employee '{self.name}' has negative availability {self.availability}")

    def can_do(self, feature: "Feature") -> bool:
        return feature.required_skills <= self.skills


@dataclass(frozen=True)
class Feature:
    """A schedulable work item. `previous_features` holds predecessor names."""
    name: str
    duration: float = field(compare=False)
    priority: PriorityLevel = field(default=PriorityLevel.THREE, compare=False)
    required_skills: FrozenSet[Skill] = field(default=frozenset(), compare=False)
    previous_features: Tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'required_skills', _skill_set(self.required_skills))
        object.__setattr__(self, 'previous_features', tuple(
            p.name if isinstance(p, Feature) else p for p in self.previous_features
        ))
        object.__setattr__(self, 'priority', PriorityLevel(self.priority))
        if self.duration <= 0:
            raise ValueError(f"Feature '{self.name}' must have a positive duration, got {self.duration}")

    @property
    def depends_on_itself(self) -> bool:
        return self.name in self.previous_features


# Decision variable states. Search state stores Unassigned/Assigned only;
# Frozen values are kept apart so no move can address them.

class Unassigned:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNASSIGNED"


UNASSIGNED = Unassigned()


@dataclass(frozen=True)
class Assigned:
    employee: Employee
    begin_hour: float = 0.0
    end_hour: float = 0.0


@dataclass(frozen=True)
class Frozen:
    employee: Employee
    begin_hour: float
    end_hour: float


Slot = Union[Unassigned, Assigned]


@dataclass
class PlannedFeature:
    """Assignment of one feature to one employee with concrete hours."""
    feature: Feature
    employee: Employee
    begin_hour: float = 0.0
    end_hour: Optional[float] = None
    frozen: bool = False

    def __post_init__(self):
        if self.end_hour is None:
            self.end_hour = self.begin_hour + self.feature.duration

    @property
    def hours(self) -> float:
        return self.end_hour - self.begin_hour

    def overlaps(self, other: "PlannedFeature") -> bool:
        return self.begin_hour < other.end_hour and other.begin_hour < self.end_hour

    def to_frozen(self) -> Frozen:
        return Frozen(self.employee, self.begin_hour, self.end_hour)

    def freeze(self) -> "PlannedFeature":
        return replace(self, frozen=True)

    def __str__(self) -> str:
        flag = " [frozen]" if self.frozen else ""
        return f"{self.feature.name} -> {self.employee.name} [{self.begin_hour:g}, {self.end_hour:g}){flag}"


@dataclass(frozen=True)
class Problem:
    """
    One planning request.

    `nb_weeks` and `hours_per_week` bound the horizon: nothing may end after
    `nb_weeks * hours_per_week` and no employee works more than that.
    """
    features: Tuple[Feature, ...]
    employees: Tuple[Employee, ...]
    nb_weeks: int = 3
    hours_per_week: float = 40.0

    def __post_init__(self):
        object.__setattr__(self, 'features', tuple(self.features))
        object.__setattr__(self, 'employees', tuple(self.employees))

        if self.nb_weeks < 1:
            raise ValueError(f"nb_weeks must be at least 1, got {self.nb_weeks}")
        if self.hours_per_week <= 0:
            raise ValueError(f"hours_per_week must be positive, got {self.hours_per_week}")

        names = set()
        for f in self.features:
            if f.name in names:
                raise ValueError(f"Duplicate feature name '{f.name}'")
            names.add(f.name)

        employee_names = set()
        for e in self.employees:
            if e.name in employee_names:
                raise ValueError(f"Duplicate employee name '{e.name}'")
            employee_names.add(e.name)

        for f in self.features:
            for previous in f.previous_features:
                if previous not in names:
                    raise UnknownFeatureError(f.name, previous)

    @property
    def horizon_hours(self) -> float:
        return self.nb_weeks * self.hours_per_week

    def feature(self, name: str) -> Feature:
        return self.feature_index[name]

    @property
    def feature_index(self) -> Dict[str, Feature]:
        return {f.name: f for f in self.features}

    @property
    def employee_index(self) -> Dict[str, Employee]:
        return {e.name: e for e in self.employees}

    def capacity(self, employee: Employee) -> float:
        """Hours an employee can work: availability capped by the horizon."""
        return min(employee.availability, self.horizon_hours)

    def dependents(self) -> Dict[str, List[str]]:
        """Map each feature name to the names of features that list it as predecessor."""
        result = {f.name: [] for f in self.features}
        for f in self.features:
            for previous in f.previous_features:
                result[previous].append(f.name)
        return result


@dataclass(frozen=True, order=True)
class Score:
    """Lexicographic score; every component is <= 0 and higher is better."""
    hard: int = 0
    medium: int = 0
    soft: float = 0.0

    @property
    def is_feasible(self) -> bool:
        return self.hard == 0

    def __str__(self) -> str:
        return f"{self.hard}hard/{self.medium}medium/{self.soft:g}soft"


class SolveStatus(Enum):
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    INCOMPLETE = "incomplete"


@dataclass
class Solution:
    """A problem plus the features planned for it. Unplannable features are simply absent."""
    problem: Problem
    planned_features: List[PlannedFeature] = field(default_factory=list)
    score: Optional[Score] = None
    status: Optional[SolveStatus] = None
    excluded: Tuple[str, ...] = ()

    def __post_init__(self):
        seen = set()
        for pf in self.planned_features:
            if pf.feature.name in seen:
                raise ValueError(f"Feature '{pf.feature.name}' is planned more than once")
            seen.add(pf.feature.name)

    def get(self, name: str) -> Optional[PlannedFeature]:
        for pf in self.planned_features:
            if pf.feature.name == name:
                return pf
        return None

    def is_planned(self, name: str) -> bool:
        return self.get(name) is not None

    def frozen_features(self) -> List[PlannedFeature]:
        return [pf for pf in self.planned_features if pf.frozen]

    def unplanned_features(self) -> List[Feature]:
        planned = {pf.feature.name for pf in self.planned_features}
        return [f for f in self.problem.features if f.name not in planned]

    def employee_hours(self, employee_name: str) -> float:
        return sum(pf.hours for pf in self.planned_features if pf.employee.name == employee_name)

    @property
    def makespan(self) -> float:
        return max((pf.end_hour for pf in self.planned_features), default=0.0)

    @property
    def is_feasible(self) -> bool:
        return self.score is None or self.score.is_feasible

    def copy(self) -> "Solution":
        return replace(self, planned_features=[replace(pf) for pf in self.planned_features])

    def freeze(self) -> "Solution":
        """Copy of this solution with every planned feature frozen."""
        return replace(self, planned_features=[pf.freeze() for pf in self.planned_features])

    def __str__(self) -> str:
        lines = [f"Solution ({len(self.planned_features)} planned, score {self.score}, status "
                 f"{self.status.value if self.status else 'n/a'})"]
        for pf in sorted(self.planned_features, key=lambda p: (p.employee.name, p.begin_hour)):
            lines.append(f"  {pf}")
        return "\n".join(lines)
