"""
Release Planner - Core Tool Implementations

Constraint tools shared by the search engine and by callers inspecting a plan:

1. DependencyAnalyzer - Splits features into eligible / structurally excluded (self-loops, cycles)
2. SolutionScorer - Lexicographic hard/medium/soft score used as the search objective
3. ConstraintValidator - External audit of a solution, frozen entries included
4. PlanAnalyzer - Explains why features are absent and how loaded each employee is

Hard violations make a plan infeasible. The medium level rewards planning many
(and important) features, the soft level rewards a short makespan.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple
from collections import defaultdict, deque
from dataclasses import dataclass, field
import heapq
import logging

from .config import ScoringConfig
from .entities import (
    ConstraintViolationError, PlannedFeature, Problem, Score, Solution,
)

logger = logging.getLogger(__name__)

EPSILON = 1e-9

# Exclusion reasons
SELF_DEPENDENCY = "self_dependency"
DEPENDENCY_CYCLE = "dependency_cycle"
BLOCKED_BY_EXCLUDED = "blocked_by_excluded"

WHITE, GRAY, BLACK = 0, 1, 2


@dataclass
class DependencyReport:
    """Partition of a problem's features before any assignment search"""
    eligible: List[str]
    excluded: Dict[str, str]
    pinned: FrozenSet[str] = frozenset()
    order: List[str] = field(default_factory=list)

    def is_eligible(self, name: str) -> bool:
        return name in self._eligible_set

    @property
    def _eligible_set(self) -> FrozenSet[str]:
        return frozenset(self.eligible)


class DependencyAnalyzer:
    """
    Precedence graph analysis.

    An edge f -> g means f must finish before g starts. Features depending on
    themselves, features on a dependency cycle and every feature downstream of
    those can never be planned, whatever the resources. Pinned (frozen)
    features are fixed context: their own predecessors are not re-checked, but
    they still release their dependents.
    """

    def __init__(self, problem: Problem):
        self.problem = problem
        self.features = problem.feature_index

    def analyze(self, pinned: Iterable[str] = ()) -> DependencyReport:
        """Classify every feature of the problem as eligible, excluded or pinned."""
        pinned = frozenset(name for name in pinned if name in self.features)
        successors = self._successors(pinned)

        excluded: Dict[str, str] = {}
        for feature in self.problem.features:
            if feature.name not in pinned and feature.depends_on_itself:
                excluded[feature.name] = SELF_DEPENDENCY

        for name in self._find_cycle_members(successors):
            excluded.setdefault(name, DEPENDENCY_CYCLE)

        # Everything downstream of an excluded feature can never start
        queue = deque(excluded)
        while queue:
            current = queue.popleft()
            for child in successors[current]:
                if child not in excluded:
                    excluded[child] = BLOCKED_BY_EXCLUDED
                    queue.append(child)

        eligible = [f.name for f in self.problem.features
                    if f.name not in excluded and f.name not in pinned]

        if excluded:
            logger.debug("Excluded %d feature(s) from planning: %s", len(excluded), excluded)

        return DependencyReport(
            eligible=eligible,
            excluded=excluded,
            pinned=pinned,
            order=self._topological_order(eligible, pinned),
        )

    def _successors(self, pinned: FrozenSet[str]) -> Dict[str, List[str]]:
        successors = {name: [] for name in self.features}
        for feature in self.problem.features:
            if feature.name in pinned:
                continue
            for previous in feature.previous_features:
                successors[previous].append(feature.name)
        return successors

    def _find_cycle_members(self, successors: Dict[str, List[str]]) -> List[str]:
        """
        Iterative depth-first search with white/gray/black marking.

        A back edge to a gray node closes a cycle: every node on the current
        path from that node onwards is on it. Members reached only through a
        cross edge are picked up afterwards by the downstream exclusion.
        """
        color = {name: WHITE for name in successors}
        cyclic = []
        seen = set()

        for root in successors:
            if color[root] != WHITE:
                continue

            color[root] = GRAY
            path = [root]
            position = {root: 0}
            stack = [(root, iter(successors[root]))]

            while stack:
                node, children = stack[-1]
                advanced = False
                for child in children:
                    if child == node:
                        continue
                    if color[child] == WHITE:
                        color[child] = GRAY
                        position[child] = len(path)
                        path.append(child)
                        stack.append((child, iter(successors[child])))
                        advanced = True
                        break
                    if color[child] == GRAY:
                        for member in path[position[child]:]:
                            if member not in seen:
                                seen.add(member)
                                cyclic.append(member)

                if not advanced:
                    stack.pop()
                    path.pop()
                    position.pop(node)
                    color[node] = BLACK

        return cyclic

    def _topological_order(self, eligible: List[str], pinned: FrozenSet[str]) -> List[str]:
        """Kahn's algorithm; ready features are taken most important first, then in input order."""
        eligible_set = set(eligible)
        position = {f.name: i for i, f in enumerate(self.problem.features)}
        indegree = {}
        children = defaultdict(list)

        for name in eligible:
            predecessors = [p for p in set(self.features[name].previous_features) if p in eligible_set]
            indegree[name] = len(predecessors)
            for p in predecessors:
                children[p].append(name)

        heap = [(-self.features[n].priority.weight, position[n], n) for n in eligible if indegree[n] == 0]
        heapq.heapify(heap)
        order = []
        while heap:
            _, _, name = heapq.heappop(heap)
            order.append(name)
            for child in children[name]:
                indegree[child] -= 1
                if indegree[child] == 0:
                    feature = self.features[child]
                    heapq.heappush(heap, (-feature.priority.weight, position[child], child))

        return order


class SolutionScorer:
    """
    Objective function of the search.

    Hard level (must be 0): skill coverage, precedence, capacity, horizon,
    double-booking and duplicates. Violations caused only by frozen entries
    are not counted, frozen commitments are fixed context.

    Medium level: every eligible feature left unplanned costs
    `count_weight + priority weight`. `count_weight` is `unplanned_weight`
    raised above five times the number of eligible features, so one more
    planned feature outweighs any priority mix of the others, and among
    plans of equal size the more important features win.

    Soft level: minus the makespan.
    """

    def __init__(self, problem: Problem, eligible: Optional[Iterable[str]] = None,
                 config: Optional[ScoringConfig] = None):
        self.problem = problem
        self.config = config or ScoringConfig()
        if eligible is None:
            eligible = DependencyAnalyzer(problem).analyze().eligible
        self.eligible = list(eligible)
        self.features = problem.feature_index
        self.employees = problem.employee_index
        # Larger than the summed priority weight of every eligible feature
        self.count_weight = max(self.config.unplanned_weight, 5 * len(self.eligible) + 1)
        self._unplanned_costs = {
            name: self.count_weight + self.features[name].priority.weight
            for name in self.eligible
        }

    def score(self, planned: List[PlannedFeature]) -> Score:
        hard = sum(self._hard_violations(planned).values())
        return Score(hard=-hard, medium=-self._unplanned_cost(planned), soft=-self._makespan(planned))

    def explain(self, planned: List[PlannedFeature]) -> Dict:
        """Score with the per-constraint breakdown."""
        violations = self._hard_violations(planned)
        planned_names = {pf.feature.name for pf in planned}
        score = Score(
            hard=-sum(violations.values()),
            medium=-self._unplanned_cost(planned),
            soft=-self._makespan(planned),
        )
        return {
            'score': score,
            'feasible': score.is_feasible,
            'breakdown': {
                'hard': violations,
                'unplanned_eligible': [n for n in self.eligible if n not in planned_names],
                'unplanned_cost': -score.medium,
                'makespan': -score.soft,
            }
        }

    def _unplanned_cost(self, planned: List[PlannedFeature]) -> int:
        planned_names = {pf.feature.name for pf in planned}
        return sum(cost for name, cost in self._unplanned_costs.items() if name not in planned_names)

    def _makespan(self, planned: List[PlannedFeature]) -> float:
        return max((pf.end_hour for pf in planned), default=0.0)

    def _hard_violations(self, planned: List[PlannedFeature]) -> Dict[str, int]:
        violations = {
            'skills': 0,
            'precedence': 0,
            'capacity': 0,
            'horizon': 0,
            'overlap': 0,
            'duplicates': 0,
        }

        by_name: Dict[str, PlannedFeature] = {}
        by_employee: Dict[str, List[PlannedFeature]] = defaultdict(list)
        for pf in planned:
            if pf.feature.name in by_name:
                violations['duplicates'] += 1
                continue
            by_name[pf.feature.name] = pf
            by_employee[pf.employee.name].append(pf)

        horizon = self.problem.horizon_hours
        for pf in by_name.values():
            if pf.frozen:
                continue

            if not pf.employee.can_do(pf.feature):
                violations['skills'] += 1

            if pf.end_hour > horizon + EPSILON:
                violations['horizon'] += 1

            for previous in pf.feature.previous_features:
                before = by_name.get(previous)
                if before is None or pf.begin_hour + EPSILON < before.end_hour:
                    violations['precedence'] += 1

        for employee_name, entries in by_employee.items():
            if all(pf.frozen for pf in entries):
                continue
            entries.sort(key=lambda p: (p.begin_hour, p.end_hour))
            employee = self.employees.get(employee_name, entries[0].employee)
            capacity = self.problem.capacity(employee)

            # Frozen hours are consumed first, wherever they sit in time
            total = sum(pf.hours for pf in entries if pf.frozen)
            for pf in entries:
                if pf.frozen:
                    continue
                total += pf.hours
                if total > capacity + EPSILON:
                    violations['capacity'] += 1

            violations['overlap'] += _count_overlaps(entries, movable_only=True)

        return violations


def _count_overlaps(entries: List[PlannedFeature], movable_only: bool = False) -> int:
    """Overlapping pairs in a list sorted by begin hour."""
    count = 0
    for i, current in enumerate(entries):
        for other in entries[i + 1:]:
            if other.begin_hour + EPSILON >= current.end_hour:
                break
            if current.overlaps(other) and not (movable_only and current.frozen and other.frozen):
                count += 1
    return count


class ConstraintValidator:
    """
    External audit of a solution against its problem.

    Unlike the scorer this checks every entry, frozen ones included, against
    the problem's current features and employees. That is how inconsistencies
    accepted during replanning (a removed skill, a predecessor added after the
    freeze) are detected and reported. The engine never repairs them.
    """

    def __init__(self, problem: Problem):
        self.problem = problem
        self.features = problem.feature_index
        self.employees = problem.employee_index

    def validate(self, solution: Solution) -> Tuple[bool, List[str], Dict]:
        """
        Validate solution against all constraints.
        Returns (is_valid, list_of_violations, violation_breakdown)
        """
        checks = [
            ('structure', self.validate_structure(solution)),
            ('skills', self.validate_skills(solution)),
            ('precedence', self.validate_dependencies(solution)),
            ('capacity', self.validate_capacity(solution)),
            ('overlap', self.validate_overlaps(solution)),
            ('horizon', self.validate_horizon(solution)),
        ]

        violations = []
        breakdown = {}
        for category, found in checks:
            violations.extend(found)
            breakdown[category] = len(found)
        breakdown['total'] = len(violations)

        return len(violations) == 0, violations, breakdown

    def validate_structure(self, solution: Solution) -> List[str]:
        """Unknown, duplicated and structurally excluded features."""
        violations = []
        seen = set()
        for pf in solution.planned_features:
            name = pf.feature.name
            if name in seen:
                violations.append(f"Feature {name} is planned more than once")
            seen.add(name)
            if name not in self.features:
                violations.append(f"Feature {name} is not part of the problem")
            elif not pf.frozen and abs(pf.hours - self.features[name].duration) > EPSILON:
                violations.append(
                    f"Feature {name} lasts {pf.hours:g}h but its duration is {self.features[name].duration:g}h"
                )

        report = DependencyAnalyzer(self.problem).analyze()
        for name, reason in report.excluded.items():
            if name in seen:
                violations.append(f"Feature {name} is planned although it is excluded ({reason})")

        return violations

    def validate_skills(self, solution: Solution) -> List[str]:
        """Every assigned employee must hold all skills the feature requires."""
        violations = []
        for pf in solution.planned_features:
            feature = self.features.get(pf.feature.name, pf.feature)
            employee = self.employees.get(pf.employee.name, pf.employee)
            missing = feature.required_skills - employee.skills
            if missing:
                names = sorted(s.name for s in missing)
                violations.append(
                    f"Employee {employee.name} lacks skills {names} required by feature {feature.name}"
                )
        return violations

    def validate_dependencies(self, solution: Solution) -> List[str]:
        """Planned features start after their planned predecessors end; no predecessor is left out."""
        violations = []
        by_name = {pf.feature.name: pf for pf in solution.planned_features}
        for pf in solution.planned_features:
            feature = self.features.get(pf.feature.name, pf.feature)
            for previous in feature.previous_features:
                if previous == feature.name:
                    continue
                before = by_name.get(previous)
                if before is None:
                    violations.append(f"Feature {feature.name} is planned but its predecessor {previous} is not")
                elif pf.begin_hour + EPSILON < before.end_hour:
                    violations.append(
                        f"Feature {feature.name} begins at {pf.begin_hour:g} before its predecessor "
                        f"{previous} ends at {before.end_hour:g}"
                    )
        return violations

    def validate_capacity(self, solution: Solution) -> List[str]:
        violations = []
        hours = defaultdict(float)
        for pf in solution.planned_features:
            hours[pf.employee.name] += pf.hours

        for employee_name, total in hours.items():
            employee = self.employees.get(employee_name)
            if employee is None:
                continue
            capacity = self.problem.capacity(employee)
            if total > capacity + EPSILON:
                violations.append(
                    f"Employee {employee_name} is assigned {total:g}h but can only work {capacity:g}h"
                )
        return violations

    def validate_overlaps(self, solution: Solution) -> List[str]:
        violations = []
        by_employee = defaultdict(list)
        for pf in solution.planned_features:
            by_employee[pf.employee.name].append(pf)

        for employee_name, entries in by_employee.items():
            entries.sort(key=lambda p: (p.begin_hour, p.end_hour))
            for i, current in enumerate(entries):
                for other in entries[i + 1:]:
                    if other.begin_hour + EPSILON >= current.end_hour:
                        break
                    violations.append(
                        f"Employee {employee_name} works on {current.feature.name} and "
                        f"{other.feature.name} at the same time"
                    )
        return violations

    def validate_horizon(self, solution: Solution) -> List[str]:
        horizon = self.problem.horizon_hours
        return [
            f"Feature {pf.feature.name} ends at {pf.end_hour:g}, after the horizon of {horizon:g}h"
            for pf in solution.planned_features
            if pf.end_hour > horizon + EPSILON
        ]

    def validate_frozen(self, prior: Solution, solution: Solution, only_flagged: bool = False) -> List[str]:
        """Every (frozen) entry of the prior solution must reappear unchanged."""
        violations = []
        for before in prior.planned_features:
            if only_flagged and not before.frozen:
                continue
            name = before.feature.name
            after = solution.get(name)
            if after is None:
                violations.append(f"Frozen feature {name} is missing from the new solution")
                continue
            if after.employee.name != before.employee.name:
                violations.append(
                    f"Frozen feature {name} moved from {before.employee.name} to {after.employee.name}"
                )
            if after.begin_hour != before.begin_hour or after.end_hour != before.end_hour:
                violations.append(
                    f"Frozen feature {name} moved from [{before.begin_hour:g}, {before.end_hour:g}) "
                    f"to [{after.begin_hour:g}, {after.end_hour:g})"
                )
            if not after.frozen:
                violations.append(f"Feature {name} is no longer marked frozen")
        return violations

    def require_valid(self, solution: Solution):
        """Assertion-style check: raise ConstraintViolationError listing every violation."""
        is_valid, violations, _ = self.validate(solution)
        if not is_valid:
            raise ConstraintViolationError(violations)

    def require_frozen_preserved(self, prior: Solution, solution: Solution, only_flagged: bool = False):
        violations = self.validate_frozen(prior, solution, only_flagged)
        if violations:
            raise ConstraintViolationError(violations)


class PlanAnalyzer:
    """
    Explains a (partial) plan.

    A missing feature is not an error; this tells the caller why it is
    missing (structure, predecessors, skills, capacity, horizon or simply not
    chosen within the search budget), how loaded each employee is, and which
    skills are worth acquiring.
    """

    def __init__(self, problem: Problem):
        self.problem = problem
        self.features = problem.feature_index

    def analyze(self, solution: Solution) -> Dict:
        """Analyze unplanned features and employee utilization."""
        planned = {pf.feature.name: pf for pf in solution.planned_features}
        report = DependencyAnalyzer(self.problem).analyze(
            pinned=[pf.feature.name for pf in solution.planned_features if pf.frozen]
        )

        # Track utilization
        utilization = {}
        remaining = {}
        for employee in self.problem.employees:
            hours = solution.employee_hours(employee.name)
            capacity = self.problem.capacity(employee)
            remaining[employee.name] = capacity - hours
            utilization[employee.name] = {
                'assigned_hours': round(hours, 2),
                'capacity': round(capacity, 2),
                'utilization': round(hours / capacity * 100, 1) if capacity > 0 else 0.0,
            }

        unplanned = []
        skill_gaps = defaultdict(list)
        for feature in self.problem.features:
            if feature.name in planned:
                continue

            skilled = [e for e in self.problem.employees if e.can_do(feature)]
            if feature.name in report.excluded:
                reason = report.excluded[feature.name]
            elif any(p not in planned for p in feature.previous_features):
                reason = "blocked_by_unplanned_predecessor"
            elif not skilled:
                reason = "no_skilled_employee"
                known = set().union(*(e.skills for e in self.problem.employees)) if self.problem.employees else set()
                for skill in feature.required_skills - known:
                    skill_gaps[skill.name].append(feature.name)
            elif feature.duration > self.problem.horizon_hours:
                reason = "longer_than_horizon"
            elif all(remaining[e.name] + EPSILON < feature.duration for e in skilled):
                reason = "insufficient_capacity"
            else:
                reason = "not_selected"

            unplanned.append({
                'feature': feature.name,
                'priority': int(feature.priority),
                'duration': feature.duration,
                'reason': reason,
            })

        # Generate recommendations
        recommendations = []
        for skill, features in sorted(skill_gaps.items(), key=lambda x: -len(x[1])):
            recommendations.append({
                'skill': skill,
                'features': features,
                'urgency': 'HIGH' if len(features) > 5 else 'MEDIUM' if len(features) > 2 else 'LOW',
                'reason': f'{len(features)} feature(s) need a skill no employee has',
            })

        short_hours = sum(item['duration'] for item in unplanned if item['reason'] == 'insufficient_capacity')
        if short_hours > 0:
            recommendations.append({
                'skill': None,
                'features': [item['feature'] for item in unplanned if item['reason'] == 'insufficient_capacity'],
                'urgency': 'MEDIUM',
                'reason': f'{short_hours:g}h of work do not fit the remaining capacity of skilled employees',
            })

        return {
            'planned': len(planned),
            'total_unplanned': len(unplanned),
            'unplanned': unplanned,
            'utilization': utilization,
            'skill_gaps': {k: len(v) for k, v in skill_gaps.items()},
            'recommendations': recommendations,
        }


# Tool wrapper functions

def analyze_dependencies(problem: Problem, pinned: Iterable[str] = ()) -> DependencyReport:
    """Tool wrapper: Classify features as eligible or structurally excluded."""
    return DependencyAnalyzer(problem).analyze(pinned)


def score_solution(solution: Solution, config: Optional[ScoringConfig] = None) -> Dict:
    """Tool wrapper: Score a solution with its breakdown."""
    pinned = [pf.feature.name for pf in solution.planned_features if pf.frozen]
    report = DependencyAnalyzer(solution.problem).analyze(pinned)
    scorer = SolutionScorer(solution.problem, report.eligible, config)
    return scorer.explain(solution.planned_features)


def validate_solution(solution: Solution) -> Dict:
    """Tool wrapper: Validate solution against all constraints."""
    validator = ConstraintValidator(solution.problem)
    is_valid, violations, breakdown = validator.validate(solution)
    return {
        'valid': is_valid,
        'violations': violations,
        'breakdown': breakdown
    }


def analyze_plan(solution: Solution) -> Dict:
    """Tool wrapper: Explain unplanned features and employee utilization."""
    return PlanAnalyzer(solution.problem).analyze(solution)
