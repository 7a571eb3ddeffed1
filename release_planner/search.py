"""
Release Planner - Search Engine

ScheduleGenerator builds a plan in two phases:

1. Construction - greedy, features taken in dependency order (most important
   first), each given to the skilled employee that finishes it earliest
2. Local search - late acceptance hill climbing over six moves
   (assign, reassign, swap, unassign, reorder, ruin and recreate),
   lexicographic score

Begin and end hours are never searched directly. A state only says which
employee does which feature and in which order features are dispatched; the
decoder turns that into hours, starting every feature at the earliest gap of
its employee's timeline after all of its predecessors have ended. Frozen
entries are fixed intervals on those timelines and never part of a state.
"""

from typing import Dict, List, Optional, Tuple
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
import bisect
import heapq
import logging
import random
import time

from .config import PlannerConfig
from .entities import (
    UNASSIGNED, Assigned, Employee, Frozen, PlannedFeature, Problem, Score,
    Slot, Solution, SolveStatus, Unassigned,
)
from .monitoring import ScoreTracker, SearchMonitor
from .tools import EPSILON, DependencyAnalyzer, SolutionScorer

logger = logging.getLogger(__name__)


class SearchState:
    """Movable slots of the eligible features plus their dispatch order. Copied, never shared."""

    __slots__ = ('slots', 'order')

    def __init__(self, slots: Dict[str, Slot], order: List[str]):
        self.slots = slots
        self.order = order

    def copy(self) -> "SearchState":
        return SearchState(dict(self.slots), list(self.order))

    def assigned(self) -> Dict[str, Employee]:
        return {name: slot.employee for name, slot in self.slots.items() if isinstance(slot, Assigned)}

    def unassigned(self) -> List[str]:
        return [name for name, slot in self.slots.items() if isinstance(slot, Unassigned)]

    def is_movable(self, name: str) -> bool:
        return isinstance(self.slots.get(name), (Unassigned, Assigned))


# Moves. Each one names the features it touches; a move touching anything but
# a movable slot (a frozen or excluded feature) is rejected before scoring.

class Move:
    kind = "move"

    @property
    def targets(self) -> Tuple[str, ...]:
        raise NotImplementedError

    def is_doable(self, state: SearchState) -> bool:
        return all(state.is_movable(name) for name in self.targets)

    def apply(self, state: SearchState, generator: "ScheduleGenerator") -> SearchState:
        raise NotImplementedError


class AssignMove(Move):
    kind = "assign"

    def __init__(self, name: str, employee: Employee):
        self.name = name
        self.employee = employee

    @property
    def targets(self):
        return (self.name,)

    def apply(self, state, generator):
        new_state = state.copy()
        new_state.slots[self.name] = Assigned(self.employee)
        return new_state


class ReassignMove(AssignMove):
    kind = "reassign"


class SwapMove(Move):
    kind = "swap"

    def __init__(self, first: str, second: str):
        self.first = first
        self.second = second

    @property
    def targets(self):
        return (self.first, self.second)

    def apply(self, state, generator):
        new_state = state.copy()
        first, second = state.slots[self.first], state.slots[self.second]
        new_state.slots[self.first] = Assigned(second.employee)
        new_state.slots[self.second] = Assigned(first.employee)
        return new_state


class UnassignMove(Move):
    """Unassigns a feature and, transitively, its planned dependents."""
    kind = "unassign"

    def __init__(self, name: str):
        self.name = name

    @property
    def targets(self):
        return (self.name,)

    def apply(self, state, generator):
        new_state = state.copy()
        pending = [self.name]
        while pending:
            current = pending.pop()
            if isinstance(new_state.slots.get(current), Assigned):
                new_state.slots[current] = UNASSIGNED
                pending.extend(generator.dependents.get(current, ()))
        return new_state


class ReorderMove(Move):
    """Swaps the dispatch positions of two features."""
    kind = "reorder"

    def __init__(self, first: str, second: str):
        self.first = first
        self.second = second

    @property
    def targets(self):
        return (self.first, self.second)

    def apply(self, state, generator):
        new_state = state.copy()
        i, j = new_state.order.index(self.first), new_state.order.index(self.second)
        new_state.order[i], new_state.order[j] = new_state.order[j], new_state.order[i]
        return new_state


class RuinRecreateMove(Move):
    """
    Unassigns several features (with their dependents), then greedily
    re-plans every unassigned feature: the ones in `order` first, the rest
    in dispatch order.
    """
    kind = "ruin_recreate"

    def __init__(self, names: List[str], order: List[str]):
        self.names = tuple(names)
        self.order = list(order)

    @property
    def targets(self):
        return self.names

    def apply(self, state, generator):
        new_state = state
        for name in self.names:
            new_state = UnassignMove(name).apply(new_state, generator)

        tried = set()
        for name in self.order + list(generator.report.order):
            if name in tried or not isinstance(new_state.slots.get(name), Unassigned):
                continue
            tried.add(name)
            candidate = generator._try_assign(new_state, name, generator.skilled[name])
            if candidate is not None:
                new_state = candidate[0]
        return new_state


def _earliest_gap(timeline: List[Tuple[float, float]], ready: float, duration: float) -> float:
    """Earliest start >= ready where `duration` hours fit between the busy intervals."""
    start = ready
    for begin, end in timeline:
        if end <= start + EPSILON:
            continue
        if begin >= start + duration - EPSILON:
            break
        start = max(start, end)
    return start


class ScheduleGenerator:
    """
    Local search engine for one problem.

    `pinned` holds frozen planned features (keyed by feature name) carried
    over from a prior solution: they keep their employee and hours, consume
    capacity and release their dependents, but no move ever targets them.
    """

    def __init__(self, problem: Problem, config: Optional[PlannerConfig] = None,
                 pinned: Optional[List[PlannedFeature]] = None):
        self.problem = problem
        self.config = config or PlannerConfig()
        self.search_config = self.config.search

        self.pinned: Dict[str, PlannedFeature] = {}
        for pf in pinned or []:
            self.pinned[pf.feature.name] = pf if pf.frozen else pf.freeze()
        self.frozen: Dict[str, Frozen] = {name: pf.to_frozen() for name, pf in self.pinned.items()}

        self.report = DependencyAnalyzer(problem).analyze(pinned=self.pinned.keys())
        self.features = problem.feature_index
        self.scorer = SolutionScorer(problem, self.report.eligible, self.config.scoring)

        self.skilled: Dict[str, List[Employee]] = {
            name: [e for e in problem.employees if e.can_do(self.features[name])]
            for name in self.report.eligible
        }
        self.capacity = {e.name: problem.capacity(e) for e in problem.employees}

        eligible = set(self.report.eligible)
        self.dependents: Dict[str, List[str]] = defaultdict(list)
        for name in self.report.eligible:
            for previous in set(self.features[name].previous_features):
                if previous in eligible:
                    self.dependents[previous].append(name)

        self._frozen_hours = defaultdict(float)
        self._frozen_timelines: Dict[str, List[Tuple[float, float]]] = defaultdict(list)
        for slot in self.frozen.values():
            self._frozen_hours[slot.employee.name] += slot.end_hour - slot.begin_hour
            self._frozen_timelines[slot.employee.name].append((slot.begin_hour, slot.end_hour))
        for timeline in self._frozen_timelines.values():
            timeline.sort()

        self.lower_bound = self._makespan_lower_bound()
        self.clock = time.monotonic
        self.random = random.Random(self.search_config.random_seed)
        self.monitor = SearchMonitor(self.config.monitoring.log_directory)
        self.tracker = ScoreTracker()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def generate(self, seed: Optional[Dict[str, Employee]] = None) -> Solution:
        """
        Plan the eligible features and return the best solution found.

        `seed` maps feature names to employees to try first (warm start); an
        entry is kept only if it is still doable and feasible.
        """
        logger.info(
            "Planning %d eligible feature(s) on %d employee(s) (%d excluded, %d frozen)",
            len(self.report.eligible), len(self.problem.employees),
            len(self.report.excluded), len(self.pinned),
        )
        deadline = self.clock() + self.search_config.time_limit_seconds

        self.monitor.start_phase('construction')
        state = SearchState({name: UNASSIGNED for name in self.report.order}, list(self.report.order))
        if seed:
            state = self._apply_seed(state, seed, deadline)
        state = self._construct(state, deadline)
        self.monitor.end_phase('construction')

        self.monitor.start_phase('local_search')
        best_state, best_planned, best_score = self._local_search(state, deadline)
        self.monitor.end_phase('local_search')

        if not best_score.is_feasible:
            status = SolveStatus.INCOMPLETE
        elif self._is_optimal(best_score):
            status = SolveStatus.OPTIMAL
        else:
            status = SolveStatus.FEASIBLE

        logger.info(
            "Search finished (%s): %d planned, score %s, %s",
            self.monitor.metrics['termination_reason'], len(best_planned), best_score, status.value,
        )
        if self.config.monitoring.enable_monitoring and self.config.monitoring.save_session_logs:
            log_file = self.monitor.save_session_log()
            logger.debug("Search session log saved to %s", log_file)

        return Solution(
            problem=self.problem,
            planned_features=best_planned,
            score=best_score,
            status=status,
            excluded=tuple(self.report.excluded),
        )

    def decode(self, state: SearchState) -> List[PlannedFeature]:
        """Turn a state into planned features with concrete hours. Frozen entries come first."""
        assigned = state.assigned()
        position = {name: i for i, name in enumerate(state.order)}
        timelines = {name: list(timeline) for name, timeline in self._frozen_timelines.items()}
        ends = {name: slot.end_hour for name, slot in self.frozen.items()}

        indegree = {}
        for name in assigned:
            indegree[name] = sum(1 for p in set(self.features[name].previous_features) if p in assigned)
        heap = [(position[name], name) for name, count in indegree.items() if count == 0]
        heapq.heapify(heap)

        planned = list(self.pinned.values())
        while heap:
            _, name = heapq.heappop(heap)
            feature = self.features[name]
            employee = assigned[name]
            ready = max((ends[p] for p in feature.previous_features if p in ends), default=0.0)
            timeline = timelines.setdefault(employee.name, [])
            begin = _earliest_gap(timeline, ready, feature.duration)
            end = begin + feature.duration
            bisect.insort(timeline, (begin, end))
            ends[name] = end
            planned.append(PlannedFeature(feature, employee, begin, end))

            for child in self.dependents.get(name, ()):
                if child in indegree:
                    indegree[child] -= 1
                    if indegree[child] == 0:
                        heapq.heappush(heap, (position[child], child))

        return planned

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    def _apply_seed(self, state: SearchState, seed: Dict[str, Employee], deadline: float) -> SearchState:
        kept = 0
        for name in self.report.order:
            employee = seed.get(name)
            if employee is None or self.clock() > deadline:
                continue
            candidate = self._try_assign(state, name, [employee])
            if candidate is not None:
                state = candidate[0]
                kept += 1
        logger.debug("Warm start kept %d of %d seeded assignment(s)", kept, len(seed))
        return state

    def _construct(self, state: SearchState, deadline: float) -> SearchState:
        for name in self.report.order:
            if self.clock() > deadline:
                logger.warning("Time limit reached during construction")
                break
            if not isinstance(state.slots[name], Unassigned):
                continue
            candidate = self._try_assign(state, name, self.skilled[name])
            if candidate is not None:
                state = candidate[0]
        return state

    def _try_assign(self, state: SearchState, name: str,
                    employees: List[Employee]) -> Optional[Tuple[SearchState, float]]:
        """Best feasible assignment of `name` among `employees`: earliest end hour wins."""
        if not self._predecessors_planned(state, name):
            return None

        feature = self.features[name]
        load = self._load(state)
        best = None
        for employee in employees:
            if employee.name not in self.capacity or not employee.can_do(feature):
                continue
            if load[employee.name] + feature.duration > self.capacity[employee.name] + EPSILON:
                continue
            move = AssignMove(name, employee)
            candidate = move.apply(state, self)
            planned = self.decode(candidate)
            if not self.scorer.score(planned).is_feasible:
                continue
            end = next(pf.end_hour for pf in planned if pf.feature.name == name and not pf.frozen)
            if best is None or end < best[1] - EPSILON:
                best = (candidate, end)
        return best

    # ------------------------------------------------------------------ #
    # Local search
    # ------------------------------------------------------------------ #

    def _local_search(self, state: SearchState, deadline: float):
        current = state
        current_planned = self.decode(current)
        current_score = self.scorer.score(current_planned)
        best, best_planned, best_score = current, current_planned, current_score
        self.monitor.record_best(best_score)
        self.tracker.add_result(0, best_score, len(best_planned))

        workers = max(1, self.search_config.parallel_workers)
        late = [current_score] * max(1, self.search_config.late_acceptance_size)
        unimproved = 0
        reason = 'iteration_limit'

        executor = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
        try:
            for iteration in range(self.search_config.max_iterations):
                if self._is_optimal(best_score):
                    reason = 'optimal'
                    break
                if self.clock() > deadline:
                    reason = 'time_limit'
                    break
                limit = self.search_config.unimproved_iterations_limit
                if limit and unimproved >= limit:
                    reason = 'unimproved_limit'
                    break

                moves = []
                for _ in range(workers):
                    move = self._select_move(current)
                    if move is None:
                        continue
                    if not move.is_doable(current):
                        self.monitor.record_frozen_rejection()
                        continue
                    moves.append(move)

                if not moves:
                    self.monitor.record_iteration(0, False)
                    unimproved += 1
                    continue

                if executor is not None:
                    results = list(executor.map(lambda m: self._evaluate(current, m), moves))
                else:
                    results = [self._evaluate(current, m) for m in moves]

                candidate, candidate_planned, candidate_score = results[0]
                for result in results[1:]:
                    if result[2] > candidate_score:
                        candidate, candidate_planned, candidate_score = result

                # Late acceptance: compare with the current score and the score from L steps ago
                slot = iteration % len(late)
                accepted = candidate_score >= current_score or candidate_score >= late[slot]
                if accepted:
                    current, current_planned, current_score = candidate, candidate_planned, candidate_score
                late[slot] = current_score
                self.monitor.record_iteration(len(moves), accepted)

                if current_score > best_score:
                    best, best_planned, best_score = current, current_planned, current_score
                    unimproved = 0
                    self.monitor.record_best(best_score)
                    self.tracker.add_result(iteration + 1, best_score, len(best_planned))
                    logger.debug("Iteration %d: new best score %s", iteration + 1, best_score)
                else:
                    unimproved += 1
        finally:
            if executor is not None:
                executor.shutdown(wait=True)

        if self._is_optimal(best_score):
            reason = 'optimal'
        self.monitor.record_termination(reason)
        return best, best_planned, best_score

    def _evaluate(self, state: SearchState, move: Move) -> Tuple[SearchState, List[PlannedFeature], Score]:
        new_state = move.apply(state, self)
        planned = self.decode(new_state)
        return new_state, planned, self.scorer.score(planned)

    def _select_move(self, state: SearchState) -> Optional[Move]:
        weights = self.search_config.move_weights
        kinds = [k for k in ('assign', 'reassign', 'swap', 'unassign', 'reorder', 'ruin_recreate')
                 if weights.get(k, 0) > 0]
        if not kinds:
            return None
        kind = self.random.choices(kinds, weights=[weights[k] for k in kinds])[0]

        assigned = sorted(state.assigned())
        if kind == 'assign':
            return self._select_assign(state)
        if not assigned:
            return None
        if kind == 'reassign':
            return self._select_reassign(state, self.random.choice(assigned))
        if kind == 'unassign':
            return UnassignMove(self.random.choice(assigned))
        if kind == 'ruin_recreate':
            names = self.random.sample(assigned, self.random.randint(1, len(assigned)))
            order = state.unassigned()
            self.random.shuffle(order)
            return RuinRecreateMove(names, order)
        if len(assigned) < 2:
            return None
        first, second = self.random.sample(assigned, 2)
        if kind == 'swap':
            return self._select_swap(state, first, second)
        return ReorderMove(first, second)

    def _select_assign(self, state: SearchState) -> Optional[Move]:
        candidates = [name for name in state.unassigned() if self._predecessors_planned(state, name)]
        if not candidates:
            return None
        name = self.random.choice(candidates)
        load = self._load(state)
        duration = self.features[name].duration
        employees = [e for e in self.skilled[name]
                     if load[e.name] + duration <= self.capacity[e.name] + EPSILON]
        if not employees:
            return None
        return AssignMove(name, self.random.choice(employees))

    def _select_reassign(self, state: SearchState, name: str) -> Optional[Move]:
        current = state.slots[name].employee
        load = self._load(state)
        duration = self.features[name].duration
        employees = [e for e in self.skilled[name]
                     if e.name != current.name and load[e.name] + duration <= self.capacity[e.name] + EPSILON]
        if not employees:
            return None
        return ReassignMove(name, self.random.choice(employees))

    def _select_swap(self, state: SearchState, first: str, second: str) -> Optional[Move]:
        first_employee = state.slots[first].employee
        second_employee = state.slots[second].employee
        if first_employee.name == second_employee.name:
            return None
        first_feature, second_feature = self.features[first], self.features[second]
        if not (second_employee.can_do(first_feature) and first_employee.can_do(second_feature)):
            return None

        load = self._load(state)
        delta = first_feature.duration - second_feature.duration
        if load[second_employee.name] + delta > self.capacity[second_employee.name] + EPSILON:
            return None
        if load[first_employee.name] - delta > self.capacity[first_employee.name] + EPSILON:
            return None
        return SwapMove(first, second)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _predecessors_planned(self, state: SearchState, name: str) -> bool:
        for previous in self.features[name].previous_features:
            if previous in self.frozen:
                continue
            if not isinstance(state.slots.get(previous), Assigned):
                return False
        return True

    def _load(self, state: SearchState) -> Dict[str, float]:
        load = defaultdict(float, self._frozen_hours)
        for name, employee in state.assigned().items():
            load[employee.name] += self.features[name].duration
        return load

    def _makespan_lower_bound(self) -> float:
        """Critical path of the eligible features, frozen end hours included."""
        finish = {name: slot.end_hour for name, slot in self.frozen.items()}
        bound = max(finish.values(), default=0.0)
        for name in self.report.order:
            feature = self.features[name]
            start = max((finish[p] for p in feature.previous_features if p in finish), default=0.0)
            finish[name] = start + feature.duration
            bound = max(bound, finish[name])
        return bound

    def _is_optimal(self, score: Score) -> bool:
        return score.is_feasible and score.medium == 0 and -score.soft <= self.lower_bound + EPSILON


def generate_schedule(problem: Problem, config: Optional[PlannerConfig] = None,
                      pinned: Optional[List[PlannedFeature]] = None,
                      seed: Optional[Dict[str, Employee]] = None) -> Solution:
    """Tool wrapper: Generate a schedule for a problem."""
    return ScheduleGenerator(problem, config, pinned).generate(seed)
