"""
Tests for the domain model.
"""

import unittest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from release_planner.entities import (
    Employee, Feature, PlannedFeature, PriorityLevel, Problem, Score, Skill,
    Solution, SolveStatus, UnknownFeatureError, UNASSIGNED, Unassigned,
)
from tests.fixtures import JAVA, PYTHON, SAMPLE_EMPLOYEES, SAMPLE_FEATURES, planned, sample_problem


class TestPriorityLevel(unittest.TestCase):
    """Test cases for PriorityLevel."""

    def test_level_one_weighs_most(self):
        self.assertEqual(PriorityLevel.ONE.weight, 5)
        self.assertEqual(PriorityLevel.FIVE.weight, 1)
        self.assertGreater(PriorityLevel.TWO.weight, PriorityLevel.THREE.weight)

    def test_unknown_level_counts_as_lowest(self):
        self.assertEqual(PriorityLevel.from_level(0), PriorityLevel.FIVE)
        self.assertEqual(PriorityLevel.from_level(42), PriorityLevel.FIVE)
        self.assertEqual(PriorityLevel.from_level(2), PriorityLevel.TWO)


class TestEmployeeAndFeature(unittest.TestCase):
    """Test cases for Employee and Feature values."""

    def test_skills_accept_names(self):
        employee = Employee("dan", 10.0, ["java", PYTHON])
        self.assertEqual(employee.skills, frozenset({JAVA, PYTHON}))

    def test_can_do_requires_every_skill(self):
        feature = Feature("f", 2.0, required_skills=[JAVA, PYTHON])
        self.assertTrue(Employee("a", 10.0, [JAVA, PYTHON]).can_do(feature))
        self.assertFalse(Employee("b", 10.0, [JAVA]).can_do(feature))
        self.assertTrue(Employee("c", 10.0).can_do(Feature("g", 1.0)))

    def test_previous_features_accept_features(self):
        first = Feature("first", 1.0)
        second = Feature("second", 1.0, previous_features=[first])
        self.assertEqual(second.previous_features, ("first",))

    def test_self_dependency(self):
        self.assertTrue(Feature("loop", 1.0, previous_features=["loop"]).depends_on_itself)
        self.assertFalse(Feature("plain", 1.0).depends_on_itself)

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            Feature("f", 0.0)
        with self.assertRaises(ValueError):
            Employee("e", -1.0)

    def test_identity_by_name(self):
        self.assertEqual(Employee("a", 10.0, [JAVA]), Employee("a", 20.0))
        self.assertEqual(hash(Feature("f", 1.0)), hash(Feature("f", 5.0)))


class TestProblem(unittest.TestCase):
    """Test cases for Problem."""

    def test_horizon_and_capacity(self):
        problem = sample_problem(nb_weeks=1, hours_per_week=25.0)
        self.assertEqual(problem.horizon_hours, 25.0)
        # alice has 40h but the horizon caps her at 25h
        self.assertEqual(problem.capacity(SAMPLE_EMPLOYEES[0]), 25.0)
        self.assertEqual(problem.capacity(SAMPLE_EMPLOYEES[2]), 20.0)

    def test_unknown_reference_raises(self):
        with self.assertRaises(UnknownFeatureError) as ctx:
            Problem([Feature("a", 1.0, previous_features=["ghost"])], [])
        self.assertEqual(ctx.exception.reference, "ghost")
        self.assertIsInstance(ctx.exception, ValueError)

    def test_duplicate_names_raise(self):
        with self.assertRaises(ValueError):
            Problem([Feature("a", 1.0), Feature("a", 2.0)], [])
        with self.assertRaises(ValueError):
            Problem([], [Employee("e", 1.0), Employee("e", 2.0)])

    def test_invalid_horizon_raises(self):
        with self.assertRaises(ValueError):
            Problem([], [], nb_weeks=0)
        with self.assertRaises(ValueError):
            Problem([], [], hours_per_week=0)

    def test_dependents(self):
        dependents = sample_problem().dependents()
        self.assertEqual(dependents["login"], ["reports"])
        self.assertEqual(dependents["reports"], ["export"])
        self.assertEqual(dependents["audit"], [])


class TestPlannedFeatureAndSolution(unittest.TestCase):
    """Test cases for PlannedFeature and Solution."""

    def setUp(self):
        self.problem = sample_problem()
        self.alice = SAMPLE_EMPLOYEES[0]
        self.login = SAMPLE_FEATURES[0]
        self.search = SAMPLE_FEATURES[3]

    def test_end_hour_defaults_to_duration(self):
        pf = PlannedFeature(self.login, self.alice, 4.0)
        self.assertEqual(pf.end_hour, 12.0)
        self.assertEqual(pf.hours, 8.0)

    def test_overlaps(self):
        first = planned(self.login, self.alice, 0.0)
        self.assertTrue(first.overlaps(planned(self.search, self.alice, 7.0)))
        self.assertFalse(first.overlaps(planned(self.search, self.alice, 8.0)))

    def test_duplicate_planned_feature_rejected(self):
        with self.assertRaises(ValueError):
            Solution(self.problem, [planned(self.login, self.alice, 0.0), planned(self.login, self.alice, 8.0)])

    def test_solution_queries(self):
        solution = Solution(self.problem, [
            planned(self.login, self.alice, 0.0, frozen=True),
            planned(self.search, self.alice, 8.0),
        ])
        self.assertTrue(solution.is_planned("login"))
        self.assertFalse(solution.is_planned("audit"))
        self.assertEqual(solution.makespan, 18.0)
        self.assertEqual(solution.employee_hours("alice"), 18.0)
        self.assertEqual([pf.feature.name for pf in solution.frozen_features()], ["login"])
        self.assertEqual({f.name for f in solution.unplanned_features()}, {"reports", "export", "audit"})

    def test_freeze_and_copy_do_not_share_entries(self):
        solution = Solution(self.problem, [planned(self.login, self.alice, 0.0)])
        frozen = solution.freeze()
        self.assertTrue(frozen.planned_features[0].frozen)
        self.assertFalse(solution.planned_features[0].frozen)

        copy = solution.copy()
        copy.planned_features[0].begin_hour = 3.0
        self.assertEqual(solution.planned_features[0].begin_hour, 0.0)

    def test_empty_solution(self):
        solution = Solution(self.problem)
        self.assertEqual(solution.makespan, 0.0)
        self.assertTrue(solution.is_feasible)
        self.assertEqual(len(solution.unplanned_features()), len(SAMPLE_FEATURES))


class TestScoreAndSlots(unittest.TestCase):
    """Test cases for Score ordering and decision variable states."""

    def test_hard_level_dominates(self):
        self.assertGreater(Score(0, -100, -500.0), Score(-1, 0, 0.0))
        self.assertGreater(Score(0, -5, -500.0), Score(0, -6, 0.0))
        self.assertGreater(Score(0, -5, -10.0), Score(0, -5, -11.0))

    def test_feasibility(self):
        self.assertTrue(Score(0, -3, -2.0).is_feasible)
        self.assertFalse(Score(-1, 0, 0.0).is_feasible)
        self.assertEqual(str(Score(0, -3, -2.0)), "0hard/-3medium/-2soft")

    def test_unassigned_is_singleton(self):
        self.assertIs(Unassigned(), UNASSIGNED)

    def test_status_values(self):
        self.assertEqual(SolveStatus.OPTIMAL.value, "optimal")
        self.assertEqual(SolveStatus("incomplete"), SolveStatus.INCOMPLETE)


if __name__ == '__main__':
    unittest.main()
