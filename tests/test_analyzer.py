"""
Tests for the PlanAnalyzer class.
"""

import unittest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from release_planner.entities import Employee, Feature, PriorityLevel, Problem, Skill, Solution
from release_planner.tools import PlanAnalyzer, analyze_plan
from tests.fixtures import JAVA, planned


class TestPlanAnalyzer(unittest.TestCase):
    """Test cases for PlanAnalyzer."""

    def setUp(self):
        """Set up test fixtures."""
        self.dev = Employee("dev", 10.0, [JAVA])
        self.features = [
            Feature("done", 6.0, PriorityLevel.ONE, [JAVA]),
            Feature("rust_port", 4.0, required_skills=[Skill("rust")]),
            Feature("too_big", 8.0),
            Feature("after_big", 1.0, previous_features=["too_big"]),
            Feature("loop", 1.0, previous_features=["loop"]),
            Feature("small", 2.0),
        ]
        self.problem = Problem(self.features, [self.dev], 1, 40.0)
        self.solution = Solution(self.problem, [planned(self.features[0], self.dev, 0.0)])
        self.result = PlanAnalyzer(self.problem).analyze(self.solution)
        self.reasons = {item['feature']: item['reason'] for item in self.result['unplanned']}

    def test_counts(self):
        self.assertEqual(self.result['planned'], 1)
        self.assertEqual(self.result['total_unplanned'], 5)

    def test_unplanned_reasons(self):
        self.assertEqual(self.reasons['rust_port'], 'no_skilled_employee')
        self.assertEqual(self.reasons['too_big'], 'insufficient_capacity')
        self.assertEqual(self.reasons['after_big'], 'blocked_by_unplanned_predecessor')
        self.assertEqual(self.reasons['loop'], 'self_dependency')
        self.assertEqual(self.reasons['small'], 'not_selected')

    def test_utilization(self):
        utilization = self.result['utilization']['dev']
        self.assertEqual(utilization['assigned_hours'], 6.0)
        self.assertEqual(utilization['capacity'], 10.0)
        self.assertEqual(utilization['utilization'], 60.0)

    def test_skill_gap_recommendation(self):
        self.assertEqual(self.result['skill_gaps'], {'rust': 1})
        skills = [r['skill'] for r in self.result['recommendations']]
        self.assertIn('rust', skills)
        # Capacity shortfall is reported without a skill
        self.assertIn(None, skills)

    def test_longer_than_horizon(self):
        problem = Problem([Feature("epic", 50.0)], [Employee("e", 100.0)], 1, 40.0)
        result = analyze_plan(Solution(problem))
        self.assertEqual(result['unplanned'][0]['reason'], 'longer_than_horizon')

    def test_fully_planned(self):
        problem = Problem([self.features[0]], [self.dev])
        result = analyze_plan(Solution(problem, [planned(self.features[0], self.dev, 0.0)]))
        self.assertEqual(result['total_unplanned'], 0)
        self.assertEqual(result['recommendations'], [])


if __name__ == '__main__':
    unittest.main()
