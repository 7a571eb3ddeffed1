"""
Release Planner - Entry Points

plan(problem) and replan(problem, prior) are the core contract. ReleasePlanner
bundles them with the validator and analyzer for one configuration, and
solve_request / main wrap everything for JSON payloads.

Run: python -m release_planner request.json -o response.json
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from .config import ConfigManager, PlannerConfig, validate_config
from .entities import Problem, Solution
from .monitoring import configure_logging
from .replan import ReplanController
from .schemas import NextReleaseProblemModel, from_solution, to_prior_solution, to_problem
from .search import ScheduleGenerator
from .tools import ConstraintValidator, PlanAnalyzer

logger = logging.getLogger(__name__)


class ReleasePlanner:
    """
    Plans and replans next-release problems with one configuration.

    Each call is independent: generators, random number generators and
    thread pools live only for the duration of that call.
    """

    def __init__(self, config: Optional[PlannerConfig] = None):
        if config is None:
            config = ConfigManager().config

        issues = validate_config(config)
        if issues:
            raise ValueError(f"Invalid configuration: {'; '.join(issues)}")

        self.config = config
        self.last_summary: Optional[Dict] = None

    def plan(self, problem: Problem) -> Solution:
        """Plan a problem from scratch."""
        generator = ScheduleGenerator(problem, self.config)
        solution = generator.generate()
        self.last_summary = generator.monitor.get_summary()
        return solution

    def replan(self, problem: Problem, prior: Solution, freeze_all: bool = True) -> Solution:
        """Plan a problem around the frozen commitments of a prior solution."""
        controller = ReplanController(self.config)
        solution = controller.replan(problem, prior, freeze_all)
        self.last_summary = controller.last_generator.monitor.get_summary()
        return solution

    def validate(self, solution: Solution) -> Dict:
        is_valid, violations, breakdown = ConstraintValidator(solution.problem).validate(solution)
        return {'valid': is_valid, 'violations': violations, 'breakdown': breakdown}

    def validate_frozen(self, prior: Solution, solution: Solution) -> List[str]:
        return ConstraintValidator(solution.problem).validate_frozen(prior, solution)

    def analyze(self, solution: Solution) -> Dict:
        return PlanAnalyzer(solution.problem).analyze(solution)

    def solve_request(self, payload: Dict) -> Dict:
        """
        Validate a request payload, plan (or replan when it carries a
        previousSolution) and return the response payload.
        """
        request = NextReleaseProblemModel.model_validate(payload)
        problem = to_problem(request)

        if request.previous_solution is not None:
            prior = to_prior_solution(request.previous_solution, problem)
            solution = self.replan(problem, prior)
        else:
            solution = self.plan(problem)

        return from_solution(solution).model_dump(by_alias=True)


def plan(problem: Problem, config: Optional[PlannerConfig] = None) -> Solution:
    """Plan a problem from scratch."""
    return ReleasePlanner(config or PlannerConfig()).plan(problem)


def replan(problem: Problem, prior: Solution, config: Optional[PlannerConfig] = None,
           freeze_all: bool = True) -> Solution:
    """Replan a problem, keeping every entry of the prior solution (or only its frozen ones)."""
    return ReleasePlanner(config or PlannerConfig()).replan(problem, prior, freeze_all)


def solve_request(payload: Dict, config: Optional[PlannerConfig] = None) -> Dict:
    """Request payload in, response payload out."""
    return ReleasePlanner(config or PlannerConfig()).solve_request(payload)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Plan a next release from a JSON request")
    parser.add_argument("request", help="Path to the request JSON file")
    parser.add_argument("-o", "--output", help="Where to write the response (default: stdout)")
    parser.add_argument("--config", help="Path to a planner config JSON file")
    parser.add_argument("--show-config", action="store_true", help="Print the configuration summary")
    args = parser.parse_args(argv)

    manager = ConfigManager(args.config)
    configure_logging(manager.config.monitoring)
    if args.show_config:
        manager.print_config_summary()

    with open(args.request, 'r') as f:
        payload = json.load(f)

    planner = ReleasePlanner(manager.config)
    response = planner.solve_request(payload)
    logger.info("Search summary: %s", planner.last_summary)

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(response, f, indent=2)
        logger.info("Response written to %s", args.output)
    else:
        json.dump(response, sys.stdout, indent=2)
        sys.stdout.write("\n")

    return 0 if response.get('status') != 'incomplete' else 1


if __name__ == "__main__":
    sys.exit(main())
