"""
Search Monitoring for the Release Planner

Tracks how a planning run progresses and sets up the package logger.
"""

import json
import logging
import os
import sys
import time
from datetime import datetime
from typing import Dict, List, Optional

from .config import MonitoringConfig
from .entities import Score

LOGGER_NAME = "release_planner"


def configure_logging(config: Optional[MonitoringConfig] = None) -> logging.Logger:
    """Attach handlers to the package logger (once) according to the monitoring config"""
    config = config or MonitoringConfig()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    # Prevent duplicate handlers if called multiple times
    if not logger.handlers:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(stream_handler)

        if config.log_to_file:
            os.makedirs(config.log_directory, exist_ok=True)
            log_file = os.path.join(config.log_directory, "release_planner.log")
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ))
            logger.addHandler(file_handler)

    return logger


class SearchMonitor:
    """Monitors and logs metrics of one search run"""

    def __init__(self, log_dir: str = "logs"):
        self.log_dir = log_dir
        self.session_start = datetime.now()
        self._started_at = time.monotonic()
        self._phase_started_at: Dict[str, float] = {}
        self.metrics = {
            'phase_times': {},
            'iterations': 0,
            'moves_evaluated': 0,
            'moves_accepted': 0,
            'moves_rejected_frozen': 0,
            'improvements': 0,
            'best_score': None,
            'termination_reason': None,
        }

    def start_phase(self, phase: str):
        """Start timing a phase (construction, local_search...)"""
        self._phase_started_at[phase] = time.monotonic()

    def end_phase(self, phase: str) -> float:
        """End timing a phase and record its duration"""
        duration = time.monotonic() - self._phase_started_at.pop(phase, self._started_at)
        self.metrics['phase_times'][phase] = round(duration, 4)
        return duration

    def record_iteration(self, evaluated: int, accepted: bool):
        self.metrics['iterations'] += 1
        self.metrics['moves_evaluated'] += evaluated
        if accepted:
            self.metrics['moves_accepted'] += 1

    def record_frozen_rejection(self):
        self.metrics['moves_rejected_frozen'] += 1

    def record_best(self, score: Score):
        """Record a new best score"""
        self.metrics['improvements'] += 1
        self.metrics['best_score'] = str(score)

    def record_termination(self, reason: str):
        self.metrics['termination_reason'] = reason

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._started_at

    def get_summary(self) -> Dict:
        """Get search summary"""
        elapsed = self.elapsed_seconds
        iterations = self.metrics['iterations']

        return {
            'elapsed_seconds': round(elapsed, 3),
            'iterations': iterations,
            'moves_evaluated': self.metrics['moves_evaluated'],
            'moves_accepted': self.metrics['moves_accepted'],
            'moves_rejected_frozen': self.metrics['moves_rejected_frozen'],
            'acceptance_rate': round(self.metrics['moves_accepted'] / iterations, 3) if iterations else 0.0,
            'improvements': self.metrics['improvements'],
            'best_score': self.metrics['best_score'],
            'termination_reason': self.metrics['termination_reason'],
            'phase_times': dict(self.metrics['phase_times']),
            'iterations_per_second': round(iterations / elapsed, 1) if elapsed > 0 else 0.0,
        }

    def save_session_log(self) -> str:
        """Save session metrics to file"""
        os.makedirs(self.log_dir, exist_ok=True)
        timestamp = self.session_start.strftime("%Y%m%d_%H%M%S_%f")
        log_file = os.path.join(self.log_dir, f"search_{timestamp}.json")

        summary = self.get_summary()
        summary['session_start'] = self.session_start.isoformat()
        summary['session_end'] = datetime.now().isoformat()

        with open(log_file, 'w') as f:
            json.dump(summary, f, indent=2)

        return log_file


class ScoreTracker:
    """Tracks best-score improvements over the iterations of a run"""

    def __init__(self):
        self.history: List[Dict] = []

    def add_result(self, iteration: int, score: Score, planned: int):
        self.history.append({
            'iteration': iteration,
            'hard': score.hard,
            'medium': score.medium,
            'soft': score.soft,
            'planned': planned,
        })

    def get_improvement_trend(self) -> Dict:
        """Analyze improvement trend"""
        if len(self.history) < 2:
            return {"status": "insufficient_data"}

        first, last = self.history[0], self.history[-1]
        return {
            'status': 'analyzed',
            'hard_trend': last['hard'] - first['hard'],
            'medium_trend': last['medium'] - first['medium'],
            'soft_trend': last['soft'] - first['soft'],
            'planned_trend': last['planned'] - first['planned'],
            'improvements': len(self.history),
            'last_improvement_iteration': last['iteration'],
        }
