"""
Configuration Management for the Release Planner

Centralized configuration with validation and environment support.
"""

import json
import os
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict, field

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _default_move_weights() -> Dict[str, float]:
    return {
        'assign': 3.0,
        'reassign': 2.0,
        'swap': 2.0,
        'unassign': 1.0,
        'reorder': 2.0,
        'ruin_recreate': 1.0,
    }


@dataclass
class SearchConfig:
    """Local search budget and acceptance parameters"""
    max_iterations: int = 2000
    time_limit_seconds: float = 10.0
    unimproved_iterations_limit: int = 0  # 0 disables the stagnation stop
    late_acceptance_size: int = 50
    random_seed: int = 0
    parallel_workers: int = 1
    move_weights: Dict[str, float] = field(default_factory=_default_move_weights)


@dataclass
class ScoringConfig:
    """Weights of the optimization objective"""
    # Minimum cost of leaving one eligible feature unplanned, on top of its priority weight
    # (raised so that planned count always dominates priority)
    unplanned_weight: int = 10


@dataclass
class MonitoringConfig:
    """Logging and search monitoring configuration"""
    enable_monitoring: bool = True
    log_directory: str = "logs"
    save_session_logs: bool = False
    log_level: str = "INFO"
    log_to_file: bool = False


@dataclass
class PlannerConfig:
    """Complete configuration for the release planner"""
    search: SearchConfig = field(default_factory=SearchConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    config_file: str = "config/planner_config.json"


class ConfigManager:
    """Manages configuration loading, validation, and environment overrides"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or "config/planner_config.json"
        self.config = self._load_config()

    def _load_config(self) -> PlannerConfig:
        """Load configuration from file with environment overrides"""
        # Start with defaults
        config_dict = self._get_default_config()

        # Load from file if exists
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    file_config = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Could not parse config file {self.config_file}: {e}")
            config_dict = self._merge_configs(config_dict, file_config)

        # Apply environment overrides
        config_dict = self._apply_env_overrides(config_dict)

        config_dict["config_file"] = self.config_file
        return self._dict_to_config(config_dict)

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration as dictionary"""
        return asdict(PlannerConfig())

    def _merge_configs(self, base: Dict, override: Dict) -> Dict:
        """Recursively merge configuration dictionaries"""
        merged = base.copy()

        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def _apply_env_overrides(self, config_dict: Dict) -> Dict:
        """Apply environment variable overrides"""
        # Search budget
        if "RELEASE_PLANNER_MAX_ITERATIONS" in os.environ:
            config_dict.setdefault("search", {})["max_iterations"] = int(os.environ["RELEASE_PLANNER_MAX_ITERATIONS"])

        if "RELEASE_PLANNER_TIME_LIMIT" in os.environ:
            config_dict.setdefault("search", {})["time_limit_seconds"] = float(os.environ["RELEASE_PLANNER_TIME_LIMIT"])

        if "RELEASE_PLANNER_RANDOM_SEED" in os.environ:
            config_dict.setdefault("search", {})["random_seed"] = int(os.environ["RELEASE_PLANNER_RANDOM_SEED"])

        if "RELEASE_PLANNER_PARALLEL_WORKERS" in os.environ:
            config_dict.setdefault("search", {})["parallel_workers"] = int(os.environ["RELEASE_PLANNER_PARALLEL_WORKERS"])

        # Monitoring configuration
        if "RELEASE_PLANNER_DISABLE_MONITORING" in os.environ:
            config_dict.setdefault("monitoring", {})["enable_monitoring"] = False

        if "RELEASE_PLANNER_LOG_DIR" in os.environ:
            config_dict.setdefault("monitoring", {})["log_directory"] = os.environ["RELEASE_PLANNER_LOG_DIR"]

        if "RELEASE_PLANNER_LOG_LEVEL" in os.environ:
            config_dict.setdefault("monitoring", {})["log_level"] = os.environ["RELEASE_PLANNER_LOG_LEVEL"].upper()

        return config_dict

    def _dict_to_config(self, config_dict: Dict) -> PlannerConfig:
        """Convert dictionary to typed configuration object"""
        try:
            return PlannerConfig(
                search=SearchConfig(**config_dict.get("search", {})),
                scoring=ScoringConfig(**config_dict.get("scoring", {})),
                monitoring=MonitoringConfig(**config_dict.get("monitoring", {})),
                config_file=config_dict.get("config_file", self.config_file)
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}")

    def save_config(self, config_file: Optional[str] = None) -> str:
        """Save current configuration to file"""
        file_path = config_file or self.config_file

        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(file_path, 'w') as f:
            json.dump(asdict(self.config), f, indent=2)

        return file_path

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        return validate_config(self.config)

    def print_config_summary(self):
        """Print human-readable configuration summary"""
        search = self.config.search
        print("\n" + "=" * 60)
        print("RELEASE PLANNER CONFIGURATION")
        print("=" * 60)

        print("\nSEARCH:")
        print(f"  Max iterations: {search.max_iterations}")
        print(f"  Time limit: {search.time_limit_seconds}s")
        print(f"  Late acceptance size: {search.late_acceptance_size}")
        print(f"  Random seed: {search.random_seed}")
        print(f"  Parallel workers: {search.parallel_workers}")

        print("\nSCORING:")
        print(f"  Unplanned feature weight: {self.config.scoring.unplanned_weight}")

        print("\nMONITORING:")
        print(f"  Enabled: {self.config.monitoring.enable_monitoring}")
        print(f"  Log level: {self.config.monitoring.log_level}")
        print(f"  Log directory: {self.config.monitoring.log_directory}")

        issues = self.validate_config()
        if issues:
            print("\nCONFIGURATION ISSUES:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print("\nConfiguration is valid")

        print("=" * 60)


def validate_config(config: PlannerConfig) -> List[str]:
    """Return the list of problems with a configuration (empty when valid)"""
    issues = []
    search = config.search

    if search.max_iterations < 0:
        issues.append("max_iterations must not be negative")

    if search.time_limit_seconds <= 0:
        issues.append("time_limit_seconds must be positive")

    if search.unimproved_iterations_limit < 0:
        issues.append("unimproved_iterations_limit must not be negative")

    if search.late_acceptance_size <= 0:
        issues.append("late_acceptance_size must be positive")

    if search.parallel_workers <= 0:
        issues.append("parallel_workers must be positive")

    if any(w < 0 for w in search.move_weights.values()):
        issues.append("All move weights must be non-negative")

    if not any(w > 0 for w in search.move_weights.values()):
        issues.append("At least one move weight must be positive")

    if config.scoring.unplanned_weight < 0:
        issues.append("unplanned_weight must be non-negative")

    if config.monitoring.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        issues.append(f"Unknown log level {config.monitoring.log_level}")

    return issues


# Convenience function for easy access
def load_config(config_file: Optional[str] = None) -> PlannerConfig:
    """Load and return planner configuration"""
    manager = ConfigManager(config_file)
    return manager.config
