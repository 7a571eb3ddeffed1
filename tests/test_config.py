"""
Tests for configuration loading and validation.
"""

import json
import os
import sys
import tempfile
import unittest
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from release_planner.config import ConfigManager, PlannerConfig, load_config, validate_config


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.missing = os.path.join(self.tmp.name, "missing.json")

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults_without_file(self):
        config = ConfigManager(self.missing).config
        self.assertEqual(config.search.max_iterations, 2000)
        self.assertEqual(config.search.late_acceptance_size, 50)
        self.assertEqual(config.scoring.unplanned_weight, 10)
        self.assertEqual(config.config_file, self.missing)

    def test_file_is_merged_with_defaults(self):
        path = os.path.join(self.tmp.name, "planner.json")
        with open(path, "w") as f:
            json.dump({"search": {"max_iterations": 50, "move_weights": {"swap": 0.0}}}, f)

        config = load_config(path)

        self.assertEqual(config.search.max_iterations, 50)
        self.assertEqual(config.search.time_limit_seconds, 10.0)
        self.assertEqual(config.search.move_weights["swap"], 0.0)
        self.assertEqual(config.search.move_weights["assign"], 3.0)

    def test_env_overrides(self):
        env = {
            "RELEASE_PLANNER_MAX_ITERATIONS": "123",
            "RELEASE_PLANNER_TIME_LIMIT": "2.5",
            "RELEASE_PLANNER_RANDOM_SEED": "99",
            "RELEASE_PLANNER_PARALLEL_WORKERS": "4",
            "RELEASE_PLANNER_LOG_LEVEL": "debug",
            "RELEASE_PLANNER_DISABLE_MONITORING": "1",
        }
        with patch.dict(os.environ, env):
            config = ConfigManager(self.missing).config

        self.assertEqual(config.search.max_iterations, 123)
        self.assertEqual(config.search.time_limit_seconds, 2.5)
        self.assertEqual(config.search.random_seed, 99)
        self.assertEqual(config.search.parallel_workers, 4)
        self.assertEqual(config.monitoring.log_level, "DEBUG")
        self.assertFalse(config.monitoring.enable_monitoring)

    def test_unknown_key_raises(self):
        path = os.path.join(self.tmp.name, "bad.json")
        with open(path, "w") as f:
            json.dump({"search": {"not_a_setting": 1}}, f)
        with self.assertRaises(ValueError):
            ConfigManager(path)

    def test_unparsable_file_raises(self):
        path = os.path.join(self.tmp.name, "broken.json")
        with open(path, "w") as f:
            f.write("{ not json")
        with self.assertRaises(ValueError):
            ConfigManager(path)

    def test_save_and_reload(self):
        manager = ConfigManager(self.missing)
        manager.config.search.random_seed = 5
        path = manager.save_config(os.path.join(self.tmp.name, "nested", "saved.json"))

        self.assertEqual(load_config(path).search.random_seed, 5)

    @patch('builtins.print')
    def test_print_config_summary(self, mock_print):
        ConfigManager(self.missing).print_config_summary()
        printed = " ".join(str(call.args[0]) for call in mock_print.call_args_list if call.args)
        self.assertIn("RELEASE PLANNER CONFIGURATION", printed)
        self.assertIn("Configuration is valid", printed)


class TestValidateConfig(unittest.TestCase):
    """Test cases for validate_config."""

    def test_default_config_is_valid(self):
        self.assertEqual(validate_config(PlannerConfig()), [])

    def test_invalid_values_reported(self):
        config = PlannerConfig()
        config.search.max_iterations = -1
        config.search.time_limit_seconds = 0
        config.search.late_acceptance_size = 0
        config.search.parallel_workers = 0
        config.monitoring.log_level = "LOUD"

        issues = validate_config(config)

        self.assertEqual(len(issues), 5)

    def test_move_weights_checked(self):
        config = PlannerConfig()
        config.search.move_weights = {k: 0.0 for k in config.search.move_weights}
        self.assertIn("At least one move weight must be positive", validate_config(config))

        config.search.move_weights['swap'] = -1.0
        self.assertIn("All move weights must be non-negative", validate_config(config))


if __name__ == '__main__':
    unittest.main()
