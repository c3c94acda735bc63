"""
Unit tests for ConfigManager class.
"""
import logging
import os
import shutil
import tempfile
import unittest

from trivia_quiz.config_manager import ConfigManager
from trivia_quiz.models import ANY, QuizSettings


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager functionality."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.config_manager = ConfigManager()
        self.temp_dir = tempfile.mkdtemp()

        # Suppress logging during tests
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        """Clean up after each test method."""
        logging.disable(logging.NOTSET)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_initialization_with_defaults(self):
        """Test that ConfigManager initializes with correct default values."""
        settings = self.config_manager.get_quiz_settings()

        self.assertIsInstance(settings, QuizSettings)
        self.assertEqual(settings.timer_duration, 20)
        self.assertEqual(settings.poll_interval, 0.1)
        self.assertEqual(settings.default_category, ANY)
        self.assertEqual(settings.default_difficulty, ANY)
        self.assertEqual(self.config_manager.get_store_path(), "./data/trivia_store.json")

    def test_get_quiz_settings_returns_copy(self):
        settings = self.config_manager.get_quiz_settings()
        settings.timer_duration = 999

        self.assertEqual(self.config_manager.get_timer_duration(), 20)

    def test_set_timer_duration_valid_values(self):
        for value in (5, 30, 300):
            result = self.config_manager.set_timer_duration(value)
            self.assertTrue(result['success'])
            self.assertEqual(self.config_manager.get_timer_duration(), value)
            self.assertIn('✅', result['user_message'])

    def test_set_timer_duration_out_of_range(self):
        for value, fragment in ((4, "too short"), (0, "too short"), (301, "too long")):
            result = self.config_manager.set_timer_duration(value)
            self.assertFalse(result['success'])
            self.assertIn(fragment, result['user_message'])
        self.assertEqual(self.config_manager.get_timer_duration(), 20)

    def test_set_timer_duration_invalid_types(self):
        for value in ("30", 12.5, None, True):
            result = self.config_manager.set_timer_duration(value)
            self.assertFalse(result['success'])
            self.assertIn('error', result)
        self.assertEqual(self.config_manager.get_timer_duration(), 20)

    def test_set_poll_interval(self):
        self.assertTrue(self.config_manager.set_poll_interval(0.05)['success'])
        self.assertEqual(self.config_manager.get_poll_interval(), 0.05)

        for value in (0.001, 2, "fast", False):
            self.assertFalse(self.config_manager.set_poll_interval(value)['success'])
        self.assertEqual(self.config_manager.get_poll_interval(), 0.05)

    def test_set_default_filters(self):
        result = self.config_manager.set_default_filters(" Science ", "hard")

        self.assertTrue(result['success'])
        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.default_category, "Science")
        self.assertEqual(settings.default_difficulty, "Hard")

    def test_set_default_filters_any(self):
        self.config_manager.set_default_filters("Science", "Easy")
        result = self.config_manager.set_default_filters("ANY", None)

        self.assertTrue(result['success'])
        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.default_category, ANY)
        self.assertEqual(settings.default_difficulty, ANY)

    def test_set_default_filters_unknown_difficulty(self):
        result = self.config_manager.set_default_filters("Science", "Nightmare")

        self.assertFalse(result['success'])
        self.assertEqual(self.config_manager.get_quiz_settings().default_category, ANY)

    def test_set_store_path(self):
        path = os.path.join(self.temp_dir, "store.json")
        result = self.config_manager.set_store_path(path)

        self.assertTrue(result['success'])
        self.assertEqual(self.config_manager.get_store_path(), os.path.realpath(path))

    def test_set_store_path_rejects_directory_and_empty(self):
        self.assertFalse(self.config_manager.set_store_path(self.temp_dir)['success'])
        self.assertFalse(self.config_manager.set_store_path("  ")['success'])
        self.assertFalse(self.config_manager.set_store_path(None)['success'])
        self.assertEqual(self.config_manager.get_store_path(), ConfigManager.DEFAULT_STORE_PATH)

    def test_apply_config(self):
        rejected = self.config_manager.apply_config({
            'quiz': {
                'timer_duration': 45,
                'poll_interval': 0.2,
                'default_category': 'Web',
                'default_difficulty': 'Easy'
            }
        })

        self.assertEqual(rejected, [])
        settings = self.config_manager.get_quiz_settings()
        self.assertEqual(settings.timer_duration, 45)
        self.assertEqual(settings.poll_interval, 0.2)
        self.assertEqual(settings.default_category, 'Web')
        self.assertEqual(settings.default_difficulty, 'Easy')

    def test_apply_config_keeps_valid_values_when_some_rejected(self):
        rejected = self.config_manager.apply_config({
            'quiz': {'timer_duration': 1, 'poll_interval': 0.5}
        })

        self.assertEqual(len(rejected), 1)
        self.assertEqual(self.config_manager.get_timer_duration(), 20)
        self.assertEqual(self.config_manager.get_poll_interval(), 0.5)

    def test_apply_config_without_quiz_section(self):
        self.assertEqual(self.config_manager.apply_config({}), [])
        self.assertEqual(self.config_manager.apply_config(None), [])

    def test_reset_to_defaults(self):
        self.config_manager.set_timer_duration(60)
        self.config_manager.set_store_path(os.path.join(self.temp_dir, "x.json"))

        self.config_manager.reset_to_defaults()

        self.assertEqual(self.config_manager.get_timer_duration(), 20)
        self.assertEqual(self.config_manager.get_store_path(), ConfigManager.DEFAULT_STORE_PATH)

    def test_validate_settings(self):
        self.assertEqual(self.config_manager.validate_settings(), {"valid": True, "issues": []})

        self.config_manager._settings.timer_duration = 1
        result = self.config_manager.validate_settings()
        self.assertFalse(result["valid"])
        self.assertEqual(len(result["issues"]), 1)

    def test_get_settings_summary(self):
        summary = self.config_manager.get_settings_summary()

        self.assertIn("Timer: 20 seconds", summary)
        self.assertIn("Category: any", summary)


if __name__ == '__main__':
    unittest.main()
