"""
Configuration manager for Trivia Quiz settings.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import ANY, Difficulty, QuizSettings


class ConfigManager:
    """Manages quiz configuration settings and storage location."""

    # Default configuration values
    DEFAULT_TIMER_DURATION = 20
    DEFAULT_POLL_INTERVAL = 0.1
    DEFAULT_CATEGORY = ANY
    DEFAULT_DIFFICULTY = ANY
    DEFAULT_STORE_PATH = "./data/trivia_store.json"

    # Validation limits
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300  # 5 minutes
    MIN_POLL_INTERVAL = 0.01
    MAX_POLL_INTERVAL = 1.0

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings(
            timer_duration=self.DEFAULT_TIMER_DURATION,
            poll_interval=self.DEFAULT_POLL_INTERVAL,
            default_category=self.DEFAULT_CATEGORY,
            default_difficulty=self.DEFAULT_DIFFICULTY
        )
        self._store_path = self.DEFAULT_STORE_PATH

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the current QuizSettings
        """
        return QuizSettings(
            timer_duration=self._settings.timer_duration,
            poll_interval=self._settings.poll_interval,
            default_category=self._settings.default_category,
            default_difficulty=self._settings.default_difficulty
        )

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(duration, bool) or not isinstance(duration, int):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(duration).__name__}"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too short: Minimum is {self.MIN_TIMER_DURATION} seconds"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too long: Maximum is {self.MAX_TIMER_DURATION} seconds"
            }

        self._settings.timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        return self._settings.timer_duration

    def set_poll_interval(self, interval: float) -> Dict[str, Any]:
        """
        Set how often the countdown checks its deadline.

        Args:
            interval: Seconds between checks

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(interval, bool) or not isinstance(interval, (int, float)):
            error_msg = f"Poll interval must be a number, got {type(interval).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(interval).__name__}"
            }

        if not self.MIN_POLL_INTERVAL <= interval <= self.MAX_POLL_INTERVAL:
            error_msg = (
                f"Poll interval must be between {self.MIN_POLL_INTERVAL} and {self.MAX_POLL_INTERVAL} seconds"
            )
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {error_msg}"
            }

        self._settings.poll_interval = float(interval)
        self.logger.info(f"Poll interval set to {interval} seconds")
        return {
            'success': True,
            'message': f"Poll interval set to {interval} seconds",
            'user_message': f"✅ Timer checks every {interval} seconds"
        }

    def get_poll_interval(self) -> float:
        return self._settings.poll_interval

    def set_default_filters(self, category: Optional[str], difficulty: Optional[str]) -> Dict[str, Any]:
        """
        Set the filters applied when the quiz starts.

        Args:
            category: Category label, or None/"any" for all categories
            difficulty: Difficulty label, or None/"any" for all levels

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if category is not None and not isinstance(category, str):
            error_msg = f"Default category must be a string, got {type(category).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid category"
            }

        if difficulty is None or not str(difficulty).strip() or str(difficulty).strip().lower() == ANY:
            difficulty_label = ANY
        else:
            try:
                difficulty_label = Difficulty.parse(difficulty).value
            except ValueError as e:
                self.logger.error(str(e))
                return {
                    'success': False,
                    'error': str(e),
                    'user_message': f"❌ Unknown difficulty: {difficulty}. Use Easy, Medium, Hard or any"
                }

        category_label = category.strip() if category and category.strip() else ANY
        if category_label.lower() == ANY:
            category_label = ANY

        self._settings.default_category = category_label
        self._settings.default_difficulty = difficulty_label
        self.logger.info(f"Default filters set to {category_label}/{difficulty_label}")
        return {
            'success': True,
            'message': f"Default filters set to {category_label}/{difficulty_label}",
            'user_message': f"✅ Quiz starts with category {category_label}, difficulty {difficulty_label}"
        }

    def set_store_path(self, path: str) -> Dict[str, Any]:
        """
        Set the JSON file that backs persisted state.

        Args:
            path: File path for the key-value store

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str) or not path.strip():
            error_msg = "Store path must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Store path cannot be empty"
            }

        try:
            normalized_path = str(Path(path).expanduser().resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid store path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {path}"
            }

        if Path(normalized_path).is_dir():
            error_msg = f"Store path is a directory: {normalized_path}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Store path must be a file, not a directory: {path}"
            }

        self._store_path = normalized_path
        self.logger.info(f"Store path set to {normalized_path}")
        return {
            'success': True,
            'message': f"Store path set to {normalized_path}",
            'user_message': f"✅ Data will be saved to {normalized_path}"
        }

    def get_store_path(self) -> str:
        return self._store_path

    def apply_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'quiz' section of a loaded config.json.

        Invalid values are logged and left at their current setting.

        Args:
            config: Parsed configuration dictionary

        Returns:
            List of user-facing messages for values that were rejected
        """
        quiz_config = config.get('quiz', {}) if isinstance(config, dict) else {}
        results = []

        if 'timer_duration' in quiz_config:
            results.append(self.set_timer_duration(quiz_config['timer_duration']))
        if 'poll_interval' in quiz_config:
            results.append(self.set_poll_interval(quiz_config['poll_interval']))
        if 'store_path' in quiz_config:
            results.append(self.set_store_path(quiz_config['store_path']))
        if 'default_category' in quiz_config or 'default_difficulty' in quiz_config:
            results.append(self.set_default_filters(
                quiz_config.get('default_category'),
                quiz_config.get('default_difficulty')
            ))

        rejected = [result['user_message'] for result in results if not result['success']]
        if rejected:
            self.logger.warning(f"Ignored {len(rejected)} invalid configuration values")
        else:
            self.logger.info("Configuration applied successfully")
        return rejected

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings(
            timer_duration=self.DEFAULT_TIMER_DURATION,
            poll_interval=self.DEFAULT_POLL_INTERVAL,
            default_category=self.DEFAULT_CATEGORY,
            default_difficulty=self.DEFAULT_DIFFICULTY
        )
        self._store_path = self.DEFAULT_STORE_PATH
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        duration = self._settings.timer_duration
        if (isinstance(duration, bool) or not isinstance(duration, int) or
                duration < self.MIN_TIMER_DURATION or
                duration > self.MAX_TIMER_DURATION):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid timer duration: {duration}")

        interval = self._settings.poll_interval
        if (not isinstance(interval, (int, float)) or
                not self.MIN_POLL_INTERVAL <= interval <= self.MAX_POLL_INTERVAL):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid poll interval: {interval}")

        if not isinstance(self._store_path, str) or not self._store_path.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid store path: {self._store_path}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Timer: {self._settings.timer_duration} seconds\n"
            f"• Category: {self._settings.default_category}\n"
            f"• Difficulty: {self._settings.default_difficulty}\n"
            f"• Store: {self._store_path}"
        )
