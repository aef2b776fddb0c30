"""
Configuration manager for Discord Trivia Bot settings and scoring parameters.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class QuizSettings:
    """Process-wide quiz and scoring settings."""
    default_question_timeout: int = 30
    default_quiz_timeout: int = 300
    points_per_correct_answer: int = 10
    speed_bonus_multiplier: float = 0.1
    streak_bonus_multiplier: float = 0.05
    default_wait_time: int = 30
    result_delay: float = 3


class ConfigManager:
    """Manages bot configuration settings and quiz parameters."""

    # Default configuration values
    DEFAULT_QUESTION_TIMEOUT = 30
    DEFAULT_QUIZ_TIMEOUT = 300
    DEFAULT_POINTS_PER_CORRECT_ANSWER = 10
    DEFAULT_SPEED_BONUS_MULTIPLIER = 0.1
    DEFAULT_STREAK_BONUS_MULTIPLIER = 0.05
    DEFAULT_WAIT_TIME = 30
    DEFAULT_RESULT_DELAY = 3
    DEFAULT_QUIZ_DIRECTORY = "./quizzes/"

    # Validation limits
    MIN_QUESTION_TIMEOUT = 5
    MAX_QUESTION_TIMEOUT = 300  # 5 minutes
    MIN_QUIZ_TIMEOUT = 30
    MAX_QUIZ_TIMEOUT = 7200  # 2 hours
    MIN_WAIT_TIME = 0
    MAX_WAIT_TIME = 600
    MIN_POINTS = 1
    MAX_POINTS = 1000
    MIN_MULTIPLIER = 0.0
    MAX_MULTIPLIER = 10.0

    # Environment variable name -> (setter name, parser)
    ENV_OVERRIDES = {
        'DEFAULT_QUESTION_TIMEOUT': ('set_question_timeout', int),
        'DEFAULT_QUIZ_TIMEOUT': ('set_quiz_timeout', int),
        'POINTS_PER_CORRECT_ANSWER': ('set_points_per_correct_answer', int),
        'SPEED_BONUS_MULTIPLIER': ('set_speed_bonus_multiplier', float),
        'STREAK_BONUS_MULTIPLIER': ('set_streak_bonus_multiplier', float),
    }

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()
        self._quiz_directory = self.DEFAULT_QUIZ_DIRECTORY

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get a copy of the current quiz settings.

        Returns:
            QuizSettings object with current configuration
        """
        return QuizSettings(
            default_question_timeout=self._settings.default_question_timeout,
            default_quiz_timeout=self._settings.default_quiz_timeout,
            points_per_correct_answer=self._settings.points_per_correct_answer,
            speed_bonus_multiplier=self._settings.speed_bonus_multiplier,
            streak_bonus_multiplier=self._settings.streak_bonus_multiplier,
            default_wait_time=self._settings.default_wait_time,
            result_delay=self._settings.result_delay
        )

    @property
    def default_question_timeout(self) -> int:
        return self._settings.default_question_timeout

    @property
    def default_wait_time(self) -> int:
        return self._settings.default_wait_time

    @property
    def speed_bonus_multiplier(self) -> float:
        return self._settings.speed_bonus_multiplier

    @property
    def points_per_correct_answer(self) -> int:
        return self._settings.points_per_correct_answer

    @property
    def result_delay(self) -> float:
        return self._settings.result_delay

    def _set_int_setting(self, attribute: str, label: str, value: int,
                         minimum: int, maximum: int, unit: str = "") -> Dict[str, Any]:
        """
        Validate and store an integer setting.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        suffix = f" {unit}" if unit else ""
        try:
            # bool is an int subclass; reject it explicitly
            if not isinstance(value, int) or isinstance(value, bool):
                error_msg = f"{label} must be an integer, got {type(value).__name__}"
                self.logger.error(error_msg)
                return {
                    'success': False,
                    'error': error_msg,
                    'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
                }

            if value < minimum:
                error_msg = f"{label} must be at least {minimum}{suffix}"
                self.logger.error(error_msg)
                return {
                    'success': False,
                    'error': error_msg,
                    'user_message': f"❌ {label} too small: Minimum is {minimum}{suffix}"
                }

            if value > maximum:
                error_msg = f"{label} cannot exceed {maximum}{suffix}"
                self.logger.error(error_msg)
                return {
                    'success': False,
                    'error': error_msg,
                    'user_message': f"❌ {label} too large: Maximum is {maximum}{suffix}"
                }

            setattr(self._settings, attribute, value)
            self.logger.info(f"{label} set to {value}{suffix}")
            return {
                'success': True,
                'message': f"{label} set to {value}{suffix}",
                'user_message': f"✅ {label} set to {value}{suffix}"
            }

        except Exception as e:
            error_msg = f"Unexpected error setting {label.lower()}: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ An unexpected error occurred while setting {label.lower()}"
            }

    def _set_multiplier(self, attribute: str, label: str, value: float) -> Dict[str, Any]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            error_msg = f"{label} must be a number, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }

        if value < self.MIN_MULTIPLIER or value > self.MAX_MULTIPLIER:
            error_msg = f"{label} must be between {self.MIN_MULTIPLIER} and {self.MAX_MULTIPLIER}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {label} out of range: {self.MIN_MULTIPLIER}-{self.MAX_MULTIPLIER}"
            }

        if value > 1:
            self.logger.warning(
                f"{label} {value} is above 1; speed bonuses can exceed the question's base points"
            )

        setattr(self._settings, attribute, float(value))
        self.logger.info(f"{label} set to {value}")
        return {
            'success': True,
            'message': f"{label} set to {value}",
            'user_message': f"✅ {label} set to {value}"
        }

    def set_question_timeout(self, seconds: int) -> Dict[str, Any]:
        """Set the fallback time limit for questions without their own."""
        return self._set_int_setting(
            'default_question_timeout', "Question timeout", seconds,
            self.MIN_QUESTION_TIMEOUT, self.MAX_QUESTION_TIMEOUT, "seconds"
        )

    def set_quiz_timeout(self, seconds: int) -> Dict[str, Any]:
        return self._set_int_setting(
            'default_quiz_timeout', "Quiz timeout", seconds,
            self.MIN_QUIZ_TIMEOUT, self.MAX_QUIZ_TIMEOUT, "seconds"
        )

    def set_wait_time(self, seconds: int) -> Dict[str, Any]:
        """Set how long public quizzes wait for participants to join."""
        return self._set_int_setting(
            'default_wait_time', "Wait time", seconds,
            self.MIN_WAIT_TIME, self.MAX_WAIT_TIME, "seconds"
        )

    def set_points_per_correct_answer(self, points: int) -> Dict[str, Any]:
        return self._set_int_setting(
            'points_per_correct_answer', "Points per correct answer", points,
            self.MIN_POINTS, self.MAX_POINTS
        )

    def set_speed_bonus_multiplier(self, multiplier: float) -> Dict[str, Any]:
        return self._set_multiplier('speed_bonus_multiplier', "Speed bonus multiplier", multiplier)

    def set_streak_bonus_multiplier(self, multiplier: float) -> Dict[str, Any]:
        return self._set_multiplier('streak_bonus_multiplier', "Streak bonus multiplier", multiplier)

    def set_result_delay(self, seconds: float) -> Dict[str, Any]:
        """Set the pause between a question's results and the next question."""
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds < 0:
            error_msg = f"Result delay must be a non-negative number, got {seconds!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Result delay must be zero or more seconds"
            }
        self._settings.result_delay = seconds
        self.logger.info(f"Result delay set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Result delay set to {seconds} seconds",
            'user_message': f"✅ Result delay set to {seconds} seconds"
        }

    def set_quiz_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory path for quiz seed files with validation.

        Args:
            directory: Path to quiz files directory

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str):
            error_msg = f"Quiz directory must be a string, got {type(directory).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path string, got {type(directory).__name__}"
            }

        if not directory.strip():
            error_msg = "Quiz directory cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        self._quiz_directory = normalized_path
        self.logger.info(f"Quiz directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Quiz directory set to {normalized_path}",
            'user_message': f"✅ Quiz directory set to {normalized_path}"
        }

    def get_quiz_directory(self) -> str:
        return self._quiz_directory

    def apply_config(self, config: Optional[Dict[str, Any]]) -> List[str]:
        """
        Apply the ``quiz`` section of a loaded config.json.

        Invalid values are logged and skipped so the defaults stay in place.

        Returns:
            List of error messages for settings that were rejected
        """
        errors = []
        quiz_config = (config or {}).get('quiz', {})

        setters = [
            ('default_question_timeout', self.set_question_timeout),
            ('default_quiz_timeout', self.set_quiz_timeout),
            ('default_wait_time', self.set_wait_time),
            ('points_per_correct_answer', self.set_points_per_correct_answer),
            ('speed_bonus_multiplier', self.set_speed_bonus_multiplier),
            ('streak_bonus_multiplier', self.set_streak_bonus_multiplier),
            ('result_delay', self.set_result_delay),
            ('quiz_directory', self.set_quiz_directory),
        ]

        for key, setter in setters:
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Ignored {len(errors)} invalid quiz settings from config")
        return errors

    def load_from_env(self, environ: Optional[Dict[str, str]] = None) -> List[str]:
        """
        Override settings from environment variables.

        Returns:
            List of error messages for variables that could not be applied
        """
        environ = os.environ if environ is None else environ
        errors = []

        for name, (setter_name, parser) in self.ENV_OVERRIDES.items():
            raw = environ.get(name)
            if raw is None or raw == "":
                continue
            try:
                value = parser(raw)
            except ValueError:
                error_msg = f"Environment variable {name} is not a valid {parser.__name__}: {raw!r}"
                self.logger.error(error_msg)
                errors.append(error_msg)
                continue
            result = getattr(self, setter_name)(value)
            if not result['success']:
                errors.append(result['error'])

        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings()
        self._quiz_directory = self.DEFAULT_QUIZ_DIRECTORY
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

        timeout = self._settings.default_question_timeout
        if not (self.MIN_QUESTION_TIMEOUT <= timeout <= self.MAX_QUESTION_TIMEOUT):
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question timeout: {timeout}")

        if not (self.MIN_POINTS <= self._settings.points_per_correct_answer <= self.MAX_POINTS):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid points per correct answer: {self._settings.points_per_correct_answer}"
            )

        for label, value in (
            ("speed bonus multiplier", self._settings.speed_bonus_multiplier),
            ("streak bonus multiplier", self._settings.streak_bonus_multiplier),
        ):
            if not (self.MIN_MULTIPLIER <= value <= self.MAX_MULTIPLIER):
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid {label}: {value}")

        if not isinstance(self._quiz_directory, str) or not self._quiz_directory.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid quiz directory: {self._quiz_directory}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Question timeout: {self._settings.default_question_timeout} seconds\n"
            f"• Join wait: {self._settings.default_wait_time} seconds\n"
            f"• Points per correct answer: {self._settings.points_per_correct_answer}\n"
            f"• Speed bonus multiplier: {self._settings.speed_bonus_multiplier}\n"
            f"• Quiz Directory: {self._quiz_directory}"
        )
