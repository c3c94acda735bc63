"""
Quiz controller for the Trivia Quiz.
Wires the question bank, engine and result store, and exposes the input
events and read views used by presentation layers.
"""
import logging
from typing import Any, Dict, List, Optional

from .config_manager import ConfigManager
from .data_manager import DataManager, KeyValueStore
from .models import (
    ANY, ImportFormatError, InvalidInputError, Question, ScoreEntry, ValidationError
)
from .question_bank import DEFAULT_QUIZ_SET
from .quiz_engine import QuizEngine, SessionState
from .quiz_timer import QuizTimer
from .result_store import ResultStore
from .session_builder import SessionBuilder, normalize_category, normalize_difficulty


THEME_KEY = "theme"
PLAYER_NAME_KEY = "player_name"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"
DEFAULT_PLAYER_NAME = "Anonymous"
MAX_PLAYER_NAME_LENGTH = 40


class QuizController:
    """
    Orchestrates one player's quiz session.

    Core components raise; this class turns their errors into result
    dictionaries for the presentation layer and records each finished run
    exactly once.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        store: Optional[KeyValueStore] = None,
        timer: Optional[QuizTimer] = None,
        session_builder: Optional[SessionBuilder] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            config_manager: Instance for managing configuration
            store: Persisted key-value store, opened from the configured path if None
            timer: Countdown for questions, built from settings if None
            session_builder: Play set builder, a default one if None
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager
        self.store = store or KeyValueStore(config_manager.get_store_path())
        self.data_manager = DataManager(self.store)
        self.bank = self.data_manager.load_bank()
        self.result_store = ResultStore(self.store)

        settings = config_manager.get_quiz_settings()
        self.engine = QuizEngine(
            self.bank,
            session_builder=session_builder,
            timer=timer or QuizTimer(poll_interval=settings.poll_interval),
            timer_duration=settings.timer_duration
        )
        self.engine.add_finished_listener(self._record_finished_run)
        self.last_entry: Optional[ScoreEntry] = None

        self.logger.info("QuizController initialized")

    # Run lifecycle

    def start_quiz(self) -> Dict[str, Any]:
        """Start the first run using the configured default filters."""
        settings = self.config_manager.get_quiz_settings()
        category = settings.default_category
        if category != ANY and category not in self.bank.categories():
            self.logger.warning(f"Default category '{category}' not in bank, using all categories")
            category = ANY
        return self.change_filter(category, settings.default_difficulty)

    def change_filter(self, category: Optional[str], difficulty: Optional[str]) -> Dict[str, Any]:
        """
        Switch both filters and start a fresh run.

        Returns:
            Dictionary with success status, messages and the new view
        """
        try:
            state = self.engine.change_filter(category, difficulty)
        except InvalidInputError as e:
            self.logger.warning(f"Rejected filter change: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': f"❌ {e}. Use Easy, Medium, Hard or any"
            }

        return self._run_started(state)

    def select_category(self, name: Optional[str]) -> Dict[str, Any]:
        """Switch category, keeping the current difficulty. Unknown categories are rejected."""
        category = normalize_category(name)
        if category != ANY and category not in self.bank.categories():
            return {
                'success': False,
                'error': f"Unknown category: {category}",
                'user_message': f"❌ No questions in category '{category}'"
            }
        return self.change_filter(category, self.engine.difficulty)

    def select_difficulty(self, name: Optional[str]) -> Dict[str, Any]:
        return self.change_filter(self.engine.category, name)

    def restart(self) -> Dict[str, Any]:
        """Reshuffle and replay the current filters."""
        return self._run_started(self.engine.restart())

    def _run_started(self, state: SessionState) -> Dict[str, Any]:
        filters = f"{self.engine.category}/{self.engine.difficulty}"
        if state is SessionState.IDLE:
            return {
                'success': True,
                'message': f"No questions match {filters}",
                'user_message': f"ℹ️ No questions match {filters}. Try other filters.",
                'view': self.get_view()
            }
        return {
            'success': True,
            'message': f"Started run over {self.engine.total} questions ({filters})",
            'user_message': f"✅ {self.engine.total} questions ready ({filters})",
            'view': self.get_view()
        }

    def select_answer(self, index: int) -> Dict[str, Any]:
        """
        Answer the current question.

        Returns:
            Dictionary with success status, whether the answer was accepted
            and whether it was correct
        """
        if self.engine.state is SessionState.IDLE:
            return {
                'success': False,
                'error': "No run in progress",
                'user_message': "❌ No run in progress, use /play"
            }

        try:
            accepted = self.engine.select_answer(index)
        except InvalidInputError as e:
            self.logger.warning(f"Rejected answer: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': "❌ That answer does not exist for this question"
            }

        if not accepted:
            return {
                'success': True,
                'accepted': False,
                'message': f"Answer ignored in state {self.engine.state.value}",
                'user_message': "ℹ️ This question is already answered",
                'view': self.get_view()
            }

        row = self.engine.summary()[-1]
        return {
            'success': True,
            'accepted': True,
            'correct': row.was_correct,
            'correct_index': row.correct_index,
            'finished': self.engine.is_finished,
            'message': f"Answer {index} recorded, correct={row.was_correct}",
            'user_message': "✅ Correct!" if row.was_correct else f"❌ Wrong, the answer was {row.answers[row.correct_index]}",
            'view': self.get_view()
        }

    def advance(self) -> Dict[str, Any]:
        if not self.engine.advance():
            return {
                'success': False,
                'error': f"Cannot advance in state {self.engine.state.value}",
                'user_message': "ℹ️ Answer the current question first" if self.engine.state is SessionState.AWAITING_ANSWER
                else "ℹ️ There is no next question"
            }
        return {
            'success': True,
            'message': f"Moved to question {self.engine.current_index + 1}",
            'user_message': f"➡️ Question {self.engine.current_index + 1}/{self.engine.total}",
            'view': self.get_view()
        }

    def _record_finished_run(self, engine: QuizEngine) -> None:
        entry = engine.build_score_entry(self.get_player_name())
        if entry is None:
            return
        self.result_store.record_run(entry)
        self.last_entry = entry

    # Question bank

    def create_question(self, question: Question, quiz_set: str = DEFAULT_QUIZ_SET) -> Dict[str, Any]:
        """
        Author a new question into the bank. The running play set is unaffected.

        Returns:
            Dictionary with success status and messages
        """
        try:
            self.bank.add_question(question, quiz_set)
        except ValidationError as e:
            self.logger.warning(f"Rejected question: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': f"❌ Invalid question: {e}"
            }

        self.data_manager.save_bank(self.bank)
        return {
            'success': True,
            'message': f"Question added to '{quiz_set}'",
            'user_message': f"✅ Question added to quiz set '{quiz_set}'"
        }

    def delete_quiz_set(self, name: str) -> Dict[str, Any]:
        if not self.bank.delete_quiz_set(name):
            return {
                'success': False,
                'error': f"Quiz set not found: {name}",
                'user_message': f"❌ No quiz set named '{name}'"
            }
        self.data_manager.save_bank(self.bank)
        return {
            'success': True,
            'message': f"Deleted quiz set '{name}'",
            'user_message': f"🗑️ Deleted quiz set '{name}'"
        }

    def import_quiz_sets(self, file_path: str) -> Dict[str, Any]:
        """
        Replace the whole bank with the quiz sets in a JSON file.

        The bank is untouched when the file is rejected. On success a fresh
        run starts, falling back to all categories if the current one is gone.
        """
        try:
            quiz_sets = self.data_manager.import_quiz_sets(file_path)
        except ImportFormatError as e:
            self.logger.error(f"Import failed: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': f"❌ Import failed: {e}"
            }

        self.bank.replace_all(quiz_sets)
        self.data_manager.save_bank(self.bank)

        category = self.engine.category
        if category != ANY and category not in self.bank.categories():
            category = ANY
        self.change_filter(category, self.engine.difficulty)

        return {
            'success': True,
            'message': f"Imported {len(quiz_sets)} quiz sets",
            'user_message': f"✅ Imported {len(quiz_sets)} quiz sets ({self.bank.question_count()} questions)"
        }

    def export_quiz_sets(self, file_path: str) -> Dict[str, Any]:
        try:
            path = self.data_manager.export_quiz_sets(self.bank, file_path)
        except OSError as e:
            self.logger.error(f"Export failed: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': f"❌ Export failed: {e}"
            }
        return {
            'success': True,
            'path': str(path),
            'message': f"Exported quiz sets to {path}",
            'user_message': f"✅ Exported {len(self.bank.quiz_set_names())} quiz sets"
        }

    def categories(self) -> List[str]:
        return sorted(self.bank.categories())

    def quiz_set_names(self) -> List[str]:
        return self.bank.quiz_set_names()

    # Preferences

    def set_player_name(self, name: str) -> Dict[str, Any]:
        if not isinstance(name, str):
            return {
                'success': False,
                'error': f"Player name must be a string, got {type(name).__name__}",
                'user_message': "❌ Invalid name"
            }
        cleaned = name.strip()[:MAX_PLAYER_NAME_LENGTH]
        self.store.set(PLAYER_NAME_KEY, cleaned)
        shown = cleaned or DEFAULT_PLAYER_NAME
        self.logger.info(f"Player name set to '{shown}'")
        return {
            'success': True,
            'message': f"Player name set to '{shown}'",
            'user_message': f"✅ Playing as {shown}"
        }

    def get_player_name(self) -> str:
        name = self.store.get(PLAYER_NAME_KEY)
        if not isinstance(name, str) or not name.strip():
            return DEFAULT_PLAYER_NAME
        return name

    def set_theme(self, theme: str) -> Dict[str, Any]:
        if theme not in THEMES:
            return {
                'success': False,
                'error': f"Unknown theme: {theme!r}",
                'user_message': f"❌ Theme must be one of: {', '.join(THEMES)}"
            }
        self.store.set(THEME_KEY, theme)
        return {
            'success': True,
            'message': f"Theme set to {theme}",
            'user_message': f"✅ Theme set to {theme}"
        }

    def get_theme(self) -> str:
        theme = self.store.get(THEME_KEY)
        return theme if theme in THEMES else DEFAULT_THEME

    def set_timer_duration(self, seconds: int) -> Dict[str, Any]:
        result = self.config_manager.set_timer_duration(seconds)
        if result['success']:
            self.engine.set_timer_duration(seconds)
        return result

    # Read views

    def get_view(self) -> Dict[str, Any]:
        view = self.engine.get_status()
        view['player_name'] = self.get_player_name()
        view['theme'] = self.get_theme()
        view['summary'] = self.engine.summary()
        return view

    def top_scores(self, category: Optional[str] = None, difficulty: Optional[str] = None) -> List[ScoreEntry]:
        """Ranked highscores, for the current filters unless others are given."""
        category = normalize_category(category) if category is not None else self.engine.category
        try:
            difficulty = normalize_difficulty(difficulty) if difficulty is not None else self.engine.difficulty
        except ValueError:
            return []
        return self.result_store.top_scores(category, difficulty)

    def recent_history(self) -> List[ScoreEntry]:
        return self.result_store.recent_history()

    def clear_highscores(self, category: Optional[str] = None, difficulty: Optional[str] = None) -> Dict[str, Any]:
        category = normalize_category(category) if category is not None else self.engine.category
        try:
            difficulty = normalize_difficulty(difficulty) if difficulty is not None else self.engine.difficulty
        except ValueError as e:
            return {'success': False, 'error': str(e), 'user_message': f"❌ {e}"}
        self.result_store.clear_highscores(category, difficulty)
        return {
            'success': True,
            'message': f"Cleared highscores for {category}/{difficulty}",
            'user_message': f"🧹 Highscores cleared for {category}/{difficulty}"
        }

    def clear_history(self) -> Dict[str, Any]:
        self.result_store.clear_history()
        return {
            'success': True,
            'message': "Cleared run history",
            'user_message': "🧹 History cleared"
        }

    def shutdown(self) -> None:
        """Stop any running countdown."""
        self.engine.timer.cancel()
        self.logger.info("QuizController shut down")
