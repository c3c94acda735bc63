"""
Quiz engine state machine for the Trivia Quiz.
Advances through a play set under a countdown, one answer per question.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import ANY, InvalidInputError, PlayQuestion, PlaySet, ScoreEntry, SummaryRow
from .quiz_timer import QuizTimer, TimerLifecycleLogger
from .session_builder import SessionBuilder, normalize_category, normalize_difficulty

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Enumeration of quiz engine states."""
    IDLE = "idle"
    AWAITING_ANSWER = "awaiting_answer"
    ANSWERED = "answered"
    FINISHED = "finished"


def percent_of(score: int, total: int) -> int:
    """Integer percentage 0-100, rounding halves up."""
    if total <= 0:
        return 0
    return (score * 200 + total) // (total * 2)


class QuizEngine:
    """
    Owns one run: current position, answered flag, score and summary log.

    Every transition runs to completion before the next event is accepted.
    Events that do not apply to the current state are ignored, except an
    out-of-range answer index, which raises InvalidInputError.
    """

    DEFAULT_TIMER_DURATION = 20

    def __init__(
        self,
        bank,
        session_builder: Optional[SessionBuilder] = None,
        timer: Optional[QuizTimer] = None,
        timer_duration: float = DEFAULT_TIMER_DURATION
    ):
        """
        Initialize the engine in the idle state.

        Args:
            bank: QuestionBank that restart() and change_filter() rebuild from
            session_builder: Play set builder, a default one if None
            timer: Countdown used per question, a default one if None
            timer_duration: Seconds allowed per question
        """
        self.bank = bank
        self.session_builder = session_builder or SessionBuilder()
        self.timer = timer or QuizTimer()
        self.timer_duration = timer_duration

        self._category = ANY
        self._difficulty = ANY
        self._play_set = PlaySet(questions=())
        self._generation = 0
        self._state = SessionState.IDLE
        self._current_index = 0
        self._selected_index: Optional[int] = None
        self._score = 0
        self._summary: List[SummaryRow] = []
        self._finish_emitted = False

        self._finished_listeners: List[Callable[["QuizEngine"], Any]] = []
        self._resolved_listeners: List[Callable[[SummaryRow], Any]] = []

    # Listeners

    def add_finished_listener(self, callback: Callable[["QuizEngine"], Any]) -> None:
        """Register a callback run once per completed run."""
        self._finished_listeners.append(callback)

    def add_resolved_listener(self, callback: Callable[[SummaryRow], Any]) -> None:
        """Register a callback run with each new summary row."""
        self._resolved_listeners.append(callback)

    # Transitions

    def load_play_set(self, play_set: PlaySet) -> SessionState:
        """
        Replace the current run with a fresh one over the given play set.

        Args:
            play_set: Questions to play

        Returns:
            AWAITING_ANSWER, or IDLE when the play set is empty
        """
        self.timer.cancel()

        self._generation += 1
        self._play_set = play_set
        self._current_index = 0
        self._selected_index = None
        self._score = 0
        self._summary = []
        self._finish_emitted = False

        if play_set.is_empty:
            self._state = SessionState.IDLE
            logger.info(
                f"Play set is empty (category={play_set.category}, difficulty={play_set.difficulty}), nothing to play"
            )
            return self._state

        self._state = SessionState.AWAITING_ANSWER
        self._start_question_timer()
        logger.info(
            f"Loaded play set: category={play_set.category}, difficulty={play_set.difficulty}, "
            f"questions={len(play_set)}"
        )
        return self._state

    def select_answer(self, index: int) -> bool:
        """
        Lock in an answer for the current question.

        Args:
            index: Position of the chosen answer in the shuffled order

        Returns:
            True if the answer was recorded, False if the event was ignored

        Raises:
            InvalidInputError: If the index is out of range; state is unchanged
        """
        if self._state is not SessionState.AWAITING_ANSWER:
            logger.debug(f"Ignoring answer {index!r} in state {self._state.value}")
            return False

        question = self._play_set[self._current_index]
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(question.answers):
            raise InvalidInputError(
                f"Answer index {index!r} is out of range for {len(question.answers)} answers"
            )

        time_used = self.timer.elapsed
        self.timer.cancel()
        self._resolve(index, time_used)
        return True

    def timeout(self) -> bool:
        """
        Resolve the current question as unanswered.

        Returns:
            True if the timeout was recorded, False if the question was already resolved
        """
        if self._state is not SessionState.AWAITING_ANSWER:
            logger.debug(f"Ignoring timeout in state {self._state.value}")
            return False

        self.timer.cancel()
        self._resolve(None, self.timer.duration)
        return True

    def advance(self) -> bool:
        """
        Move from an answered question to the next one.

        Returns:
            True if the engine moved on, False if the event was ignored
        """
        if self._state is not SessionState.ANSWERED:
            logger.debug(f"Ignoring advance in state {self._state.value}")
            return False

        if self._current_index >= len(self._play_set) - 1:
            return False

        self._current_index += 1
        self._selected_index = None
        self._state = SessionState.AWAITING_ANSWER
        self._start_question_timer()
        logger.debug(f"Advanced to question {self._current_index + 1}/{len(self._play_set)}")
        return True

    def restart(self) -> SessionState:
        """Rebuild the play set for the current filters with a fresh shuffle."""
        play_set = self.session_builder.build(self.bank, self._category, self._difficulty)
        return self.load_play_set(play_set)

    def change_filter(self, category: Optional[str], difficulty) -> SessionState:
        """
        Switch filters and start a fresh run.

        Args:
            category: Category label, or ANY
            difficulty: Difficulty label or Difficulty, or ANY

        Raises:
            InvalidInputError: If the difficulty is unknown; state is unchanged
        """
        try:
            difficulty = normalize_difficulty(difficulty)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        self._category = normalize_category(category)
        self._difficulty = difficulty
        return self.restart()

    def set_timer_duration(self, seconds: float) -> None:
        """Change the per-question allowance, applied from the next question."""
        self.timer_duration = seconds

    def _start_question_timer(self) -> None:
        token = (self._generation, self._current_index)
        self.timer.start(self.timer_duration, lambda: self._on_timer_expired(token))

    def _on_timer_expired(self, token: Tuple[int, int]) -> None:
        current = (self._generation, self._current_index)
        if token != current:
            TimerLifecycleLogger.log_stale_signal(
                "question",
                f"timeout for run {token[0]} question {token[1]} while on run {current[0]} question {current[1]}"
            )
            return
        self.timeout()

    def _resolve(self, selected_index: Optional[int], time_used: float) -> None:
        question = self._play_set[self._current_index]
        was_correct = selected_index is not None and selected_index == question.correct_index
        if was_correct:
            self._score += 1

        self._selected_index = selected_index
        row = SummaryRow(
            question_text=question.text,
            answers=tuple(answer.text for answer in question.answers),
            correct_index=question.correct_index,
            selected_index=selected_index,
            was_correct=was_correct,
            time_used=min(max(0.0, float(time_used)), self.timer.duration)
        )
        self._summary.append(row)

        if self._current_index >= len(self._play_set) - 1:
            self._state = SessionState.FINISHED
        else:
            self._state = SessionState.ANSWERED

        logger.debug(
            f"Question {self._current_index + 1}/{len(self._play_set)} resolved: "
            f"selected={selected_index}, correct={was_correct}, score={self._score}"
        )

        self._notify(self._resolved_listeners, row)
        if self._state is SessionState.FINISHED and not self._finish_emitted:
            self._finish_emitted = True
            logger.info(f"Run finished: score {self._score}/{len(self._play_set)}")
            self._notify(self._finished_listeners, self)

    def _notify(self, listeners: List[Callable], payload) -> None:
        for callback in listeners:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Engine listener {callback!r} failed: {e}", exc_info=True)

    # Read-only views

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def category(self) -> str:
        return self._category

    @property
    def difficulty(self) -> str:
        return self._difficulty

    @property
    def play_set(self) -> PlaySet:
        return self._play_set

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def selected_index(self) -> Optional[int]:
        return self._selected_index

    @property
    def score(self) -> int:
        return self._score

    @property
    def total(self) -> int:
        return len(self._play_set)

    @property
    def is_answered(self) -> bool:
        return self._state in (SessionState.ANSWERED, SessionState.FINISHED)

    @property
    def is_finished(self) -> bool:
        return self._state is SessionState.FINISHED

    def current_question(self) -> Optional[PlayQuestion]:
        if self._state is SessionState.IDLE:
            return None
        return self._play_set[self._current_index]

    def summary(self) -> Tuple[SummaryRow, ...]:
        return tuple(self._summary)

    def progress(self) -> float:
        """Fraction of questions resolved so far."""
        if not self.total:
            return 0.0
        return len(self._summary) / self.total

    def time_fraction(self) -> float:
        """Remaining time over the running countdown's allowance, clamped to [0, 1]."""
        allowance = self.timer.duration
        if self._state is SessionState.IDLE or allowance <= 0:
            return 0.0
        return min(1.0, max(0.0, self.timer.remaining / allowance))

    def build_score_entry(self, player_name: str, now: Optional[datetime] = None) -> Optional[ScoreEntry]:
        """
        Reduce a finished run to its score entry.

        Returns:
            ScoreEntry, or None if the run has not finished
        """
        if self._state is not SessionState.FINISHED:
            return None
        moment = now or datetime.now(timezone.utc)
        return ScoreEntry(
            player_name=player_name,
            category=self._play_set.category,
            difficulty=self._play_set.difficulty,
            score=self._score,
            total=self.total,
            percent=percent_of(self._score, self.total),
            timestamp=moment.isoformat()
        )

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the derived view state for presentation layers."""
        question = self.current_question()
        return {
            'state': self._state.value,
            'category': self._category,
            'difficulty': self._difficulty,
            'question_number': self._current_index + 1 if question else 0,
            'total_questions': self.total,
            'question': question,
            'selected_index': self._selected_index,
            'score': self._score,
            'progress': self.progress(),
            'time_fraction': self.time_fraction(),
            'time_remaining': self.timer.remaining if question else 0.0,
            'is_finished': self.is_finished,
        }
