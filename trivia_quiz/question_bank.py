"""
Question bank for the Trivia Quiz.
The single mutable catalog of questions, organized as named quiz sets.
"""
import logging
from typing import Dict, Iterable, List, Optional, Set

from .models import Answer, Difficulty, Question, QuizSet, ValidationError


DEFAULT_QUIZ_SET = "Custom"


class QuestionBank:
    """Holds the authoritative question catalog grouped into named quiz sets."""

    def __init__(self, quiz_sets: Optional[Iterable[QuizSet]] = None):
        """
        Initialize the bank.

        Args:
            quiz_sets: Pre-validated quiz sets to seed the bank with
        """
        self.logger = logging.getLogger(__name__)
        self._quiz_sets: Dict[str, List[Question]] = {}
        if quiz_sets:
            self.replace_all(quiz_sets)

    @staticmethod
    def validate_question(question: Question) -> None:
        """
        Check an authored question.

        Raises:
            ValidationError: On empty text or category, an unknown difficulty,
                fewer than two answers, an empty answer, or anything other
                than exactly one correct answer
        """
        if not isinstance(question, Question):
            raise ValidationError(f"Expected a Question, got {type(question).__name__}")

        if not isinstance(question.text, str) or not question.text.strip():
            raise ValidationError("Question text cannot be empty")

        if not isinstance(question.category, str) or not question.category.strip():
            raise ValidationError("Question category cannot be empty")

        if not isinstance(question.difficulty, Difficulty):
            raise ValidationError(f"Unknown difficulty: {question.difficulty!r}")

        if len(question.answers) < 2:
            raise ValidationError("A question needs at least two answers")

        for i, answer in enumerate(question.answers):
            if not isinstance(answer, Answer):
                raise ValidationError(f"Answer {i} must be an Answer")
            if not isinstance(answer.text, str) or not answer.text.strip():
                raise ValidationError(f"Answer {i} text cannot be empty")

        correct_count = sum(1 for answer in question.answers if answer.is_correct)
        if correct_count != 1:
            raise ValidationError(
                f"Exactly one answer must be marked correct, found {correct_count}"
            )

    def add_question(self, question: Question, quiz_set: str = DEFAULT_QUIZ_SET) -> None:
        """
        Validate and append a question to a quiz set.

        Args:
            question: Question to add
            quiz_set: Name of the set to append to, created if missing

        Raises:
            ValidationError: If the question or set name is invalid; the bank
                is left unchanged
        """
        if not isinstance(quiz_set, str) or not quiz_set.strip():
            raise ValidationError("Quiz set name cannot be empty")
        self.validate_question(question)

        name = quiz_set.strip()
        self._quiz_sets.setdefault(name, []).append(question)
        self.logger.info(f"Added question to quiz set '{name}' ({question.category}, {question.difficulty.value})")

    def delete_quiz_set(self, name: str) -> bool:
        """
        Remove a quiz set and all its questions.

        Returns:
            True if the set existed, False otherwise
        """
        if name not in self._quiz_sets:
            return False
        del self._quiz_sets[name]
        self.logger.info(f"Deleted quiz set '{name}'")
        return True

    def replace_all(self, quiz_sets: Iterable[QuizSet]) -> None:
        """Replace the whole catalog. Seeded and imported data is trusted."""
        replacement: Dict[str, List[Question]] = {}
        for quiz_set in quiz_sets:
            replacement.setdefault(quiz_set.name, []).extend(quiz_set.questions)
        self._quiz_sets = replacement
        self.logger.info(
            f"Question bank replaced: {len(self._quiz_sets)} sets, {self.question_count()} questions"
        )

    def questions(self) -> List[Question]:
        """All questions across every set, in insertion order."""
        return [question for questions in self._quiz_sets.values() for question in questions]

    def categories(self) -> Set[str]:
        return {question.category for question in self.questions()}

    def quiz_set_names(self) -> List[str]:
        return list(self._quiz_sets.keys())

    def quiz_sets(self) -> List[QuizSet]:
        return [QuizSet(name=name, questions=list(questions)) for name, questions in self._quiz_sets.items()]

    def question_count(self) -> int:
        return sum(len(questions) for questions in self._quiz_sets.values())
