"""
Play set construction for the Trivia Quiz.
Filters the question bank, copies the matches into read-only play form and shuffles them.
"""
import logging
import random
from typing import List, Optional, Sequence, TypeVar, Union

from .models import ANY, Difficulty, PlayAnswer, PlayQuestion, PlaySet, Question

logger = logging.getLogger(__name__)

T = TypeVar("T")


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a uniformly random permutation of a sequence.

    Fisher-Yates: walk from the last index down to 1, swapping each slot
    with a uniformly chosen index at or below it.

    Args:
        sequence: Elements to permute, left untouched
        rng: Random source, the module-level generator if None

    Returns:
        New list with the same elements in random order
    """
    rng = rng or random
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def normalize_category(category: Optional[str]) -> str:
    if category is None or not category.strip() or category.strip().lower() == ANY:
        return ANY
    return category.strip()


def normalize_difficulty(difficulty: Union[Difficulty, str, None]) -> str:
    """
    Reduce a difficulty filter to its label, or ANY.

    Raises:
        ValueError: If the value names no known difficulty
    """
    if difficulty is None:
        return ANY
    if isinstance(difficulty, str) and (not difficulty.strip() or difficulty.strip().lower() == ANY):
        return ANY
    return Difficulty.parse(difficulty).value


class SessionBuilder:
    """Builds immutable, shuffled play sets from the question bank."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def filter_questions(self, questions: Sequence[Question], category: str, difficulty: str) -> List[Question]:
        """
        Select the questions matching both filters.

        Args:
            questions: Candidate questions
            category: Category label, or ANY
            difficulty: Difficulty label, or ANY

        Returns:
            Matching questions in bank order
        """
        matches = []
        for question in questions:
            if category != ANY and question.category != category:
                continue
            if difficulty != ANY and question.difficulty.value != difficulty:
                continue
            matches.append(question)
        return matches

    def prepare_question(self, question: Question) -> PlayQuestion:
        """
        Copy a question into read-only play form and shuffle its answers.

        Args:
            question: Bank question, never modified

        Returns:
            PlayQuestion whose correct_index points at the correct answer
            in the shuffled order
        """
        answers = shuffle([PlayAnswer.from_answer(answer) for answer in question.answers], self._rng)
        correct_index = next(
            (index for index, answer in enumerate(answers) if answer.is_correct),
            -1
        )
        return PlayQuestion(
            text=question.text,
            category=question.category,
            difficulty=question.difficulty,
            answers=tuple(answers),
            correct_index=correct_index,
            image=question.image
        )

    def build(self, bank, category: Optional[str] = ANY, difficulty: Union[Difficulty, str, None] = ANY) -> PlaySet:
        """
        Build a fresh play set for the given filters.

        Args:
            bank: QuestionBank (or any object with a questions() method)
            category: Category filter, ANY or None for all categories
            difficulty: Difficulty filter, ANY or None for all levels

        Returns:
            PlaySet, empty when nothing matches the filters

        Raises:
            ValueError: If the difficulty filter is not a known level
        """
        category = normalize_category(category)
        difficulty = normalize_difficulty(difficulty)

        matches = self.filter_questions(bank.questions(), category, difficulty)
        prepared = [self.prepare_question(question) for question in matches]
        play_set = PlaySet(
            questions=tuple(shuffle(prepared, self._rng)),
            category=category,
            difficulty=difficulty
        )

        logger.debug(
            f"Built play set: category={category}, difficulty={difficulty}, questions={len(play_set)}"
        )
        return play_set
