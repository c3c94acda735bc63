"""
Core data models for the Trivia Quiz.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple


ANY = "any"


class QuizError(Exception):
    """Base exception for trivia quiz errors."""
    pass


class ValidationError(QuizError):
    """Raised when an authored question or answer is malformed."""
    pass


class InvalidInputError(QuizError):
    """Raised when an answer index is out of range for the current question."""
    pass


class ImportFormatError(QuizError):
    """Raised when an imported payload is not a well-formed quiz set array."""
    pass


class Difficulty(Enum):
    """Question difficulty levels."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value) -> "Difficulty":
        """
        Parse a difficulty from its label, case-insensitively.

        Raises:
            ValueError: If the label is not a known difficulty
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        raise ValueError(f"Unknown difficulty: {value!r}")


@dataclass
class Answer:
    """A single answer option, owned by exactly one question."""
    text: str
    is_correct: bool = False
    image: Optional[str] = None


@dataclass(frozen=True)
class PlayAnswer:
    """Read-only copy of an answer, as shown during a run."""
    text: str
    is_correct: bool = False
    image: Optional[str] = None

    @classmethod
    def from_answer(cls, answer: Answer) -> "PlayAnswer":
        return cls(text=answer.text, is_correct=answer.is_correct, image=answer.image)


@dataclass
class Question:
    """Represents a single multiple-choice question in the bank."""
    text: str
    category: str
    difficulty: Difficulty
    answers: List[Answer] = field(default_factory=list)
    image: Optional[str] = None

    def correct_index(self) -> int:
        """Index of the first answer flagged correct, or -1 if none."""
        for index, answer in enumerate(self.answers):
            if answer.is_correct:
                return index
        return -1


@dataclass
class QuizSet:
    """A named group of questions, the unit of import and export."""
    name: str
    questions: List[Question] = field(default_factory=list)


@dataclass
class QuizSettings:
    """Configuration settings for quiz runs."""
    timer_duration: int = 20
    poll_interval: float = 0.1
    default_category: str = ANY
    default_difficulty: str = ANY


@dataclass(frozen=True)
class PlayQuestion:
    """A copied question with shuffled, read-only answers for one run."""
    text: str
    category: str
    difficulty: Difficulty
    answers: Tuple[PlayAnswer, ...]
    correct_index: int
    image: Optional[str] = None


@dataclass(frozen=True)
class PlaySet:
    """Ordered, immutable sequence of questions for one run."""
    questions: Tuple[PlayQuestion, ...]
    category: str = ANY
    difficulty: str = ANY

    def __len__(self) -> int:
        return len(self.questions)

    def __getitem__(self, index: int) -> PlayQuestion:
        return self.questions[index]

    @property
    def is_empty(self) -> bool:
        return not self.questions


@dataclass(frozen=True)
class SummaryRow:
    """Audit record of how one question in a run was resolved."""
    question_text: str
    answers: Tuple[str, ...]
    correct_index: int
    selected_index: Optional[int]
    was_correct: bool
    time_used: float = 0.0

    @property
    def timed_out(self) -> bool:
        return self.selected_index is None


@dataclass(frozen=True)
class ScoreEntry:
    """The persisted outcome of one completed run."""
    player_name: str
    category: str
    difficulty: str
    score: int
    total: int
    percent: int
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "name": self.player_name,
            "category": self.category,
            "difficulty": self.difficulty,
            "score": self.score,
            "total": self.total,
            "percent": self.percent,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreEntry":
        """
        Rebuild an entry from its stored form.

        Raises:
            ValueError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("Score entry must be an object")
        try:
            entry = cls(
                player_name=str(data["name"]),
                category=str(data["category"]),
                difficulty=str(data["difficulty"]),
                score=int(data["score"]),
                total=int(data["total"]),
                percent=int(data["percent"]),
                timestamp=str(data["timestamp"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed score entry: {e}") from e
        # Timestamp must be ISO 8601
        entry.recorded_at()
        return entry

    def recorded_at(self) -> datetime:
        """Timestamp as an aware datetime; naive values are read as UTC."""
        moment = datetime.fromisoformat(self.timestamp)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment

    def sort_key(self) -> Tuple[int, int, datetime]:
        return (self.percent, self.score, self.recorded_at())
