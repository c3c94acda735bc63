"""
Data manager for JSON persistence, quiz set import/export and seeding.
"""
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .models import Answer, Difficulty, ImportFormatError, Question, QuizSet, ValidationError
from .question_bank import QuestionBank


QUIZ_SETS_KEY = "quiz_sets"


class KeyValueStore:
    """
    Process-wide persisted key-value store backed by a single JSON object file.

    A missing file is an empty store. A corrupt file is discarded and the
    store starts over empty. Writes replace the file atomically.
    """

    def __init__(self, path: str):
        """
        Initialize the store and load whatever is on disk.

        Args:
            path: Location of the JSON file
        """
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._read_file()

    def _read_file(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.warning(f"Discarding corrupt store {self.path}: {e}")
            return {}
        except OSError as e:
            self.logger.warning(f"Failed to read store {self.path}, starting empty: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.warning(f"Discarding store {self.path}: top level is {type(data).__name__}, not an object")
            return {}

        return data

    def _write_file(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self._data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
            return True
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to write store {self.path}: {e}")
            return False

    @contextmanager
    def transaction(self) -> Iterator["KeyValueStore"]:
        """Hold the store lock across a read-then-write sequence."""
        with self._lock:
            yield self

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            # Detached copy of the cached value
            return json.loads(json.dumps(self._data[key]))

    def set(self, key: str, value: Any) -> bool:
        """
        Store a JSON-serializable value and flush to disk.

        Returns:
            True if the value reached disk, False if only memory was updated
        """
        with self._lock:
            self._data[key] = json.loads(json.dumps(value))
            return self._write_file()

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            self._write_file()
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())


def answer_to_dict(answer: Answer) -> Dict[str, Any]:
    return {"text": answer.text, "image": answer.image, "isCorrect": answer.is_correct}


def question_to_dict(question: Question) -> Dict[str, Any]:
    return {
        "text": question.text,
        "category": question.category,
        "difficulty": question.difficulty.value,
        "image": question.image,
        "answers": [answer_to_dict(answer) for answer in question.answers],
    }


def quiz_set_to_dict(quiz_set: QuizSet) -> Dict[str, Any]:
    return {"name": quiz_set.name, "questions": [question_to_dict(q) for q in quiz_set.questions]}


class DataManager:
    """Manages quiz set serialization, import/export and the built-in sample set."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        """
        Initialize DataManager.

        Args:
            store: Persisted store holding the question bank snapshot
        """
        self.store = store
        self.logger = logging.getLogger(__name__)
        self.sample_seeded = False

    def parse_quiz_sets(self, data: Any) -> List[QuizSet]:
        """
        Parse and validate a quiz set array.

        Expected structure:
        [
            {
                "name": str,
                "questions": [
                    {
                        "text": str,
                        "category": str,
                        "difficulty": "Easy" | "Medium" | "Hard",
                        "image": str | null,        # Optional
                        "answers": [
                            {"text": str, "image": str | null, "isCorrect": bool}
                        ]
                    }
                ]
            }
        ]

        Args:
            data: Decoded JSON payload

        Returns:
            List of QuizSet objects

        Raises:
            ImportFormatError: If any part of the payload is malformed
        """
        if not isinstance(data, list):
            raise ImportFormatError(f"Quiz sets must be a JSON array, got {type(data).__name__}")

        quiz_sets = []
        for i, set_data in enumerate(data):
            if not isinstance(set_data, dict):
                raise ImportFormatError(f"Quiz set {i} must be an object")

            name = set_data.get("name")
            if not isinstance(name, str) or not name.strip():
                raise ImportFormatError(f"Quiz set {i} needs a non-empty 'name'")

            questions_data = set_data.get("questions")
            if not isinstance(questions_data, list):
                raise ImportFormatError(f"Quiz set '{name}' 'questions' must be an array")

            questions = [
                self._parse_question(question_data, f"Quiz set '{name}' question {j}")
                for j, question_data in enumerate(questions_data)
            ]
            quiz_sets.append(QuizSet(name=name.strip(), questions=questions))

        return quiz_sets

    def _parse_question(self, data: Any, where: str) -> Question:
        if not isinstance(data, dict):
            raise ImportFormatError(f"{where} must be an object")

        for field_name in ("text", "category"):
            if not isinstance(data.get(field_name), str):
                raise ImportFormatError(f"{where} '{field_name}' field must be a string")

        try:
            difficulty = Difficulty.parse(data.get("difficulty"))
        except ValueError as e:
            raise ImportFormatError(f"{where}: {e}") from e

        image = data.get("image")
        if image is not None and not isinstance(image, str):
            raise ImportFormatError(f"{where} 'image' field must be a string")

        answers_data = data.get("answers")
        if not isinstance(answers_data, list):
            raise ImportFormatError(f"{where} 'answers' field must be an array")

        answers = []
        for k, answer_data in enumerate(answers_data):
            if not isinstance(answer_data, dict) or not isinstance(answer_data.get("text"), str):
                raise ImportFormatError(f"{where} answer {k} needs a 'text' string")
            answer_image = answer_data.get("image")
            if answer_image is not None and not isinstance(answer_image, str):
                raise ImportFormatError(f"{where} answer {k} 'image' field must be a string")
            answers.append(Answer(
                text=answer_data["text"],
                is_correct=bool(answer_data.get("isCorrect", False)),
                image=answer_image
            ))

        question = Question(
            text=data["text"],
            category=data["category"],
            difficulty=difficulty,
            answers=answers,
            image=image
        )
        try:
            QuestionBank.validate_question(question)
        except ValidationError as e:
            raise ImportFormatError(f"{where}: {e}") from e
        return question

    def import_quiz_sets(self, file_path: str) -> List[QuizSet]:
        """
        Read quiz sets from a JSON file.

        Raises:
            ImportFormatError: If the file cannot be read, is not JSON, or is
                not a well-formed quiz set array
        """
        path = Path(file_path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ImportFormatError(f"Invalid JSON in {path.name}: {e}") from e
        except OSError as e:
            raise ImportFormatError(f"Failed to read {path}: {e}") from e

        quiz_sets = self.parse_quiz_sets(data)
        self.logger.info(f"Imported {len(quiz_sets)} quiz sets from {path}")
        return quiz_sets

    def export_quiz_sets(self, bank: QuestionBank, file_path: str) -> Path:
        """
        Write the bank's quiz sets to a JSON file.

        Returns:
            Path of the written file

        Raises:
            OSError: If the file cannot be written
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [quiz_set_to_dict(quiz_set) for quiz_set in bank.quiz_sets()]
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        self.logger.info(f"Exported {len(payload)} quiz sets to {path}")
        return path

    def save_bank(self, bank: QuestionBank) -> bool:
        if self.store is None:
            return False
        return self.store.set(QUIZ_SETS_KEY, [quiz_set_to_dict(s) for s in bank.quiz_sets()])

    def load_bank(self) -> QuestionBank:
        """
        Load the persisted bank, seeding the sample set when nothing usable is stored.

        Returns:
            QuestionBank ready for play
        """
        self.sample_seeded = False
        stored = self.store.get(QUIZ_SETS_KEY) if self.store is not None else None

        if stored is not None:
            try:
                bank = QuestionBank(self.parse_quiz_sets(stored))
                self.logger.info(f"Loaded {bank.question_count()} questions from the store")
                return bank
            except ImportFormatError as e:
                self.logger.warning(f"Discarding stored quiz sets: {e}")

        bank = QuestionBank(self.create_sample_quiz_sets())
        self.sample_seeded = True
        self.logger.info("Seeded question bank with the sample quiz set")
        self.save_bank(bank)
        return bank

    def create_sample_quiz_sets(self) -> List[QuizSet]:
        def q(text, category, difficulty, correct, *wrong):
            answers = [Answer(correct, is_correct=True)] + [Answer(option) for option in wrong]
            return Question(text=text, category=category, difficulty=difficulty, answers=answers)

        return [
            QuizSet(name="Sample", questions=[
                q("What does HTML stand for?", "Web", Difficulty.EASY,
                  "Hyper Text Markup Language", "HighText Machine Language", "Home Tool Markup Language"),
                q("In which year was JavaScript introduced?", "Web", Difficulty.MEDIUM,
                  "1995", "1993", "1997"),
                q("Which HTTP status code means 'Not Found'?", "Web", Difficulty.EASY,
                  "404", "400", "500", "302"),
                q("Which CSS property controls the stacking order of elements?", "Web", Difficulty.MEDIUM,
                  "z-index", "order", "stack", "layer"),
                q("What is the capital of Australia?", "Geography", Difficulty.MEDIUM,
                  "Canberra", "Sydney", "Melbourne", "Perth"),
                q("Which river flows through Cairo?", "Geography", Difficulty.EASY,
                  "Nile", "Tigris", "Danube", "Congo"),
                q("Which is the deepest point in the world's oceans?", "Geography", Difficulty.HARD,
                  "Challenger Deep", "Puerto Rico Trench", "Java Trench", "Tonga Trench"),
                q("What is the chemical symbol for gold?", "Science", Difficulty.EASY,
                  "Au", "Ag", "Gd", "Go"),
                q("Which particle carries no electric charge?", "Science", Difficulty.MEDIUM,
                  "Neutron", "Proton", "Electron", "Positron"),
                q("What is the half-life of carbon-14, to the nearest thousand years?", "Science", Difficulty.HARD,
                  "6,000 years", "1,000 years", "14,000 years", "50,000 years"),
            ])
        ]
