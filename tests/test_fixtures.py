"""
Test fixtures and sample data for Trivia Quiz tests.
"""
import json
import random
from pathlib import Path
from typing import Dict, List
from unittest.mock import AsyncMock, Mock

from trivia_quiz.config_manager import ConfigManager
from trivia_quiz.data_manager import KeyValueStore
from trivia_quiz.models import Answer, Difficulty, Question, QuizSet, ScoreEntry
from trivia_quiz.question_bank import QuestionBank
from trivia_quiz.quiz_engine import QuizEngine
from trivia_quiz.quiz_timer import QuizTimer
from trivia_quiz.session_builder import SessionBuilder


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def make_question(text: str, category: str = "Science", difficulty: Difficulty = Difficulty.EASY,
                      correct: str = "Right", wrong=("Wrong 1", "Wrong 2")) -> Question:
        answers = [Answer(correct, is_correct=True)] + [Answer(option) for option in wrong]
        return Question(text=text, category=category, difficulty=difficulty, answers=answers)

    @staticmethod
    def create_sample_questions() -> List[Question]:
        """Create sample questions for testing."""
        make = TestFixtures.make_question
        return [
            make("What is H2O?", "Science", Difficulty.EASY, "Water", ("Salt", "Air")),
            make("What is the speed of light?", "Science", Difficulty.HARD, "299,792 km/s", ("1,000 km/s", "30,000 km/s")),
            make("What is the capital of France?", "Geography", Difficulty.EASY, "Paris", ("London", "Berlin", "Madrid")),
            make("What is the longest river?", "Geography", Difficulty.MEDIUM, "Nile", ("Amazon", "Yangtze")),
            make("Who wrote Hamlet?", "Literature", Difficulty.MEDIUM, "Shakespeare", ("Marlowe", "Jonson")),
        ]

    @staticmethod
    def create_sample_bank() -> QuestionBank:
        return QuestionBank([QuizSet(name="General", questions=TestFixtures.create_sample_questions())])

    @staticmethod
    def create_two_question_bank() -> QuestionBank:
        make = TestFixtures.make_question
        return QuestionBank([QuizSet(name="Pair", questions=[
            make("First?", "Pair", Difficulty.EASY, "Yes", ("No",)),
            make("Second?", "Pair", Difficulty.EASY, "Yes", ("No",)),
        ])])

    @staticmethod
    def create_engine(bank: QuestionBank = None, seed: int = 7, timer_duration: int = 10):
        """Create an engine driven by a fake clock, outside any event loop."""
        clock = FakeClock()
        timer = QuizTimer(poll_interval=0.1, clock=clock)
        engine = QuizEngine(
            bank or TestFixtures.create_sample_bank(),
            session_builder=SessionBuilder(random.Random(seed)),
            timer=timer,
            timer_duration=timer_duration
        )
        return engine, clock

    @staticmethod
    def create_score_entry(name: str = "Ada", score: int = 3, total: int = 5, percent: int = 60,
                           timestamp: str = "2026-01-01T12:00:00+00:00",
                           category: str = "any", difficulty: str = "any") -> ScoreEntry:
        return ScoreEntry(
            player_name=name,
            category=category,
            difficulty=difficulty,
            score=score,
            total=total,
            percent=percent,
            timestamp=timestamp
        )

    @staticmethod
    def create_valid_quiz_sets_json() -> List[Dict]:
        """Create a valid quiz set array."""
        return [
            {
                "name": "Imported",
                "questions": [
                    {
                        "text": "What is 10 + 5?",
                        "category": "Math",
                        "difficulty": "Easy",
                        "image": None,
                        "answers": [
                            {"text": "15", "image": None, "isCorrect": True},
                            {"text": "20", "image": None, "isCorrect": False}
                        ]
                    },
                    {
                        "text": "What is 7 * 8?",
                        "category": "Math",
                        "difficulty": "Medium",
                        "answers": [
                            {"text": "54", "isCorrect": False},
                            {"text": "56", "isCorrect": True},
                            {"text": "58", "isCorrect": False}
                        ]
                    }
                ]
            }
        ]

    @staticmethod
    def create_invalid_quiz_sets_payloads() -> List:
        """Create payloads that must be rejected on import."""
        return [
            {"name": "Not an array", "questions": []},
            "just a string",
            [42],
            [{"questions": []}],
            [{"name": "No questions key"}],
            [{"name": "Bad question", "questions": ["text"]}],
            [{"name": "Bad difficulty", "questions": [{
                "text": "Q?", "category": "C", "difficulty": "Impossible",
                "answers": [{"text": "a", "isCorrect": True}, {"text": "b"}]
            }]}],
            [{"name": "Two correct", "questions": [{
                "text": "Q?", "category": "C", "difficulty": "Easy",
                "answers": [{"text": "a", "isCorrect": True}, {"text": "b", "isCorrect": True}]
            }]}],
        ]

    @staticmethod
    def write_json(path: Path, data) -> Path:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f)
        return path

    @staticmethod
    def create_config_manager(store_path: str, timer_duration: int = 10) -> ConfigManager:
        config = ConfigManager()
        config.set_store_path(store_path)
        config.set_timer_duration(timer_duration)
        return config

    @staticmethod
    def create_store(directory: str) -> KeyValueStore:
        return KeyValueStore(str(Path(directory) / "store.json"))


class MockDiscordObjects:
    """Mock Discord objects for testing."""

    @staticmethod
    def create_mock_interaction(channel_id: int = 12345) -> Mock:
        interaction = Mock()
        interaction.channel = Mock()
        interaction.channel.id = channel_id
        interaction.channel.send = AsyncMock()
        interaction.response = Mock()
        interaction.response.send_message = AsyncMock()
        return interaction
