"""
Unit tests for Trivia Quiz data models.
"""
import unittest
from datetime import timezone

from trivia_quiz.models import Answer, Difficulty, Question, ScoreEntry, SummaryRow
from tests.test_fixtures import TestFixtures


class TestDifficulty(unittest.TestCase):

    def test_parse_is_case_insensitive(self):
        self.assertIs(Difficulty.parse("easy"), Difficulty.EASY)
        self.assertIs(Difficulty.parse(" HARD "), Difficulty.HARD)
        self.assertIs(Difficulty.parse(Difficulty.MEDIUM), Difficulty.MEDIUM)

    def test_parse_rejects_unknown(self):
        for value in ("Extreme", "", None, 2):
            with self.assertRaises(ValueError):
                Difficulty.parse(value)


class TestQuestion(unittest.TestCase):

    def test_correct_index(self):
        question = Question("Q?", "C", Difficulty.EASY, [Answer("a"), Answer("b", is_correct=True)])
        self.assertEqual(question.correct_index(), 1)

    def test_correct_index_missing(self):
        question = Question("Q?", "C", Difficulty.EASY, [Answer("a"), Answer("b")])
        self.assertEqual(question.correct_index(), -1)


class TestSummaryRow(unittest.TestCase):

    def test_timed_out(self):
        row = SummaryRow("Q?", ("a", "b"), 0, None, False, 10.0)
        self.assertTrue(row.timed_out)
        self.assertFalse(SummaryRow("Q?", ("a", "b"), 0, 1, False, 2.0).timed_out)


class TestScoreEntry(unittest.TestCase):
    """Test cases for ScoreEntry serialization."""

    def test_to_dict_keys(self):
        data = TestFixtures.create_score_entry().to_dict()
        self.assertEqual(
            set(data),
            {"name", "category", "difficulty", "score", "total", "percent", "timestamp"}
        )
        self.assertEqual(data["name"], "Ada")

    def test_from_dict(self):
        entry = TestFixtures.create_score_entry()
        self.assertEqual(ScoreEntry.from_dict(entry.to_dict()), entry)

    def test_from_dict_rejects_missing_field(self):
        data = TestFixtures.create_score_entry().to_dict()
        del data["percent"]
        with self.assertRaises(ValueError):
            ScoreEntry.from_dict(data)

    def test_from_dict_rejects_bad_values(self):
        data = TestFixtures.create_score_entry().to_dict()
        for field, value in (("score", "many"), ("total", None), ("timestamp", "yesterday")):
            broken = dict(data, **{field: value})
            with self.assertRaises(ValueError, msg=field):
                ScoreEntry.from_dict(broken)

    def test_from_dict_rejects_non_object(self):
        with self.assertRaises(ValueError):
            ScoreEntry.from_dict(["Ada", 3])

    def test_naive_timestamp_read_as_utc(self):
        entry = TestFixtures.create_score_entry(timestamp="2026-01-01T12:00:00")
        self.assertEqual(entry.recorded_at().tzinfo, timezone.utc)

    def test_sort_key_orders_by_percent_then_score_then_time(self):
        older = TestFixtures.create_score_entry(timestamp="2026-01-01T00:00:00+00:00")
        newer = TestFixtures.create_score_entry(timestamp="2026-01-02T00:00:00+00:00")
        better = TestFixtures.create_score_entry(score=4, total=5, percent=80)

        self.assertLess(older.sort_key(), newer.sort_key())
        self.assertLess(newer.sort_key(), better.sort_key())


if __name__ == '__main__':
    unittest.main()
