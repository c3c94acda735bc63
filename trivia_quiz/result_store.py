"""
Highscore and run history persistence for the Trivia Quiz.
"""
import logging
from typing import List

from .data_manager import KeyValueStore
from .models import ScoreEntry


HISTORY_KEY = "history"
HIGHSCORE_KEY_PREFIX = "highscores"


def highscore_key(category: str, difficulty: str) -> str:
    return f"{HIGHSCORE_KEY_PREFIX}:{category}:{difficulty}"


def rank_entries(entries: List[ScoreEntry]) -> List[ScoreEntry]:
    """
    Order entries by percent, then score, then timestamp, all descending.

    The sort is stable, so entries with identical keys keep their order.
    """
    return sorted(entries, key=ScoreEntry.sort_key, reverse=True)


class ResultStore:
    """Keeps capped highscore tables per (category, difficulty) and a global history."""

    MAX_HIGHSCORES = 10
    MAX_HISTORY = 25

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.logger = logging.getLogger(__name__)

    def _read_entries(self, key: str) -> List[ScoreEntry]:
        raw = self.store.get(key, [])
        if not isinstance(raw, list):
            self.logger.warning(f"Discarding stored '{key}': expected a list, got {type(raw).__name__}")
            return []

        entries = []
        for item in raw:
            try:
                entries.append(ScoreEntry.from_dict(item))
            except ValueError as e:
                self.logger.warning(f"Skipping malformed entry in '{key}': {e}")
        return entries

    def _write_entries(self, key: str, entries: List[ScoreEntry]) -> None:
        self.store.set(key, [entry.to_dict() for entry in entries])

    def record_run(self, entry: ScoreEntry) -> None:
        """
        Append a completed run to the history and its highscore table.

        Both read-sort-cap-write sequences run under the store lock.

        Args:
            entry: Score entry of the finished run
        """
        key = highscore_key(entry.category, entry.difficulty)
        with self.store.transaction():
            history = [entry] + self._read_entries(HISTORY_KEY)
            self._write_entries(HISTORY_KEY, history[:self.MAX_HISTORY])

            table = rank_entries(self._read_entries(key) + [entry])
            self._write_entries(key, table[:self.MAX_HIGHSCORES])

        self.logger.info(
            f"Recorded run for {entry.player_name}: {entry.score}/{entry.total} ({entry.percent}%) "
            f"in {entry.category}/{entry.difficulty}"
        )

    def top_scores(self, category: str, difficulty: str) -> List[ScoreEntry]:
        return rank_entries(self._read_entries(highscore_key(category, difficulty)))[:self.MAX_HIGHSCORES]

    def recent_history(self) -> List[ScoreEntry]:
        """Most recent runs first."""
        return self._read_entries(HISTORY_KEY)[:self.MAX_HISTORY]

    def clear_highscores(self, category: str, difficulty: str) -> None:
        with self.store.transaction():
            self._write_entries(highscore_key(category, difficulty), [])
        self.logger.info(f"Cleared highscores for {category}/{difficulty}")

    def clear_history(self) -> None:
        with self.store.transaction():
            self._write_entries(HISTORY_KEY, [])
        self.logger.info("Cleared run history")
