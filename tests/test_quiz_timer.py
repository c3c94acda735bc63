"""
Unit tests for the per-question countdown timer.
"""
import asyncio
import unittest
from unittest.mock import Mock, patch

from trivia_quiz.quiz_timer import QuizTimer, TimerLifecycleLogger
from tests.test_fixtures import FakeClock


class TestQuizTimerPolling(unittest.TestCase):
    """Test cases for deadline handling driven by poll()."""

    def setUp(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.timer = QuizTimer(clock=self.clock)
        self.on_timeout = Mock()

    def test_initial_state(self):
        self.assertFalse(self.timer.is_running)
        self.assertEqual(self.timer.remaining, 0.0)
        self.assertEqual(self.timer.elapsed, 0.0)
        self.assertFalse(self.timer.poll())

    def test_remaining_counts_down(self):
        self.timer.start(10, self.on_timeout)
        self.clock.advance(3.5)

        self.assertTrue(self.timer.is_running)
        self.assertAlmostEqual(self.timer.remaining, 6.5)
        self.assertAlmostEqual(self.timer.elapsed, 3.5)

    def test_poll_before_deadline_does_not_fire(self):
        self.timer.start(10, self.on_timeout)
        self.clock.advance(9.99)

        self.assertFalse(self.timer.poll())
        self.on_timeout.assert_not_called()

    def test_fires_exactly_once_even_with_overshoot(self):
        """Test that late polls past the deadline fire a single timeout."""
        self.timer.start(5, self.on_timeout)
        self.clock.advance(7.3)

        self.assertTrue(self.timer.poll())
        self.assertFalse(self.timer.poll())
        self.clock.advance(10)
        self.assertFalse(self.timer.poll())

        self.on_timeout.assert_called_once()
        self.assertTrue(self.timer.has_fired)
        self.assertFalse(self.timer.is_running)

    def test_remaining_and_elapsed_are_clamped(self):
        self.timer.start(5, self.on_timeout)
        self.clock.advance(60)

        self.assertEqual(self.timer.remaining, 0.0)
        self.assertEqual(self.timer.elapsed, 5.0)

    def test_cancel_prevents_timeout(self):
        self.timer.start(5, self.on_timeout)
        self.clock.advance(2)
        self.timer.cancel()
        self.clock.advance(10)

        self.assertFalse(self.timer.poll())
        self.on_timeout.assert_not_called()

    def test_cancel_freezes_remaining(self):
        self.timer.start(10, self.on_timeout)
        self.clock.advance(4)
        self.timer.cancel()
        self.clock.advance(3)

        self.assertAlmostEqual(self.timer.remaining, 6.0)
        self.assertAlmostEqual(self.timer.elapsed, 4.0)

    def test_cancel_is_idempotent(self):
        self.timer.cancel()
        self.timer.start(5, self.on_timeout)
        self.timer.cancel()
        self.timer.cancel()
        self.assertFalse(self.timer.is_running)

    def test_restart_discards_previous_deadline(self):
        """Test that restarting before expiry never stacks timeouts."""
        first = Mock()
        second = Mock()
        self.timer.start(5, first)
        self.clock.advance(4)
        self.timer.start(5, second)
        self.clock.advance(2)

        self.assertFalse(self.timer.poll())
        first.assert_not_called()

        self.clock.advance(3)
        self.assertTrue(self.timer.poll())
        first.assert_not_called()
        second.assert_called_once()

    def test_generation_increments_per_start(self):
        self.assertEqual(self.timer.start(5, self.on_timeout), 1)
        self.assertEqual(self.timer.start(5, self.on_timeout), 2)
        self.assertEqual(self.timer.generation, 2)

    def test_callback_error_is_logged_and_raised(self):
        self.timer.start(1, Mock(side_effect=RuntimeError("boom")))
        self.clock.advance(1)

        with patch.object(TimerLifecycleLogger, 'log_timer_error') as log_error:
            with self.assertRaises(RuntimeError):
                self.timer.poll()
            log_error.assert_called_once()


class TestQuizTimerAsync(unittest.IsolatedAsyncioTestCase):
    """Test cases for background polling inside an event loop."""

    async def test_background_polling_fires_timeout(self):
        fired = asyncio.Event()
        timer = QuizTimer(poll_interval=0.01)

        timer.start(0.05, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=2.0)

        self.assertTrue(timer.has_fired)
        self.assertEqual(timer.remaining, 0.0)

    async def test_background_polling_fires_once(self):
        calls = []
        timer = QuizTimer(poll_interval=0.01)

        timer.start(0.03, lambda: calls.append(1))
        await asyncio.sleep(0.2)

        self.assertEqual(calls, [1])

    async def test_cancel_stops_background_task(self):
        calls = []
        timer = QuizTimer(poll_interval=0.01)

        timer.start(0.05, lambda: calls.append(1))
        await asyncio.sleep(0.01)
        timer.cancel()
        await asyncio.sleep(0.15)

        self.assertEqual(calls, [])
        self.assertFalse(timer.is_running)

    async def test_restart_cancels_stale_timeout(self):
        """Test that only the latest start can fire."""
        calls = []
        timer = QuizTimer(poll_interval=0.01)

        timer.start(0.05, lambda: calls.append("old"))
        await asyncio.sleep(0.02)
        timer.start(0.1, lambda: calls.append("new"))
        await asyncio.sleep(0.3)

        self.assertEqual(calls, ["new"])

    async def test_callback_may_restart_timer(self):
        """Test a timeout handler can start the next countdown."""
        calls = []
        timer = QuizTimer(poll_interval=0.01)

        def first_timeout():
            calls.append("first")
            timer.start(0.03, lambda: calls.append("second"))

        timer.start(0.03, first_timeout)
        await asyncio.sleep(0.3)

        self.assertEqual(calls, ["first", "second"])


if __name__ == '__main__':
    unittest.main()
