"""
Per-question countdown timer for the Trivia Quiz.
Polls a fixed deadline and fires a timeout signal at most once per start.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(timer_name: str, duration: float, generation: int, polling: bool) -> None:
        logger.debug(
            f"Timer lifecycle: START - Timer {timer_name}, Duration {duration}s, Generation {generation}",
            extra={
                'event_type': 'timer_start',
                'timer_name': timer_name,
                'duration': duration,
                'generation': generation,
                'polling': polling,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_expired(timer_name: str, generation: int, overshoot: float) -> None:
        """Log natural expiry, including how far polling overshot the deadline."""
        logger.info(
            f"Timer lifecycle: EXPIRED - Timer {timer_name}, Generation {generation}, Overshoot {overshoot:.3f}s",
            extra={
                'event_type': 'timer_expired',
                'timer_name': timer_name,
                'generation': generation,
                'overshoot': overshoot,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_cancelled(timer_name: str, generation: int, remaining: float) -> None:
        logger.debug(
            f"Timer lifecycle: CANCELLED - Timer {timer_name}, Generation {generation}, Remaining {remaining:.3f}s",
            extra={
                'event_type': 'timer_cancelled',
                'timer_name': timer_name,
                'generation': generation,
                'remaining_time': remaining,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_stale_signal(timer_name: str, details: str) -> None:
        """Log a timeout that arrived for a question that is no longer current."""
        logger.warning(
            f"Timer lifecycle: STALE_SIGNAL - Timer {timer_name}: {details}",
            extra={
                'event_type': 'timer_stale_signal',
                'timer_name': timer_name,
                'details': details,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(timer_name: str, error_type: str, error_message: str, operation: str) -> None:
        logger.error(
            f"Timer lifecycle: ERROR - Timer {timer_name}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'timer_name': timer_name,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )


class QuizTimer:
    """
    Countdown against an absolute deadline.

    Each start() opens a new generation. Polling belongs to exactly one
    generation, and a generation fires its timeout callback at most once.
    Starting again or cancelling retires the current generation, so a
    timeout from a previous question can never fire.
    """

    DEFAULT_POLL_INTERVAL = 0.1

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        name: str = "question"
    ):
        """
        Initialize the timer.

        Args:
            poll_interval: Seconds between deadline checks
            clock: Monotonic time source
            name: Label used in lifecycle logs
        """
        self._poll_interval = poll_interval
        self._clock = clock
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._on_timeout: Optional[Callable[[], None]] = None
        self._generation = 0
        self._duration = 0.0
        self._deadline: Optional[float] = None
        self._stopped_at: Optional[float] = None
        self._running = False
        self._fired = False

    def start(self, duration: float, on_timeout: Callable[[], None]) -> int:
        """
        Set a fresh deadline and begin polling for it.

        Inside a running event loop a background task polls every
        poll_interval seconds. Outside one, callers drive the timer by
        calling poll().

        Args:
            duration: Countdown length in seconds
            on_timeout: Called once when the deadline passes

        Returns:
            The generation number of this countdown
        """
        self.cancel()

        self._generation += 1
        self._duration = max(0.0, float(duration))
        self._deadline = self._clock() + self._duration
        self._stopped_at = None
        self._on_timeout = on_timeout
        self._running = True
        self._fired = False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._task = loop.create_task(self._poll_until_expired(self._generation))

        TimerLifecycleLogger.log_timer_start(self._name, self._duration, self._generation, loop is not None)
        return self._generation

    def cancel(self) -> None:
        """Stop the countdown. Safe to call repeatedly."""
        if self._running:
            self._running = False
            self._stopped_at = self._clock()
            TimerLifecycleLogger.log_timer_cancelled(self._name, self._generation, self.remaining)

        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def poll(self) -> bool:
        """
        Check the deadline once, firing the timeout if it has passed.

        Returns:
            True if this call fired the timeout
        """
        if not self._running or self._fired or self._deadline is None:
            return False

        now = self._clock()
        if now < self._deadline:
            return False

        self._fired = True
        self._running = False
        self._stopped_at = self._deadline
        TimerLifecycleLogger.log_timer_expired(self._name, self._generation, now - self._deadline)

        callback, self._on_timeout = self._on_timeout, None
        if callback is not None:
            try:
                callback()
            except Exception as e:
                TimerLifecycleLogger.log_timer_error(self._name, type(e).__name__, str(e), "on_timeout")
                raise
        return True

    async def _poll_until_expired(self, generation: int) -> None:
        try:
            while self._running and generation == self._generation:
                if self.poll():
                    return
                await asyncio.sleep(min(self._poll_interval, self.remaining))
        finally:
            if self._task is not None and self._task is _current_task():
                self._task = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_fired(self) -> bool:
        return self._fired

    @property
    def remaining(self) -> float:
        """Seconds left until the deadline, clamped at zero."""
        if self._deadline is None:
            return 0.0
        now = self._stopped_at if self._stopped_at is not None else self._clock()
        return max(0.0, self._deadline - now)

    @property
    def elapsed(self) -> float:
        """Seconds used so far, clamped to [0, duration]."""
        if self._deadline is None:
            return 0.0
        return min(self._duration, max(0.0, self._duration - self.remaining))


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
