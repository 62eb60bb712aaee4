import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle returned by TaskScheduler.schedule(); cancel() is idempotent."""

    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self):
        self._timer.cancel()


class TaskScheduler:
    """
    Runs one-shot callables after a delay on daemon threads

    Used for broker reconnect/fallback attempts, the initial dashboard
    snapshot and deferred storage deletes, so none of them block the
    caller (an HTTP request or a paho network-loop callback).
    """

    def __init__(self, name: str = "scheduler"):
        self.name = name

    def schedule(self, delay: float, func: Callable[[], None]) -> ScheduledTask:
        """
        Run func once after delay seconds

        Args:
            delay: Seconds to wait (0 runs as soon as a thread is available)
            func: Zero-argument callable

        Returns:
            ScheduledTask that can cancel the run if it has not started
        """
        timer = threading.Timer(max(0.0, delay), self._run, args=(func,))
        timer.daemon = True
        timer.name = f"{self.name}-{getattr(func, '__name__', 'task')}"
        timer.start()
        return ScheduledTask(timer)

    def _run(self, func: Callable[[], None]):
        try:
            func()
        except Exception as e:
            logger.error(f"Scheduled task failed: {e}", exc_info=True)
