"""
Recurring Processing Scheduler

Runs the recurring processor on a background asyncio task: once at
startup (optional) and then on a fixed interval.

DESIGN DECISION: The scheduler is an explicit object with start() and
stop(), owned by whoever runs the application. Nothing starts on import.
Overlapping runs are skipped rather than queued.
"""

import asyncio
from typing import Optional

from finance_tracker.activity import ActivityLogger
from finance_tracker.recurring.processor import RecurringProcessor, RecurringRunSummary


class RecurringScheduler:
    """Background task that drives a RecurringProcessor."""

    def __init__(
        self,
        processor: RecurringProcessor,
        interval_seconds: float = 24 * 60 * 60,
        run_on_startup: bool = True,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("Scheduler interval must be positive")
        self._processor = processor
        self._interval = interval_seconds
        self._run_on_startup = run_on_startup
        self._activity = activity_logger or ActivityLogger()
        self._task: Optional[asyncio.Task] = None
        self._run_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[RecurringRunSummary]:
        """
        Run recurring processing to completion.

        Returns None if another run is still in progress or the run
        failed; errors are logged, never raised.
        """
        if self._run_lock.locked():
            self._activity.log_recurring_skipped("previous run still in progress")
            return None

        async with self._run_lock:
            try:
                return await self._processor.run()
            except Exception as e:
                self._activity.log_error(
                    error_type="recurring_run_failed",
                    error_message=str(e),
                )
                return None

    async def _loop(self) -> None:
        if self._run_on_startup:
            await self.run_once()
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()

    def start(self) -> None:
        """Start the background task. Calling start twice is a no-op."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._loop(),
            name="recurring-scheduler",
        )

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "RecurringScheduler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
