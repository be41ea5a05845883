"""One-shot timer that restores the exchange screen after a terminal outcome."""

import asyncio
import logging
from typing import Callable, List, Optional

from ...config import DEFAULT_RESET_DELAY_SECONDS
from .models import OperationState, OperationStatus
from .tracker import TransactionStateTracker


class ResetScheduler:
    """
    Fires ``on_reset`` once, ``delay_seconds`` after a watched tracker
    reaches SUCCEEDED or FAILED.

    At most one timer is outstanding. A new submission on any watched
    tracker invalidates the pending timer.
    """

    def __init__(
        self,
        on_reset: Callable[[], None],
        delay_seconds: float = DEFAULT_RESET_DELAY_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self._on_reset = on_reset
        self.delay_seconds = delay_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._timer: Optional[asyncio.Task] = None
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def watch(self, tracker: TransactionStateTracker) -> None:
        self._unsubscribers.append(tracker.subscribe(self._on_status_change))

    def close(self) -> None:
        """Stop watching and drop any pending timer."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.cancel()

    def schedule(self) -> None:
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire_after_delay())
        self.logger.debug(f"Reset scheduled in {self.delay_seconds}s")

    def cancel(self) -> None:
        if self._timer and not self._timer.done():
            self._timer.cancel()
            self.logger.debug("Pending reset cancelled")
        self._timer = None

    def _on_status_change(self, previous: OperationState, current: OperationState) -> None:
        if current.status == OperationStatus.PENDING_SIGNATURE:
            self.cancel()
        elif current.is_terminal:
            self.schedule()

    async def _fire_after_delay(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._timer = None
        self.logger.info("Resetting exchange state")
        self._on_reset()
