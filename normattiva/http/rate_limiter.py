import logging
import time
from threading import Lock
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MinIntervalRateLimiter:
    """
    Enforces a minimum delay between request issuances.

    A single clock is shared by every caller. Each call to wait() reserves
    the next free issuance slot under the lock, then sleeps until that slot
    outside the lock, so concurrent callers are dispatched one `min_delay`
    apart in the order they reserved.
    """

    def __init__(
        self,
        min_delay: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_delay = max(0.0, min_delay)
        self.clock = clock
        self.sleep = sleep
        self.lock = Lock()  # Protect concurrent access
        self._last_issued: Optional[float] = None

    def reserve(self) -> float:
        """
        Reserve the next issuance slot.

        Returns:
            Seconds the caller must wait before issuing its request
        """
        with self.lock:
            now = self.clock()
            if self._last_issued is None:
                slot = now
            else:
                slot = max(now, self._last_issued + self.min_delay)
            self._last_issued = slot
            return slot - now

    def wait(self) -> float:
        """Block until this caller may issue a request. Returns the time waited."""
        wait_seconds = self.reserve()
        # Sleep happens outside the lock to allow other threads to reserve
        if wait_seconds > 0:
            logger.debug(f"Rate limit: sleeping {wait_seconds:.2f}s before next request")
            self.sleep(wait_seconds)
        return wait_seconds
