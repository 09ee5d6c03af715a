import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Restartable timer handle.

    ``schedule`` cancels whatever is pending and arms a new timer; only the
    last scheduled callback runs. A delay of zero (or less) runs the callback
    inline, which keeps tests deterministic.
    """

    def __init__(self, delay: float, name: str = "debounce"):
        self.delay = delay
        self.name = name
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Callable[[], Any]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, fn: Callable[..., Any], *args, **kwargs) -> None:
        call = lambda: fn(*args, **kwargs)  # noqa: E731
        if self.delay <= 0:
            self.cancel()
            self._run(call)
            return
        with self._lock:
            self._cancel_locked()
            self._pending = call
            self._timer = threading.Timer(self.delay, self._fire, args=(call,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> bool:
        """Drop the pending callback. Returns True if one was pending."""
        with self._lock:
            return self._cancel_locked()

    def flush(self) -> bool:
        """Run the pending callback now instead of waiting for the timer."""
        with self._lock:
            call = self._pending
            self._cancel_locked()
        if call is None:
            return False
        self._run(call)
        return True

    def _cancel_locked(self) -> bool:
        had_pending = self._pending is not None
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending = None
        return had_pending

    def _fire(self, call: Callable[[], Any]) -> None:
        with self._lock:
            if self._pending is not call:
                return  # superseded
            self._pending = None
            self._timer = None
        self._run(call)

    def _run(self, call: Callable[[], Any]) -> None:
        try:
            call()
        except Exception:
            logger.exception("%s callback failed", self.name)
