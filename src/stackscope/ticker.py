"""Interval timer and cooperative cancellation for the polling loops."""

import signal
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

# Longest a pending wait goes without looking at a signal-raised flag.
SIGNAL_CHECK_INTERVAL = 0.2


class CancelToken:
    """A cancellation request shared by a ticker and whoever stops it.

    ``set`` wakes a pending wait at once and is meant for other threads.
    ``set_from_signal`` only flips a flag and takes no lock, so it is safe
    inside a signal handler; a pending wait sees it within
    ``SIGNAL_CHECK_INTERVAL``.
    """

    def __init__(self):
        self._signalled = False
        self._event = threading.Event()

    def is_set(self) -> bool:
        return self._signalled or self._event.is_set()

    def set(self) -> None:
        self._event.set()

    def set_from_signal(self) -> None:
        self._signalled = True

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds. Returns True once cancelled."""
        deadline = time.monotonic() + timeout
        while not self.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._event.wait(min(remaining, SIGNAL_CHECK_INTERVAL))
        return True


class Ticker:
    """Waits out fixed intervals until cancelled.

    ``wait`` blocks on the cancel token rather than sleeping, so a
    cancellation arriving mid-interval ends the wait early.
    """

    def __init__(
        self,
        interval: float,
        cancel: CancelToken | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval < 0:
            raise ValueError("interval must not be negative")
        self.interval = interval
        self._cancel = cancel or CancelToken()
        self._clock = clock
        self._started = clock()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def elapsed(self) -> float:
        """Seconds since the ticker was created."""
        return self._clock() - self._started

    def cancel(self) -> None:
        self._cancel.set()

    def wait(self) -> bool:
        """Wait one interval. Returns False once cancelled."""
        if self._cancel.is_set():
            return False
        return not self._cancel.wait(self.interval)


@contextmanager
def cancel_on_signals(*signums: int) -> Iterator[CancelToken]:
    """Yield a token that is cancelled when one of ``signums`` arrives.

    Defaults to SIGINT and SIGTERM. Previous handlers are restored on exit.
    """
    signums = signums or (signal.SIGINT, signal.SIGTERM)
    token = CancelToken()

    def _handle(signum, frame):
        token.set_from_signal()

    previous = {signum: signal.signal(signum, _handle) for signum in signums}
    try:
        yield token
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
