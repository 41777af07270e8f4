"""
=============================================================================
CONCURRENCY LIMITER
=============================================================================

Bounds how many connection handlers run at the same time.

=============================================================================
WHY LIMIT CONCURRENCY?
=============================================================================

The server starts one thread per accepted connection:

    for connection in accept_connections():
        Thread(target=handle, args=(connection,)).start()

Without a limit, a flood of 10,000 connections means 10,000 threads, each
with its own stack. The limiter puts a ceiling on that:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ADMISSION CONTROL                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Kernel backlog          Acceptor              Handlers (max 3)    │
    │   ┌──┬──┬──┬──┐                                 ┌────┐ ┌────┐ ┌────┐│
    │   │c5│c6│c7│..│  ──►  accept() → c4  ──►  ⏸    │ c1 │ │ c2 │ │ c3 ││
    │   └──┴──┴──┴──┘         acquire() blocks        └────┘ └────┘ └────┘│
    │                         until a handler                              │
    │                         calls release()                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

It is a gate, not a queue: at most one accepted connection waits for a
slot (inside the acceptor). Everything else waits in the kernel backlog.

=============================================================================
SEMAPHORE INSTEAD OF POLLING
=============================================================================

A naive version spins on the counter:

    while active >= ceiling:
        sleep(0.01)          ← adds latency AND burns CPU

A BoundedSemaphore blocks the acceptor until a release() wakes it up.
The counter next to it is only for observation (active, peak); the
semaphore alone enforces the ceiling.

BoundedSemaphore (rather than Semaphore) raises ValueError if release()
is called more times than acquire(). A double release is a bug in the
handler and should be loud.

=============================================================================
"""

import logging
import threading
from typing import Optional


logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """
    Counting gate for connection handlers.

    Usage:
        limiter = ConcurrencyLimiter(10)

        limiter.acquire()           # acceptor, blocks at ceiling
        try:
            handle(conn)            # handler thread
        finally:
            limiter.release()       # exactly once per acquire

    Invariant: 0 <= active <= ceiling at every observation.
    """

    def __init__(self, ceiling: int):
        """
        Args:
            ceiling: Maximum number of concurrently admitted handlers.
        """
        if ceiling < 1:
            raise ValueError(f"ceiling must be >= 1, got {ceiling}")

        self.ceiling = ceiling
        self._slots = threading.BoundedSemaphore(ceiling)

        # Observation only; guarded by _lock
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0
        self._admitted = 0

        # Signalled whenever active drops to zero
        self._idle = threading.Condition(self._lock)

    # =========================================================================
    # GATE
    # =========================================================================

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Block until a slot is free, then take it.

        Args:
            timeout: Give up after this many seconds. None = wait forever.

        Returns:
            True if a slot was taken, False on timeout.
        """
        if timeout is None:
            acquired = self._slots.acquire()
        else:
            acquired = self._slots.acquire(timeout=timeout)

        if not acquired:
            return False

        with self._lock:
            self._active += 1
            self._admitted += 1
            if self._active > self._peak:
                self._peak = self._active
        return True

    def release(self):
        """
        Give a slot back. Call exactly once per successful acquire().

        Raises:
            ValueError: If there is nothing to release.
        """
        with self._lock:
            if self._active == 0:
                raise ValueError("release() called without a matching acquire()")
            self._active -= 1
            if self._active == 0:
                self._idle.notify_all()

        # Decrement first so a woken acquirer never sees active == ceiling + 1
        self._slots.release()

    # =========================================================================
    # OBSERVATION
    # =========================================================================

    @property
    def active(self) -> int:
        """Handlers currently holding a slot."""
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        """Highest value active has reached."""
        with self._lock:
            return self._peak

    @property
    def admitted(self) -> int:
        """Total successful acquire() calls."""
        with self._lock:
            return self._admitted

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until no handler holds a slot.

        Returns:
            True if idle, False if the timeout expired first.
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout)

    def __repr__(self) -> str:
        return f"ConcurrencyLimiter(active={self.active}, ceiling={self.ceiling})"
