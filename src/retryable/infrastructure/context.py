"""Cancellable request contexts with deadlines.

A context bounds the lifetime of an operation. Contexts form a tree: a child
never outlives its parent's deadline, and cancelling a parent cancels every
live child. Use a derived context as a context manager so it is released
when the bounded operation finishes::

    with RequestContext.background().with_timeout(30) as ctx:
        ctx.wait(1.5)
"""

import threading
import time
from typing import Callable, Optional, Set

from retryable.errors import Cancelled, ContextError, DeadlineExceeded


class RequestContext:
    """Cancellation signal and optional deadline shared by nested operations"""

    def __init__(
        self,
        deadline: Optional[float] = None,
        parent: Optional["RequestContext"] = None,
    ):
        """Initialize context

        Args:
            deadline: Absolute deadline on the ``time.monotonic()`` clock
            parent: Parent context; its deadline and cancellation are inherited
        """
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline
        self._parent = parent
        self._cancelled = threading.Event()
        self._children: Set["RequestContext"] = set()
        self._lock = threading.Lock()
        if parent is not None:
            parent._attach(self)

    @classmethod
    def background(cls) -> "RequestContext":
        """Create a root context that is never cancelled and has no deadline."""
        return cls()

    def with_timeout(self, seconds: float) -> "RequestContext":
        """Derive a child context that expires after ``seconds``."""
        return RequestContext(deadline=time.monotonic() + seconds, parent=self)

    def with_cancel(self) -> "RequestContext":
        """Derive a child context that can be cancelled independently."""
        return RequestContext(parent=self)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline (None when there is no deadline)."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        """Cancel this context and all of its children."""
        self._cancelled.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

    def error(self) -> Optional[ContextError]:
        """Return why the context ended, or None while it is still active."""
        if self._cancelled.is_set():
            return Cancelled()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceeded()
        return None

    def done(self) -> bool:
        return self.error() is not None

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless the context ends first.

        Raises:
            Cancelled: If the context is (or becomes) cancelled
            DeadlineExceeded: If the deadline passes before the sleep completes
        """
        err = self.error()
        if err is not None:
            raise err
        if seconds <= 0:
            return

        end = time.monotonic() + seconds
        while True:
            now = time.monotonic()
            if self._deadline is not None and self._deadline < end and now >= self._deadline:
                raise DeadlineExceeded()
            if now >= end:
                return
            timeout = end - now
            if self._deadline is not None:
                timeout = min(timeout, self._deadline - now)
            if self._cancelled.wait(min(timeout, threading.TIMEOUT_MAX)):
                raise Cancelled()

    def after_func(self, func: Callable[[], None]) -> Callable[[], bool]:
        """Run ``func`` in its own thread once the context ends.

        Returns:
            A ``stop`` callable. Calling it before the context ends prevents
            ``func`` from running and returns True; it returns False if
            ``func`` has already been started.
        """
        lock = threading.Lock()
        state = {"stopped": False, "started": False}

        def watch() -> None:
            while self.error() is None:
                timeout = self.remaining()
                self._cancelled.wait(None if timeout is None else min(timeout, threading.TIMEOUT_MAX))
            with lock:
                if state["stopped"]:
                    return
                state["started"] = True
            func()

        def stop() -> bool:
            with lock:
                if state["started"]:
                    return False
                state["stopped"] = True
                return True

        threading.Thread(target=watch, name="request-context-watch", daemon=True).start()
        return stop

    def close(self) -> None:
        """Release the context: cancel it and detach it from its parent."""
        self.cancel()
        if self._parent is not None:
            self._parent._detach(self)

    def _attach(self, child: "RequestContext") -> None:
        with self._lock:
            self._children.add(child)
        if self._cancelled.is_set():
            child.cancel()

    def _detach(self, child: "RequestContext") -> None:
        with self._lock:
            self._children.discard(child)

    def __enter__(self) -> "RequestContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
