"""Graceful Shutdown — explicit state machine with a hard deadline.

States:
    RUNNING ──begin()──▶ DRAINING ──mark_closed()──▶ CLOSED
                             │
                             └──deadline elapsed──▶ FORCED_EXIT (exit code 1)

Invariants:
    - begin() is idempotent: only the first trigger starts draining and arms the deadline
    - The deadline timer is cancelled the moment the process reaches CLOSED
    - The deadline fires from its own thread, so a blocked event loop cannot hold the process
    - Uncaught loop/thread faults route through begin(), never crash the process directly
"""

import logging
import os
import threading
from typing import Any, Callable

from restaurant_api.core.domain_types import ShutdownState

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECONDS = 10.0


class ShutdownCoordinator:
    """Owns the shutdown state of one server process."""

    def __init__(
        self,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        *,
        exit_func: Callable[[int], Any] = os._exit,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.deadline_seconds = deadline_seconds
        self._exit = exit_func
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._state = ShutdownState.RUNNING
        self._timer = None
        self._stop_listener: Callable[[], None] | None = None
        self.reason: str | None = None

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def exit_code(self) -> int:
        return 1 if self._state is ShutdownState.FORCED_EXIT else 0

    def attach(self, stop_listener: Callable[[], None]) -> None:
        """Register the callback that makes the HTTP listener stop accepting."""
        self._stop_listener = stop_listener

    def begin(self, reason: str) -> bool:
        """RUNNING → DRAINING. Returns False when shutdown is already underway."""
        with self._lock:
            if self._state is not ShutdownState.RUNNING:
                logger.info(
                    f"Shutdown already {self._state.value}, ignoring {reason}",
                    extra={"state": self._state.value, "reason": reason},
                )
                return False
            self._state = ShutdownState.DRAINING
            self.reason = reason
            self._timer = self._timer_factory(self.deadline_seconds, self._on_deadline)
            self._timer.daemon = True
            self._timer.start()
        logger.info(
            f"Shutting down ({reason}): draining in-flight requests",
            extra={"state": ShutdownState.DRAINING.value, "reason": reason},
        )
        if self._stop_listener is not None:
            self._stop_listener()
        return True

    def mark_closed(self) -> None:
        """Listener stopped and pool closed: DRAINING (or RUNNING) → CLOSED."""
        with self._lock:
            if self._state in (ShutdownState.CLOSED, ShutdownState.FORCED_EXIT):
                return
            self._state = ShutdownState.CLOSED
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        logger.info("Shutdown complete", extra={"state": ShutdownState.CLOSED.value})

    def _on_deadline(self) -> None:
        with self._lock:
            if self._state is not ShutdownState.DRAINING:
                return
            self._state = ShutdownState.FORCED_EXIT
        logger.error(
            f"Graceful shutdown exceeded {self.deadline_seconds}s, forcing exit",
            extra={"state": ShutdownState.FORCED_EXIT.value},
        )
        self._exit(1)

    # ─── Fault hooks ─────────────────────────────────────────────

    def handle_loop_exception(self, loop, context: dict) -> None:
        """asyncio loop exception handler: log, then shut down on real faults."""
        exc = context.get("exception")
        message = context.get("message", "Unhandled exception in event loop")
        if isinstance(exc, ConnectionError):
            # client went away mid-response
            logger.warning(f"{message}: {exc}")
            return
        logger.error(
            f"Uncaught async fault: {message}",
            exc_info=(type(exc), exc, exc.__traceback__) if exc else None,
        )
        self.begin("uncaught async fault")

    def handle_thread_exception(self, args) -> None:
        """threading.excepthook replacement."""
        if issubclass(args.exc_type, SystemExit):
            return
        logger.error(
            f"Uncaught exception in thread {getattr(args.thread, 'name', '?')}",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        self.begin("uncaught thread fault")
