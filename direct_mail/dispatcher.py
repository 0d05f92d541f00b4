"""Background execution of sends with completion callbacks."""

import logging
import threading
from collections.abc import Callable

from .models.mail import SendOutcome, SendResult

logger = logging.getLogger(__name__)

# Callback type alias
Hook = Callable[[], None]


class SendListener:
    """Zero-argument hooks fired after a send.

    Exactly one of ``on_success`` or ``on_error`` fires, then ``on_complete``.
    """

    def __init__(
        self,
        on_success: Hook | None = None,
        on_error: Hook | None = None,
        on_complete: Hook | None = None,
    ):
        self.on_success = on_success
        self.on_error = on_error
        self.on_complete = on_complete

    def __repr__(self) -> str:
        hooks = [
            name
            for name in ("on_success", "on_error", "on_complete")
            if getattr(self, name) is not None
        ]
        return f"SendListener({', '.join(hooks)})"


class SendTask:
    """Handle for one send running in the background."""

    def __init__(self, name: str = "send"):
        self.name = name
        self._finished = threading.Event()
        self._result: SendResult | None = None

    @property
    def result(self) -> SendResult | None:
        """The send result, or None while the send is running."""
        return self._result

    def done(self) -> bool:
        """Whether the send and its callbacks have finished."""
        return self._finished.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the send and its callbacks have finished.

        Args:
            timeout: Seconds to wait (default: no limit)

        Returns:
            True if finished, False on timeout
        """
        return self._finished.wait(timeout)

    def _finish(self, result: SendResult) -> None:
        self._result = result
        self._finished.set()

    def __repr__(self) -> str:
        state = self._result.outcome.value if self._result else "running"
        return f"SendTask({self.name!r}, {state})"


class Dispatcher:
    """Runs each send as its own unit of background work.

    Every dispatch starts a new thread; there is no pool, queue or retry.
    Worker threads are not daemons, so the interpreter waits for pending
    sends and their callbacks before exiting.
    """

    def dispatch(
        self,
        work: Callable[[], SendResult],
        listener: SendListener | None = None,
        name: str = "send",
    ) -> SendTask:
        """Run ``work`` in a background thread and notify the listener.

        Args:
            work: Blocking callable performing one send attempt
            listener: Hooks to fire when the work finishes
            name: Name for the worker thread

        Returns:
            SendTask for the running work
        """
        task = SendTask(name)
        threading.Thread(
            target=self._run, args=(task, work, listener), name=name, daemon=False
        ).start()
        return task

    def _run(
        self,
        task: SendTask,
        work: Callable[[], SendResult],
        listener: SendListener | None,
    ) -> None:
        result = self.attempt(work, task.name)
        try:
            self.notify(result, listener)
        finally:
            task._finish(result)

    @staticmethod
    def attempt(work: Callable[[], SendResult], name: str = "send") -> SendResult:
        """Run one send attempt, turning any exception into a FAILURE result."""
        try:
            return work()
        except Exception as e:  # noqa: BLE001 - Failures are reported via callbacks
            logger.error(f"Send failed in {name}: {e}")
            return SendResult(
                outcome=SendOutcome.FAILURE,
                error=f"{type(e).__name__}: {e}",
            )

    @staticmethod
    def notify(result: SendResult, listener: SendListener | None) -> None:
        """Fire ``on_success`` or ``on_error``, then ``on_complete``."""
        if listener is None:
            return

        if result.outcome == SendOutcome.SUCCESS:
            _fire(listener.on_success, "on_success")
        else:
            _fire(listener.on_error, "on_error")
        _fire(listener.on_complete, "on_complete")


def _fire(hook: Hook | None, name: str) -> None:
    if hook is None:
        return
    try:
        hook()
    except Exception as e:  # noqa: BLE001 - Must catch all callback errors
        logger.error(f"Callback {name} failed: {e}")
