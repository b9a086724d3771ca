"""Undo log for multi-step mutations that must not be left half done."""

import signal
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from git_prl.logging_config import get_logger

logger = get_logger(__name__)

# An undo action returns None on success or an error message
UndoAction = Callable[[], Optional[str]]

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class RollbackTransaction:
    """Ordered undo log that captures cancellation signals while active.

    Inside the ``with`` block SIGINT and SIGTERM are recorded rather than
    acted upon, so a pending external command is allowed to return and the
    caller can unwind whatever it actually created. Handlers are restored on
    exit. Signals can only be intercepted from the main thread; elsewhere the
    transaction still works as a plain undo log.

    Example:
        with RollbackTransaction() as txn:
            make_branch()
            txn.record("branch", delete_branch)
            if txn.interrupted:
                txn.rollback()
    """

    def __init__(self, signals: Iterable[int] = DEFAULT_SIGNALS):
        self.signals = tuple(signals)
        self.steps: List[Tuple[str, UndoAction]] = []
        self.interrupted_by: Optional[int] = None
        self._previous_handlers: Dict[int, Any] = {}

    def _handle_signal(self, signum, frame):
        if self.interrupted_by is None:
            self.interrupted_by = signum
        logger.debug(f"Received signal {signum} during transaction")

    def __enter__(self) -> "RollbackTransaction":
        if threading.current_thread() is threading.main_thread():
            for signum in self.signals:
                self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        else:
            logger.debug("Not on the main thread; cancellation signals are not intercepted")
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        return False

    @property
    def interrupted(self) -> bool:
        return self.interrupted_by is not None

    def record(self, description: str, undo: UndoAction) -> None:
        """Register a completed step and how to undo it."""
        logger.debug(f"Recorded step: {description}")
        self.steps.append((description, undo))

    def commit(self) -> None:
        """Forget all recorded steps; nothing will be undone."""
        self.steps.clear()

    def rollback(self) -> List[str]:
        """Undo recorded steps in reverse order.

        Every undo runs even if an earlier one failed.

        Returns:
            Error messages from undo actions that failed.
        """
        failures: List[str] = []
        while self.steps:
            description, undo = self.steps.pop()
            try:
                error = undo()
            except Exception as e:
                error = str(e)
            if error:
                logger.debug(f"Undo of {description} failed: {error}")
                failures.append(f"{description}: {error}")
            else:
                logger.debug(f"Undid {description}")
        return failures
