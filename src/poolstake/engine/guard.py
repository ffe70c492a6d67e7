"""Execution guard: re-entrancy lock plus undo journal for atomic operations."""

import logging
from typing import Callable, List

from .errors import ErrorKind, ReentrancyError

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Lock token held for the duration of one mutating operation.

    Nested entry raises instead of queuing. The lock is released on every
    exit path.
    """

    def __init__(self):
        self._entered = False

    @property
    def entered(self) -> bool:
        return self._entered

    def __enter__(self):
        if self._entered:
            raise ReentrancyError(ErrorKind.REENTRANT_CALL)
        self._entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self._entered = False
        return False


class UndoJournal:
    """Compensating actions for collaborator side effects.

    Actions run newest first when the enclosing operation fails.
    """

    def __init__(self):
        self._actions: List[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._actions)

    def record(self, action: Callable[[], None]):
        self._actions.append(action)

    def rollback(self):
        while self._actions:
            action = self._actions.pop()
            try:
                action()
            except Exception:
                # Keep unwinding; the operation's own exception propagates
                logger.exception("Compensating action failed during rollback")
