# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Caller-supplied cancellation for long generation / resolution passes."""

import threading
import time
from typing import Optional

from oncall_roster.core.errors import OperationCancelled


class CancellationToken:
    """Cooperative cancellation: an explicit cancel flag plus an optional deadline.

    Work loops call :meth:`raise_if_cancelled` between units of work; anything
    already committed before the check stays committed.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def never(cls) -> "CancellationToken":
        return cls()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancelled:
            raise OperationCancelled(f"{operation}: cancelled")
