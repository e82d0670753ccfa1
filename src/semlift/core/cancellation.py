"""
Cancellation support for lifts and paginated fetches.

A token is checked before every pipeline step and before every API page, so
an enclosing caller can abandon work promptly from another thread.
"""

import threading
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class CancellationToken(Protocol):
    """Protocol for cancellation tokens."""

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        ...

    def throw_if_cancelled(self) -> None:
        """Raise exception if cancelled."""
        ...


class OperationCancelledException(Exception):
    """Raised when a lift or fetch is cancelled."""
    pass


class SimpleCancellationToken:
    """Thread-safe cancellation token."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    def is_cancelled(self) -> bool:
        """Check if cancelled."""
        return self._event.is_set()

    def throw_if_cancelled(self) -> None:
        """Raise if cancelled."""
        if self._event.is_set():
            raise OperationCancelledException("Operation cancelled")


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Raise OperationCancelledException if ``token`` is set and cancelled."""
    if token is not None:
        token.throw_if_cancelled()
