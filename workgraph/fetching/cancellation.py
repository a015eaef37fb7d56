"""Cooperative cancellation token threaded through every fetch suspension point."""
from typing import Optional


class CancellationToken:
    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        # First reason sticks
        if not self._cancelled:
            self._cancelled = True
            self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def __repr__(self):
        return f"CancellationToken(cancelled={self._cancelled}, reason={self._reason!r})"
