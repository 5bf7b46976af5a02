"""
cadence.cancel - Cooperative cancellation for analysis calls.
"""

from __future__ import annotations

import threading

from cadence.exceptions import AnalysisCancelled


class CancellationToken:
    """Caller-owned flag that analysis stages poll between units of work.

    One token may be shared by every task of a single analysis call; it is
    safe to cancel from any thread. Child tokens follow their parent's
    cancellation without being able to cancel it.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "cancelled"
        self._lock = threading.Lock()
        self._children: list[CancellationToken] = []

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            children, self._children = self._children, []
        for child in children:
            child.cancel(reason)

    def child(self) -> CancellationToken:
        """A token cancelled along with this one, not the other way round."""
        token = CancellationToken()
        with self._lock:
            if not self._event.is_set():
                self._children.append(token)
                return token
        token.cancel(self._reason)
        return token

    def detach(self, child: CancellationToken) -> None:
        """Stop propagating cancellation to ``child``."""
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisCancelled if cancellation was requested."""
        if self._event.is_set():
            raise AnalysisCancelled(self._reason)

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


def check(token: CancellationToken | None) -> None:
    """Raise AnalysisCancelled if ``token`` is set; no-op for None."""
    if token is not None:
        token.raise_if_cancelled()
