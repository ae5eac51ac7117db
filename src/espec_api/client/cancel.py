"""Cancellation tokens threaded through upstream calls.

A token is created per incoming HTTP request and cancelled when that request
finishes, so multi-call operations (page walks, sagas) stop issuing upstream
calls once nobody is waiting for them.
"""

import threading
from typing import Optional

from espec_api.client.exceptions import RequestCancelledError


class CancelToken:
    """Cooperative cancellation flag checked before every upstream call."""

    def __init__(self):
        self._cancelled = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "request finished") -> None:
        self._reason = reason
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise RequestCancelledError if the token has fired."""
        if self.cancelled:
            raise RequestCancelledError(f"Operação cancelada: {self._reason}", status_code=499)
