import threading
import time
from typing import Optional
from src.forward_engine.adaptive.errors import WalkForwardAbortedError

class CancellationToken:
    """
    Cooperative cancellation flag shared between the caller and the runner's workers.
    A token is cancelled when cancel() was called, its deadline passed, or its parent is cancelled.
    """

    def __init__(self, deadline: Optional[float] = None, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        return cls(deadline=time.monotonic() + seconds)

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self):
        if self.cancelled:
            raise WalkForwardAbortedError()
