class WalkForwardError(Exception):
    """Base class for walk-forward engine failures."""


class WalkForwardValidationError(WalkForwardError, ValueError):
    """Raised before any evaluation when the run configuration is malformed."""


class WalkForwardAbortedError(WalkForwardError):
    """Raised when a run observes its cancellation token. No partial result is produced."""

    def __init__(self, message: str = "Walk-forward analysis aborted"):
        super().__init__(message)
