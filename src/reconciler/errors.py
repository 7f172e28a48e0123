# src/reconciler/errors.py


class ReconcileError(Exception):
    """Base class for all errors raised by the reconciliation engine."""


class ContentInputError(ReconcileError):
    """
    Raised when an auxiliary content input (FAQ bank, graph template,
    disclosure text) cannot be read or parsed.
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class StageError(ReconcileError):
    """Aborts the remaining pipeline stages for the current document."""
