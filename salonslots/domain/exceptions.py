"""
Domain-specific exception hierarchy for the slot engine.
"""


class SlotEngineError(Exception):
    """Base class for all engine-level errors."""


class InvalidSearchRequestError(SlotEngineError, ValueError):
    """Raised when search parameters are rejected before any computation."""


class ScheduleDataError(SlotEngineError, ValueError):
    """Raised when snapshot data cannot be parsed into the domain model."""


class UpstreamUnavailableError(SlotEngineError):
    """
    Raised when a collaborator read fails.

    A failed read must never be interpreted as "no data": an empty booking
    list would report every slot as free.
    """

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
