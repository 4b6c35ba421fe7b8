"""Exception hierarchy for hafiz."""


class HafizError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(HafizError, ValueError):
    """Input that is out of domain and cannot be clamped (e.g. a negative limit)."""


class StoreError(HafizError):
    """The underlying record store failed to read or write."""


class StateInconsistencyError(HafizError):
    """
    A persisted ReviewState violates its invariants.

    Reviews never surface this; the engine logs the anomaly and self-heals.
    Only strict diagnostic checks raise it.
    """

    def __init__(self, word_id: int, reason: str):
        self.word_id = word_id
        self.reason = reason
        super().__init__(f"Inconsistent review state for word {word_id}: {reason}")
