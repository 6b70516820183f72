from __future__ import annotations


class NotraError(Exception):
    """Base class for errors raised by the learning asset core."""


class TransportFailure(NotraError):
    """
    The completion service call itself could not complete
    (network, auth, quota). Never retried inside the core.
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class StageFailure(NotraError):
    """One attempt of the repair -> parse -> validate funnel failed."""

    stage = "unknown"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RepairFailure(StageFailure):
    stage = "repair"


class ParseFailure(StageFailure):
    stage = "parse"


class ValidationFailure(StageFailure):
    stage = "validate"


class SummarizationDegraded(NotraError):
    """Two-stage summarization produced nothing usable; caller falls back to truncation."""


class GenerationFailure(NotraError):
    """Both attempts of the generation funnel failed."""

    def __init__(self, stage: str, message: str, attempts: int = 2) -> None:
        super().__init__(f"Learning asset generation failed at {stage} after {attempts} attempt(s): {message}")
        self.stage = stage
        self.message = message
        self.attempts = attempts


class EmptyInputError(NotraError, ValueError):
    """Nothing left to generate from once the input is normalized."""
