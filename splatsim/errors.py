"""Exceptions and warnings raised by splatsim."""

from typing import Any, Optional


class SplatError(Exception):
    """Base class for all splatsim errors."""


class InvalidInputError(SplatError, ValueError):
    """Input of the wrong kind or with invalid structure."""


class ParameterDomainError(SplatError, ValueError):
    """A parameter was given a value outside its valid domain.

    Attributes:
        field: Name of the offending parameter.
        value: The rejected value.
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field} {reason}, got {value!r}")


class FitConvergenceError(SplatError, RuntimeError):
    """A distribution or curve fit did not converge."""


class EstimationFailedError(SplatError, RuntimeError):
    """An estimation stage failed without a fallback.

    Attributes:
        stage: Name of the estimation stage that failed.
    """

    def __init__(self, stage: str, message: Optional[str] = None) -> None:
        self.stage = stage
        msg = f"Estimation failed in {stage} stage"
        if message:
            msg = f"{msg}: {message}"
        super().__init__(msg)


class FitDegradedWarning(UserWarning):
    """A fit fell back to a less robust method."""
