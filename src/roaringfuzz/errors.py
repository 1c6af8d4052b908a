"""Exception hierarchy for the invariance harness.

Hierarchy:
    HarnessError (base)
    ├─ InvariantViolationError (also an AssertionError)
    ├─ SubjectGenerationError (subject provider failure)
    └─ FindingFormatError (unreadable failure artifact)

Invariant violations and generation errors are run-fatal: the harness
reports them and re-raises the same object. Errors raised by reporter sinks
are never part of this hierarchy; the harness logs and discards them.

Python 3.12+.
"""

from __future__ import annotations

from typing import final

__all__ = [
    "FindingFormatError",
    "HarnessError",
    "InvariantViolationError",
    "SubjectGenerationError",
]


class HarnessError(Exception):
    """Base exception for all harness errors."""


@final
class InvariantViolationError(HarnessError, AssertionError):
    """An invariant did not hold for a generated trial.

    Subclasses AssertionError so that pytest and plain ``assert`` handlers
    treat it like any other failed expectation.

    Attributes:
        expected: Value the invariant required
        actual: Value the trial produced
    """

    def __init__(self, message: str, *, expected: object = None, actual: object = None) -> None:
        """Initialize InvariantViolationError.

        Args:
            message: Human-readable description of the mismatch
            expected: Value the invariant required
            actual: Value the trial produced
        """
        super().__init__(message)
        self.expected = expected
        self.actual = actual

    @classmethod
    def mismatch(cls, expected: object, actual: object) -> InvariantViolationError:
        """Build the error for an equality check that failed."""
        return cls(f"expected {expected!r} but was {actual!r}", expected=expected, actual=actual)

    @classmethod
    def falsified(cls, actual: object) -> InvariantViolationError:
        """Build the error for a predicate that did not return True."""
        return cls(f"expected predicate to hold but it returned {actual!r}", expected=True, actual=actual)


@final
class SubjectGenerationError(HarnessError):
    """The subject provider failed to construct a subject.

    Always raised ``from`` the provider's original exception.

    Attributes:
        max_keys: Complexity bound the provider was called with
    """

    def __init__(self, message: str, max_keys: int) -> None:
        super().__init__(message)
        self.max_keys = max_keys


@final
class FindingFormatError(HarnessError):
    """A failure artifact could not be read back.

    Attributes:
        path: Location of the offending artifact, if it came from disk
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
