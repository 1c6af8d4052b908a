"""Invariant forms accepted by InvarianceHarness.

Each form is a small callable protocol. Plain functions and lambdas satisfy
them structurally; nothing needs to subclass anything.

Forms:
    ValueInvariant  - f(subject) -> value, compared with ``==``
    PairInvariant   - f(left, right) -> value, compared with ``==``
    IndexInvariant  - p(index, subject) -> bool, once per element index
    RangeInvariant  - p(lo, hi, subject) -> bool, for a random ``[lo, hi)``
    ActionInvariant - a(subject) -> None, raises on failure
    Validity        - v(subject) -> bool, gates which trials are evaluated
    PairValidity    - v(left, right) -> bool, same for two-subject trials

SubjectProvider is the matching protocol for the generator side.

Python 3.12+.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

__all__ = [
    "ActionInvariant",
    "Context",
    "IndexInvariant",
    "PairInvariant",
    "PairValidity",
    "RangeInvariant",
    "SubjectProvider",
    "Validity",
    "ValueInvariant",
    "always",
    "always_pair",
]

# --- PEP 695 Type Aliases ---

type Context = Mapping[str, object]
"""Auxiliary values attached to a failure (e.g. ``{"index": 3}``)."""


class SubjectProvider(Protocol):
    """Builds a fresh random subject bounded by ``max_keys``. Must be thread-safe."""

    def __call__(self, max_keys: int, /) -> Any: ...


class ValueInvariant[S, T](Protocol):
    def __call__(self, subject: S, /) -> T: ...


class PairInvariant[S, T](Protocol):
    def __call__(self, left: S, right: S, /) -> T: ...


class IndexInvariant[S](Protocol):
    def __call__(self, index: int, subject: S, /) -> bool: ...


class RangeInvariant[S](Protocol):
    def __call__(self, lo: int, hi: int, subject: S, /) -> bool: ...


class ActionInvariant[S](Protocol):
    def __call__(self, subject: S, /) -> Any: ...


class Validity[S](Protocol):
    def __call__(self, subject: S, /) -> bool: ...


class PairValidity[S](Protocol):
    def __call__(self, left: S, right: S, /) -> bool: ...


def always(_subject: object) -> bool:
    """Validity that admits every subject."""
    return True


def always_pair(_left: object, _right: object) -> bool:
    """Validity that admits every pair of subjects."""
    return True
