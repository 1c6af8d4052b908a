"""roaringfuzz - parallel randomized invariant verification for Roaring bitmaps.

Generates many random compressed integer sets, checks algebraic and
structural invariants across their operations on a worker pool, and writes
a reproducible artifact for every trial that breaks one.

Public API:
    InvarianceHarness - Runs invariant forms over generated subjects
    HarnessConfig - Immutable run configuration
    RunSummary - Outcome counts of a successful verify call
    RoaringSubject - Bitmap under test (adapter over pyroaring.BitMap)
    random_bitmap - Default subject provider
    verify_value, verify_range, verify_derived, verify_pair,
    verify_indexed, verify_action - Entry points on a shared default harness

Reporters:
    FileReporter - JSON artifact per failure
    LoggingReporter - Logs each failure
    MemoryReporter - Keeps failures in memory
    CompositeReporter - Fans out to several reporters
    load_finding - Reads a JSON artifact back

Exceptions:
    HarnessError - Base exception class
    InvariantViolationError - An invariant did not hold
    SubjectGenerationError - The subject provider failed
    FindingFormatError - A failure artifact could not be read

Submodules:
    roaringfuzz.forms - Invariant form protocols
    roaringfuzz.constants - Default trial count and complexity bounds
"""

from .config import HarnessConfig
from .errors import (
    FindingFormatError,
    HarnessError,
    InvariantViolationError,
    SubjectGenerationError,
)
from .generator import random_bitmap
from .harness import (
    InvarianceHarness,
    RunSummary,
    default_harness,
    verify_action,
    verify_derived,
    verify_indexed,
    verify_pair,
    verify_range,
    verify_value,
)
from .reporter import (
    CompositeReporter,
    FailureArtifact,
    FileReporter,
    Finding,
    LoggingReporter,
    MemoryReporter,
    load_finding,
)
from .subject import RoaringSubject

# Version information - Auto-populated from package metadata
# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("roaringfuzz")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "CompositeReporter",
    "FailureArtifact",
    "FileReporter",
    "Finding",
    "FindingFormatError",
    "HarnessConfig",
    "HarnessError",
    "InvariantViolationError",
    "InvarianceHarness",
    "LoggingReporter",
    "MemoryReporter",
    "RoaringSubject",
    "RunSummary",
    "SubjectGenerationError",
    "__version__",
    "default_harness",
    "load_finding",
    "random_bitmap",
    "verify_action",
    "verify_derived",
    "verify_indexed",
    "verify_pair",
    "verify_range",
    "verify_value",
]
