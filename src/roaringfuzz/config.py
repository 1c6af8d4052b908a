"""Run configuration for InvarianceHarness.

Provides a single frozen dataclass holding every knob that stays fixed for
the lifetime of a harness: default trial count, worker pool size, where
failure artifacts go, and an optional cap on complexity bounds.

Python 3.12+.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from roaringfuzz.constants import ITERATIONS, ITERATIONS_ENV_VAR

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = ["HarnessConfig", "default_workers"]

_ENV_WORKERS = "ROARINGFUZZ_WORKERS"
_ENV_FINDINGS_DIR = "ROARINGFUZZ_FINDINGS_DIR"
_ENV_MAX_KEYS_CAP = "ROARINGFUZZ_MAX_KEYS_CAP"


def default_workers() -> int:
    """Worker count used when none is configured (ThreadPoolExecutor's default)."""
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    """Immutable configuration for InvarianceHarness.

    All fields have sensible defaults; ``HarnessConfig()`` with no arguments
    produces the configuration the catalogue is meant to run under.

    Attributes:
        iterations: Trial count used when a verify call gives none
            (default: ``constants.ITERATIONS``).
        workers: Size of the worker pool each verify call fans out to.
        findings_dir: Directory for JSON failure artifacts. When set and no
            reporter is passed to the harness, a FileReporter writes there.
        max_keys_cap: Upper bound applied to every complexity bound
            (default: None, no cap). Used for quick smoke runs.

    Example:
        >>> from roaringfuzz import HarnessConfig, InvarianceHarness
        >>> config = HarnessConfig(iterations=50, max_keys_cap=16)
        >>> harness = InvarianceHarness(config)
        >>> harness.config.bound(512)
        16
    """

    iterations: int = ITERATIONS
    workers: int = field(default_factory=default_workers)
    findings_dir: Path | None = None
    max_keys_cap: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration values at construction time.

        Raises:
            ValueError: If iterations, workers or max_keys_cap is not positive.
        """
        if self.iterations <= 0:
            msg = "iterations must be positive"
            raise ValueError(msg)
        if self.workers <= 0:
            msg = "workers must be positive"
            raise ValueError(msg)
        if self.max_keys_cap is not None and self.max_keys_cap <= 0:
            msg = "max_keys_cap must be positive"
            raise ValueError(msg)

    def bound(self, max_keys: int) -> int:
        """Apply ``max_keys_cap`` to a requested complexity bound."""
        if self.max_keys_cap is None:
            return max_keys
        return min(max_keys, self.max_keys_cap)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> HarnessConfig:
        """Build a configuration from ``ROARINGFUZZ_*`` environment variables.

        Unset variables keep the dataclass defaults.

        Raises:
            ValueError: If a variable is not a valid integer or fails validation.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        if (raw := env.get(ITERATIONS_ENV_VAR)) is not None:
            kwargs["iterations"] = int(raw)
        if (raw := env.get(_ENV_WORKERS)) is not None:
            kwargs["workers"] = int(raw)
        if raw := env.get(_ENV_FINDINGS_DIR):
            kwargs["findings_dir"] = Path(raw)
        if (raw := env.get(_ENV_MAX_KEYS_CAP)) is not None:
            kwargs["max_keys_cap"] = int(raw)
        return cls(**kwargs)  # type: ignore[arg-type]
