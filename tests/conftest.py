"""Pytest configuration for the roaringfuzz test suite.

Single Source of Truth for Hypothesis max_examples and harness scale:
- dev: Local development (200 examples, 24 trials per invariant)
- ci: CI runs (50 examples, 8 trials per invariant)
- verbose: Debug mode with progress output (100 examples)

Profile auto-detection:
- HYPOTHESIS_PROFILE env var -> explicit override
- CI=true environment variable -> "ci" profile
- Otherwise -> "dev" profile

Fuzzing Test Separation:
Tests marked with @pytest.mark.fuzz run the invariant catalogue at full
default scale (constants.ITERATIONS trials, default complexity bounds).
They are excluded from normal test runs. Run them via: pytest -m fuzz
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from hypothesis import HealthCheck, Phase, Verbosity, settings

from roaringfuzz import HarnessConfig, InvarianceHarness, MemoryReporter

# =============================================================================
# HYPOTHESIS PROFILES - SINGLE SOURCE OF TRUTH
# =============================================================================

settings.register_profile(
    "dev",
    max_examples=200,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

settings.register_profile(
    "ci",
    max_examples=50,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    derandomize=True,
    deadline=None,
    print_blob=True,
    suppress_health_check=[HealthCheck.too_slow],
)

settings.register_profile(
    "verbose",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
    verbosity=Verbosity.verbose,
)


def _detect_profile() -> str:
    """Detect appropriate Hypothesis profile based on execution context.

    Priority:
    1. HYPOTHESIS_PROFILE env var (explicit override)
    2. CI=true env var
    3. Default to "dev"
    """
    explicit = os.environ.get("HYPOTHESIS_PROFILE")
    if explicit in ("dev", "ci", "verbose"):
        return explicit
    if os.environ.get("CI") == "true":
        return "ci"
    return "dev"


PROFILE = _detect_profile()
settings.load_profile(PROFILE)

# Trials per invariant for the small-scale catalogue runs.
SMOKE_ITERATIONS = {"dev": 24, "ci": 8, "verbose": 8}[PROFILE]

# Complexity cap for small-scale runs; keeps generation cheap.
SMOKE_MAX_KEYS_CAP = 4


# =============================================================================
# HARNESS FIXTURES
# =============================================================================


@pytest.fixture
def memory_reporter() -> MemoryReporter:
    return MemoryReporter()


@pytest.fixture
def findings_dir(tmp_path: Path) -> Path:
    return tmp_path / "findings"


@pytest.fixture
def harness(findings_dir: Path) -> InvarianceHarness:
    """Small-scale harness writing failure artifacts under tmp_path."""
    config = HarnessConfig(
        iterations=SMOKE_ITERATIONS,
        workers=4,
        findings_dir=findings_dir,
        max_keys_cap=SMOKE_MAX_KEYS_CAP,
    )
    return InvarianceHarness(config)


@pytest.fixture
def full_harness(findings_dir: Path) -> InvarianceHarness:
    """Harness at default scale, for fuzz-marked runs."""
    return InvarianceHarness(HarnessConfig(findings_dir=findings_dir))


# =============================================================================
# FUZZING TEST SEPARATION
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register the 'fuzz' marker for full-scale invariant runs."""
    config.addinivalue_line(
        "markers",
        "fuzz: Full-scale invariant runs (excluded from normal test runs)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip fuzz-marked tests unless explicitly requested.

    Behavior:
    - Normal test run (pytest tests/): Fuzz tests are SKIPPED
    - Explicit fuzz run (pytest -m fuzz): Fuzz tests run
    """
    marker_expr = config.getoption("-m", default="")
    if "fuzz" in str(marker_expr):
        return

    skip_fuzz = pytest.mark.skip(reason="Full-scale fuzz run - run with: pytest -m fuzz")
    for item in items:
        if "fuzz" in item.keywords:
            item.add_marker(skip_fuzz)
