"""Quickstart example for roaringfuzz.

This example checks a few Roaring bitmap invariants with each invariant
form, then shows what happens when an invariant does not hold.

Note: Examples use small trial counts and a low complexity cap so they
finish in seconds. Full-scale runs use the defaults from
roaringfuzz.constants (or ROARINGFUZZ_* environment variables).
"""

import logging
import tempfile
from pathlib import Path

from roaringfuzz import (
    HarnessConfig,
    InvarianceHarness,
    InvariantViolationError,
    RoaringSubject,
    load_finding,
)

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

findings = Path(tempfile.mkdtemp(prefix="roaringfuzz-"))
harness = InvarianceHarness(
    HarnessConfig(iterations=50, workers=4, findings_dir=findings, max_keys_cap=8)
)

# Example 1: Value form
print("=" * 50)
print("Example 1: Value Form")
print("=" * 50)

summary = harness.verify_value("containsSelf", True, lambda s: s.issuperset(s.clone()))
print(summary)
# Output: RunSummary(name='containsSelf', attempted=50, evaluated=50, ...)

# Example 2: Derived form with a validity filter
print("\n" + "=" * 50)
print("Example 2: Derived Form")
print("=" * 50)

summary = harness.verify_derived(
    "firstSelect0",
    lambda s: s.first(),
    lambda s: s.select(0),
    validity=lambda s: not s.is_empty(),
)
print(f"evaluated={summary.evaluated} filtered={summary.filtered}")

# Example 3: Pair form
print("\n" + "=" * 50)
print("Example 3: Pair Form")
print("=" * 50)

summary = harness.verify_pair(
    "xorIsOrMinusAnd",
    lambda a, b: a ^ b,
    lambda a, b: (a | b) - (a & b),
)
print(f"{summary.name}: {summary.evaluated} pairs in {summary.duration_ms} ms")

# Example 4: Range and indexed forms
print("\n" + "=" * 50)
print("Example 4: Range and Indexed Forms")
print("=" * 50)

summary = harness.verify_range(
    "rangeCardinality",
    lambda lo, hi, s: s.range_cardinality(lo, hi)
    == RoaringSubject.from_range(lo, hi).intersection_cardinality(s),
)
print(summary.as_dict())

summary = harness.verify_indexed(
    "rankSelect", lambda i, s: s.rank(s.select(i)) == i + 1, count=10
)
print(summary.as_dict())

# Example 5: A broken invariant
print("\n" + "=" * 50)
print("Example 5: Failure Artifacts")
print("=" * 50)

try:
    harness.verify_value("cardinalityIsEven", 0, lambda s: len(s) % 2)
except InvariantViolationError as e:
    print(f"Invariant failed: {e}")

for path in sorted(findings.glob("*.json"))[:1]:
    finding = load_finding(path)
    (subject,) = finding.subjects
    print(f"Artifact: {path.name}")
    print(f"Replayed subject: {subject!r}")
    print(f"len(subject) % 2 = {len(subject) % 2}")
