"""Parallel randomized invariant verification.

InvarianceHarness generates random subjects, applies an invariant form to
each, and hands any failing trial to a reporter before re-raising its error.
One method per invariant shape:

    verify_value    - f(s) == value
    verify_range    - p(lo, hi, s) for a random [lo, hi) in the uint32 space
    verify_derived  - left(s) == right(s) for subjects passing a validity filter
    verify_pair     - left(a, b) == right(a, b) for two independent subjects
    verify_indexed  - p(i, s) for every i in range(len(s)), in order
    verify_action   - a(s) performs its own checks

Concurrency:
    Trials of one call run on a ThreadPoolExecutor and share nothing: every
    trial generates its own subjects and draws its own range bounds. At most
    ``2 * workers`` trials are in flight. The first failure is kept in a
    lock-protected holder and stops the dispatch loop; trials already
    running finish and may report their own failures (best-effort
    cancellation). When the pool has drained, the first error is re-raised
    as the same object, with the run counts added as an exception note.
    Anything a trial raises counts as a failure, BaseException included.

Filtered trials count as attempted but not evaluated; the harness never
backfills to reach an exact number of evaluated trials.

Python 3.12+.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from roaringfuzz.config import HarnessConfig
from roaringfuzz.constants import (
    ACTION_MAX_KEYS,
    DERIVED_MAX_KEYS,
    INDEX_MAX_KEYS,
    PAIR_MAX_KEYS,
    RANGE_MAX_KEYS,
    UINT32_LIMIT,
    VALUE_MAX_KEYS,
)
from roaringfuzz.errors import InvariantViolationError, SubjectGenerationError
from roaringfuzz.forms import always, always_pair
from roaringfuzz.generator import random_bitmap
from roaringfuzz.reporter import FileReporter, LoggingReporter

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from roaringfuzz.forms import (
        ActionInvariant,
        Context,
        IndexInvariant,
        PairInvariant,
        PairValidity,
        RangeInvariant,
        SubjectProvider,
        Validity,
        ValueInvariant,
    )
    from roaringfuzz.reporter import Reporter

__all__ = [
    "InvarianceHarness",
    "RunSummary",
    "default_harness",
    "verify_action",
    "verify_derived",
    "verify_indexed",
    "verify_pair",
    "verify_range",
    "verify_value",
]

logger = logging.getLogger(__name__)

_IN_FLIGHT_PER_WORKER = 2


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Outcome counts of one verify call.

    Returned when every evaluated trial held. On failure the same counts are
    attached to the re-raised error as a note (see ``describe``).

    Attributes:
        name: Invariant name
        attempted: Trials dispatched (subjects generated)
        evaluated: Trials that passed validity and were checked
        filtered: Trials rejected by the validity filter
        failed: Trials that raised (always 0 on a returned summary)
        skipped: Trials never dispatched because the run had already failed
        duration_ms: Wall time of the whole call
    """

    name: str
    attempted: int
    evaluated: int
    filtered: int
    failed: int
    skipped: int
    duration_ms: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def describe(self) -> str:
        """One-line rendering, e.g. ``rankSelect: attempted=3 evaluated=3 ... skipped=997``."""
        return (
            f"{self.name}: attempted={self.attempted} evaluated={self.evaluated} "
            f"filtered={self.filtered} failed={self.failed} skipped={self.skipped} "
            f"duration_ms={self.duration_ms}"
        )


class _RunState:
    """Counters and first-error holder shared by the trials of one call."""

    __slots__ = ("_evaluated", "_failed", "_filtered", "_first_error", "_lock", "_skipped", "_stop")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._first_error: BaseException | None = None
        self._evaluated = 0
        self._filtered = 0
        self._failed = 0
        self._skipped = 0

    @property
    def failed(self) -> bool:
        return self._stop.is_set()

    @property
    def first_error(self) -> BaseException | None:
        with self._lock:
            return self._first_error

    def evaluate(self) -> None:
        with self._lock:
            self._evaluated += 1

    def filter(self) -> None:
        with self._lock:
            self._filtered += 1

    def skip(self, count: int) -> None:
        with self._lock:
            self._skipped += count

    def fail(self, error: BaseException) -> None:
        with self._lock:
            self._failed += 1
            if self._first_error is None:
                self._first_error = error
            else:
                logger.debug("Additional trial failure after the first: %r", error)
        self._stop.set()

    def summary(self, name: str, count: int, duration_s: float) -> RunSummary:
        with self._lock:
            return RunSummary(
                name=name,
                attempted=count - self._skipped,
                evaluated=self._evaluated,
                filtered=self._filtered,
                failed=self._failed,
                skipped=self._skipped,
                duration_ms=round(duration_s * 1000, 3),
            )


def _assert_equal(expected: object, actual: object) -> None:
    if expected != actual:
        raise InvariantViolationError.mismatch(expected, actual)


def _assert_true(result: object) -> None:
    if not result:
        raise InvariantViolationError.falsified(result)


class InvarianceHarness:
    """Run invariant forms over randomly generated subjects.

    Args:
        config: Run configuration (default: ``HarnessConfig()``)
        provider: Subject provider called as ``provider(max_keys)``
            (default: ``random_bitmap``)
        reporter: Failure sink. Defaults to a FileReporter in
            ``config.findings_dir`` when that is set, else a LoggingReporter.

    Example:
        >>> from roaringfuzz import HarnessConfig, InvarianceHarness
        >>> harness = InvarianceHarness(HarnessConfig(iterations=20, max_keys_cap=8))
        >>> summary = harness.verify_value("containsSelf", True, lambda s: s.issuperset(s.clone()))
        >>> summary.evaluated
        20
    """

    def __init__(
        self,
        config: HarnessConfig | None = None,
        *,
        provider: SubjectProvider = random_bitmap,
        reporter: Reporter | None = None,
    ) -> None:
        self._config = config or HarnessConfig()
        self._provider = provider
        if reporter is None:
            if self._config.findings_dir is not None:
                reporter = FileReporter(self._config.findings_dir)
            else:
                reporter = LoggingReporter()
        self._reporter = reporter

    @property
    def config(self) -> HarnessConfig:
        return self._config

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    # --- Invariant forms ---

    def verify_value[T](
        self,
        name: str,
        value: T,
        func: ValueInvariant[Any, T],
        *,
        count: int | None = None,
        max_keys: int = VALUE_MAX_KEYS,
    ) -> RunSummary:
        """Assert ``func(subject) == value`` for every generated subject."""
        bound = self._bound(max_keys)

        def trial(state: _RunState) -> None:
            subject = self._subject(name, bound)
            state.evaluate()
            with self._reporting(name, {"value": value}, subject):
                _assert_equal(value, func(subject))

        return self._run(name, self._count(count), trial)

    def verify_range(
        self,
        name: str,
        predicate: RangeInvariant[Any],
        *,
        count: int | None = None,
        max_keys: int = RANGE_MAX_KEYS,
    ) -> RunSummary:
        """Assert ``predicate(lo, hi, subject)`` with ``0 <= lo <= hi < 2**32`` drawn per trial."""
        bound = self._bound(max_keys)

        def trial(state: _RunState) -> None:
            subject = self._subject(name, bound)
            rng = random.Random()
            lo = rng.randrange(UINT32_LIMIT)
            hi = rng.randrange(lo, UINT32_LIMIT)
            state.evaluate()
            with self._reporting(name, {"min": lo, "max": hi}, subject):
                _assert_true(predicate(lo, hi, subject))

        return self._run(name, self._count(count), trial)

    def verify_derived[T](
        self,
        name: str,
        left: ValueInvariant[Any, T],
        right: ValueInvariant[Any, T],
        *,
        validity: Validity[Any] = always,
        count: int | None = None,
        max_keys: int = DERIVED_MAX_KEYS,
    ) -> RunSummary:
        """Assert ``left(subject) == right(subject)`` for subjects passing ``validity``."""
        bound = self._bound(max_keys)

        def trial(state: _RunState) -> None:
            subject = self._subject(name, bound)
            if not self._admit(state, name, lambda: validity(subject), subject):
                return
            with self._reporting(name, {}, subject):
                _assert_equal(left(subject), right(subject))

        return self._run(name, self._count(count), trial)

    def verify_pair[T](
        self,
        name: str,
        left: PairInvariant[Any, T],
        right: PairInvariant[Any, T],
        *,
        validity: PairValidity[Any] = always_pair,
        count: int | None = None,
        max_keys: int = PAIR_MAX_KEYS,
    ) -> RunSummary:
        """Assert ``left(a, b) == right(a, b)`` for independent subject pairs passing ``validity``."""
        bound = self._bound(max_keys)

        def trial(state: _RunState) -> None:
            one = self._subject(name, bound)
            two = self._subject(name, bound)
            if not self._admit(state, name, lambda: validity(one, two), one, two):
                return
            with self._reporting(name, {}, one, two):
                _assert_equal(left(one, two), right(one, two))

        return self._run(name, self._count(count), trial)

    def verify_indexed(
        self,
        name: str,
        predicate: IndexInvariant[Any],
        *,
        validity: Validity[Any] = always,
        count: int | None = None,
        max_keys: int = INDEX_MAX_KEYS,
    ) -> RunSummary:
        """Assert ``predicate(i, subject)`` for ``i`` in ``range(len(subject))``.

        Indices are checked in increasing order; the first failing index
        ends that subject's trial.
        """
        bound = self._bound(max_keys)

        def trial(state: _RunState) -> None:
            subject = self._subject(name, bound)
            if not self._admit(state, name, lambda: validity(subject), subject):
                return
            for index in range(len(subject)):
                with self._reporting(name, {"index": index}, subject):
                    _assert_true(predicate(index, subject))

        return self._run(name, self._count(count), trial)

    def verify_action(
        self,
        action: ActionInvariant[Any],
        *,
        name: str | None = None,
        validity: Validity[Any] = always,
        count: int | None = None,
        max_keys: int = ACTION_MAX_KEYS,
    ) -> RunSummary:
        """Run ``action(subject)`` for subjects passing ``validity``.

        The action does its own checking; whatever it raises fails the run.
        ``name`` defaults to the action's ``__name__``.
        """
        label = name or getattr(action, "__name__", repr(action))
        bound = self._bound(max_keys)

        def trial(state: _RunState) -> None:
            subject = self._subject(label, bound)
            if not self._admit(state, label, lambda: validity(subject), subject):
                return
            with self._reporting(label, {}, subject):
                action(subject)

        return self._run(label, self._count(count), trial)

    # --- Trial plumbing ---

    def _count(self, count: int | None) -> int:
        resolved = self._config.iterations if count is None else count
        if resolved <= 0:
            msg = f"count must be positive, got {resolved}"
            raise ValueError(msg)
        return resolved

    def _bound(self, max_keys: int) -> int:
        if max_keys <= 0:
            msg = f"max_keys must be positive, got {max_keys}"
            raise ValueError(msg)
        return self._config.bound(max_keys)

    def _subject(self, name: str, max_keys: int) -> Any:
        try:
            return self._provider(max_keys)
        except Exception as e:
            msg = f"Subject provider failed for {name} (max_keys={max_keys}): {e!r}"
            error = SubjectGenerationError(msg, max_keys)
            # Chained before reporting so the artifact traceback shows the cause.
            error.__cause__ = e
            self._report(name, {"max_keys": max_keys}, error, ())
            raise error from e

    def _admit(self, state: _RunState, name: str, check: Callable[[], bool], *subjects: Any) -> bool:
        with self._reporting(name, {}, *subjects):
            admitted = check()
        if admitted:
            state.evaluate()
        else:
            state.filter()
        return bool(admitted)

    @contextmanager
    def _reporting(self, name: str, context: Context, *subjects: Any) -> Iterator[None]:
        try:
            yield
        except BaseException as error:  # pylint: disable=broad-exception-caught
            self._report(name, context, error, subjects)
            raise

    def _report(self, name: str, context: Context, error: BaseException, subjects: tuple[Any, ...]) -> None:
        try:
            self._reporter.report(name, context, error, *subjects)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Reporter failed for %s; re-raising the original error", name)

    def _run(self, name: str, count: int, trial: Callable[[_RunState], None]) -> RunSummary:
        state = _RunState()
        workers = self._config.workers
        window = threading.BoundedSemaphore(workers * _IN_FLIGHT_PER_WORKER)
        started = time.perf_counter()
        logger.debug("Verifying %s: %d trials on %d workers", name, count, workers)

        def execute() -> None:
            try:
                trial(state)
            except BaseException as e:  # pylint: disable=broad-exception-caught
                state.fail(e)
            finally:
                window.release()

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="roaringfuzz") as pool:
            for dispatched in range(count):
                window.acquire()
                if state.failed:
                    window.release()
                    state.skip(count - dispatched)
                    break
                pool.submit(execute)

        summary = state.summary(name, count, time.perf_counter() - started)
        error = state.first_error
        if error is not None:
            logger.debug("Invariant %s failed: %s", name, summary)
            error.add_note(summary.describe())
            raise error
        logger.debug("Invariant %s held: %s", name, summary)
        return summary


# --- Module-level entry points ---

_default_lock = threading.Lock()
_default: InvarianceHarness | None = None


def default_harness() -> InvarianceHarness:
    """Shared harness configured from ``ROARINGFUZZ_*`` environment variables."""
    global _default  # noqa: PLW0603  # pylint: disable=global-statement
    with _default_lock:
        if _default is None:
            _default = InvarianceHarness(HarnessConfig.from_env())
        return _default


def verify_value[T](name: str, value: T, func: ValueInvariant[Any, T], **kwargs: Any) -> RunSummary:
    return default_harness().verify_value(name, value, func, **kwargs)


def verify_range(name: str, predicate: RangeInvariant[Any], **kwargs: Any) -> RunSummary:
    return default_harness().verify_range(name, predicate, **kwargs)


def verify_derived[T](
    name: str, left: ValueInvariant[Any, T], right: ValueInvariant[Any, T], **kwargs: Any
) -> RunSummary:
    return default_harness().verify_derived(name, left, right, **kwargs)


def verify_pair[T](
    name: str, left: PairInvariant[Any, T], right: PairInvariant[Any, T], **kwargs: Any
) -> RunSummary:
    return default_harness().verify_pair(name, left, right, **kwargs)


def verify_indexed(name: str, predicate: IndexInvariant[Any], **kwargs: Any) -> RunSummary:
    return default_harness().verify_indexed(name, predicate, **kwargs)


def verify_action(action: ActionInvariant[Any], **kwargs: Any) -> RunSummary:
    return default_harness().verify_action(action, **kwargs)
