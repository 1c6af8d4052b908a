"""Failure reporting for invariant trials.

A reporter receives the failing invariant's name, its context values, the
error and the subjects involved, and turns them into something a human can
inspect and replay. The harness calls ``report`` from worker threads, so
every sink here tolerates concurrent calls.

Sinks:
    FileReporter      - one JSON artifact per failure, atomically written
    LoggingReporter   - one ERROR record per failure
    MemoryReporter    - keeps FailureArtifact objects in memory
    CompositeReporter - fans out to several sinks

Artifacts are best-effort: a sink never raises in place of the invariant
error that triggered it. ``load_finding`` reads a JSON artifact back and
rebuilds its subjects so the failing trial can be rerun outside the harness.

Python 3.12+.
"""

from __future__ import annotations

import base64
import contextlib
import datetime
import json
import logging
import os
import re
import threading
import traceback
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from roaringfuzz.errors import FindingFormatError
from roaringfuzz.subject import RoaringSubject

if TYPE_CHECKING:
    from collections.abc import Sequence

    from roaringfuzz.forms import Context

__all__ = [
    "CompositeReporter",
    "FailureArtifact",
    "FileReporter",
    "Finding",
    "LoggingReporter",
    "MemoryReporter",
    "Reporter",
    "load_finding",
]

logger = logging.getLogger(__name__)

ARTIFACT_FORMAT = "roaring-portable-base64"
_PREVIEW_SIZE = 16
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class Reporter(Protocol):
    """Side channel the harness hands failing trials to."""

    def report(self, name: str, context: Context, error: BaseException, *subjects: object) -> None: ...


def _describe_subject(subject: object) -> dict[str, Any]:
    if isinstance(subject, RoaringSubject):
        return {"cardinality": len(subject), "preview": list(subject.limit(_PREVIEW_SIZE))}
    return {"repr": repr(subject)}


def _encode_subject(subject: object) -> dict[str, Any]:
    serialize = getattr(subject, "serialize", None)
    if serialize is None:
        return {"repr": repr(subject)}
    encoded: dict[str, Any] = {
        "format": ARTIFACT_FORMAT,
        "data": base64.b64encode(serialize()).decode("ascii"),
    }
    if isinstance(subject, RoaringSubject):
        encoded.update(_describe_subject(subject))
    return encoded


@dataclass(frozen=True, slots=True)
class FailureArtifact:
    """Captured state of one failing trial.

    Attributes:
        name: Invariant name, used only for attribution
        context: Auxiliary values (range bounds, index, expected value)
        error: The exception the trial raised
        subjects: Subjects involved, in trial order
        timestamp: UTC time the failure was captured
        thread: Name of the worker thread that ran the trial
    """

    name: str
    context: dict[str, object]
    error: BaseException
    subjects: tuple[object, ...]
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(tz=datetime.UTC),
    )
    thread: str = field(default_factory=lambda: threading.current_thread().name)

    @classmethod
    def capture(
        cls, name: str, context: Context, error: BaseException, subjects: Sequence[object]
    ) -> FailureArtifact:
        return cls(name=name, context=dict(context), error=error, subjects=tuple(subjects))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form. Context values that JSON cannot hold are rendered with repr."""
        return {
            "invariant": self.name,
            "context": {key: _jsonable(value) for key, value in self.context.items()},
            "error": {
                "type": type(self.error).__name__,
                "message": str(self.error),
                "traceback": "".join(traceback.format_exception(self.error)),
            },
            "subjects": [_encode_subject(subject) for subject in self.subjects],
            "timestamp": self.timestamp.isoformat(),
            "pid": os.getpid(),
            "thread": self.thread,
        }


def _jsonable(value: object) -> object:
    if value is None or isinstance(value, bool | int | float | str):
        return value
    return repr(value)


class FileReporter:
    """Write each failure as ``<findings_dir>/<name>-<uuid>.json``.

    Files are written under a temporary name and renamed into place, so
    concurrent reports never interleave and readers never see partial files.
    I/O errors are logged and suppressed; the invariant error stays primary.
    """

    def __init__(self, findings_dir: Path | str) -> None:
        self._findings_dir = Path(findings_dir)
        self._lock = threading.Lock()
        self._written: list[Path] = []

    @property
    def findings_dir(self) -> Path:
        return self._findings_dir

    @property
    def written(self) -> tuple[Path, ...]:
        """Artifacts written by this reporter, in completion order."""
        with self._lock:
            return tuple(self._written)

    def report(self, name: str, context: Context, error: BaseException, *subjects: object) -> None:
        artifact = FailureArtifact.capture(name, context, error, subjects)
        try:
            path = self.write(artifact)
        except OSError as e:
            logger.warning("Could not write failure artifact for %s: %s", name, e)
            return
        logger.error("Invariant %s failed: %s (artifact: %s)", name, error, path)

    def write(self, artifact: FailureArtifact) -> Path:
        """Write one artifact and return its path.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        self._findings_dir.mkdir(parents=True, exist_ok=True)
        stem = f"{_UNSAFE_NAME_CHARS.sub('_', artifact.name)}-{uuid.uuid4().hex}"
        target = self._findings_dir / f"{stem}.json"
        staging = self._findings_dir / f".{stem}.json.tmp"
        try:
            staging.write_text(
                json.dumps(artifact.to_dict(), indent=2, sort_keys=True),
                encoding="utf-8",
            )
            os.replace(staging, target)
        except OSError:
            with contextlib.suppress(OSError):
                staging.unlink(missing_ok=True)
            raise
        with self._lock:
            self._written.append(target)
        return target


class LoggingReporter:
    """Log each failure as a single record.

    Subjects are logged by cardinality and a short preview of their smallest
    values. The serialized payload is left to FileReporter.
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.ERROR) -> None:
        self._log = log or logger
        self._level = level

    def report(self, name: str, context: Context, error: BaseException, *subjects: object) -> None:
        self._log.log(
            self._level,
            "Invariant %s failed: %s: %s context=%s subjects=%s",
            name,
            type(error).__name__,
            error,
            json.dumps({key: _jsonable(value) for key, value in context.items()}, sort_keys=True),
            json.dumps([_describe_subject(subject) for subject in subjects]),
        )


class MemoryReporter:
    """Keep every FailureArtifact in memory. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._artifacts: list[FailureArtifact] = []

    @property
    def artifacts(self) -> tuple[FailureArtifact, ...]:
        with self._lock:
            return tuple(self._artifacts)

    def report(self, name: str, context: Context, error: BaseException, *subjects: object) -> None:
        artifact = FailureArtifact.capture(name, context, error, subjects)
        with self._lock:
            self._artifacts.append(artifact)

    def clear(self) -> None:
        with self._lock:
            self._artifacts.clear()


class CompositeReporter:
    """Forward each failure to several sinks.

    A sink that raises is logged and skipped; the remaining sinks still run.
    """

    def __init__(self, *reporters: Reporter) -> None:
        self._reporters = reporters

    def report(self, name: str, context: Context, error: BaseException, *subjects: object) -> None:
        for reporter in self._reporters:
            try:
                reporter.report(name, context, error, *subjects)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Reporter %r failed while reporting %s", reporter, name)


# --- Reading artifacts back ---


@dataclass(frozen=True, slots=True)
class Finding:
    """A failure artifact loaded from disk.

    Attributes:
        name: Invariant name
        context: Context values as stored (non-JSON values are repr strings)
        error_type: Class name of the original error
        error_message: ``str()`` of the original error
        traceback: Formatted traceback of the original error
        subjects: Subjects rebuilt from their serialized form
        path: File the finding was read from
    """

    name: str
    context: dict[str, object]
    error_type: str
    error_message: str
    traceback: str
    subjects: tuple[RoaringSubject, ...]
    path: Path | None = None


def _decode_subject(encoded: dict[str, Any]) -> RoaringSubject:
    if encoded.get("format") != ARTIFACT_FORMAT:
        msg = f"Subject has no {ARTIFACT_FORMAT} payload: {encoded!r}"
        raise FindingFormatError(msg)
    return RoaringSubject.deserialize(base64.b64decode(encoded["data"], validate=True))


def load_finding(path: Path | str) -> Finding:
    """Read a JSON failure artifact written by FileReporter.

    Raises:
        OSError: If the file cannot be read.
        FindingFormatError: If the file is not a valid artifact.
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        error = payload["error"]
        return Finding(
            name=payload["invariant"],
            context=dict(payload.get("context", {})),
            error_type=error["type"],
            error_message=error["message"],
            traceback=error.get("traceback", ""),
            subjects=tuple(_decode_subject(s) for s in payload["subjects"]),
            path=path,
        )
    except FindingFormatError as e:
        raise FindingFormatError(str(e), str(path)) from e
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Malformed failure artifact {path}: {e}"
        raise FindingFormatError(msg, str(path)) from e
