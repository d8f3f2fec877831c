"""Status evaluation — open each discovered repo and classify it clean or dirty."""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Union

from gitdirt.channel import DiscoveryChannel
from gitdirt.errors import (
    ExcludeReadError,
    InvalidPatternError,
    RepositoryOpenError,
    StatusComputationError,
    WorktreeError,
)
from gitdirt.git import DEFAULT_TIMEOUT, Repository, parse_pattern, read_exclude_file
from gitdirt.resolver import DirectoryRef, resolve
from gitdirt.scanner import discover

log = logging.getLogger(__name__)

DEFAULT_WORKERS = 8

EXCLUDE_SKIP = "skip"
EXCLUDE_ERROR = "error"


class Verdict(enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    ERROR = "error"


@dataclass(frozen=True)
class StatusVerdict:
    path: str
    state: Verdict
    reason: Optional[str] = None  # open-failed, worktree-failed, exclude-failed, status-failed
    detail: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.state is Verdict.ERROR


@dataclass(frozen=True)
class EvaluatorOptions:
    extra_excludes: tuple[str, ...] = ()
    exclude_errors: str = EXCLUDE_SKIP  # what to do when info/exclude can't be read
    git_timeout: int = DEFAULT_TIMEOUT


Sink = Callable[[StatusVerdict], None]


def _error(path: str, reason: str, exc: Exception) -> StatusVerdict:
    return StatusVerdict(path=path, state=Verdict.ERROR, reason=reason, detail=str(exc))


def evaluate_repo(path: str, options: EvaluatorOptions = EvaluatorOptions()) -> StatusVerdict:
    """Open, merge excludes, compute status and classify a single repo root."""
    try:
        repo = Repository.open(path, timeout=options.git_timeout)
    except RepositoryOpenError as e:
        return _error(path, "open-failed", e)

    try:
        wt = repo.worktree()
    except WorktreeError as e:
        return _error(path, "worktree-failed", e)

    try:
        wt.add_excludes([parse_pattern(p) for p in options.extra_excludes])
    except InvalidPatternError as e:
        return _error(path, "exclude-failed", e)

    try:
        wt.add_excludes(read_exclude_file(path))
    except ExcludeReadError as e:
        if options.exclude_errors == EXCLUDE_ERROR:
            return _error(path, "exclude-failed", e)
        log.warning("ignoring exclude file for %s: %s", path, e)

    try:
        st = wt.status()
    except StatusComputationError as e:
        return _error(path, "status-failed", e)

    state = Verdict.CLEAN if st.is_clean() else Verdict.DIRTY
    log.debug("%s: %s (%d entries)", path, state.value, len(st))
    return StatusVerdict(path=path, state=state)


def evaluate(
    channel: DiscoveryChannel[str],
    sink: Sink,
    *,
    workers: int = DEFAULT_WORKERS,
    options: EvaluatorOptions = EvaluatorOptions(),
) -> int:
    """Drain `channel` with `workers` threads, passing one verdict per root to `sink`.

    Blocks until the channel is closed and every worker has finished. A sink
    error doesn't stop its worker; the first one is re-raised once all roots
    have been handed out. Returns the number of verdicts the sink accepted.
    """
    if workers < 1:
        raise ValueError("workers must be at least 1")

    reported = 0
    lock = threading.Lock()

    def _drain() -> None:
        nonlocal reported
        failure: Optional[Exception] = None
        for path in channel:
            verdict = evaluate_repo(path, options)
            try:
                sink(verdict)
            except Exception as e:
                # Remaining roots still get their verdicts.
                log.error("sink failed for %s: %s", path, e)
                if failure is None:
                    failure = e
                continue
            with lock:
                reported += 1
        if failure is not None:
            raise failure

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gitdirt-eval") as executor:
        futures = [executor.submit(_drain) for _ in range(workers)]

    # Every worker has finished here; surface the first sink failure, if any.
    for future in futures:
        future.result()
    return reported


def scan(
    root: Union[str, DirectoryRef],
    sink: Sink,
    *,
    workers: int = DEFAULT_WORKERS,
    options: EvaluatorOptions = EvaluatorOptions(),
    skip_dirs: frozenset[str] = frozenset(),
    max_depth: Optional[int] = None,
) -> int:
    """Discover repos under `root` in a producer thread and evaluate them.

    A string root is resolved first; ResolutionError propagates to the caller.
    """
    ref = resolve(root) if isinstance(root, str) else root
    channel: DiscoveryChannel[str] = DiscoveryChannel()

    producer = threading.Thread(
        target=discover,
        args=(ref, channel),
        kwargs={"skip_dirs": skip_dirs, "max_depth": max_depth},
        name="gitdirt-walk",
        daemon=True,
    )
    producer.start()
    try:
        return evaluate(channel, sink, workers=workers, options=options)
    finally:
        producer.join()
