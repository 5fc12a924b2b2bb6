"""Scan many folders at once, twice.

All folders are scanned in forward order, and, shortly after, in reverse
order by a second, independent pool of workers. Whichever scan finishes a
folder first publishes its result; the other result is discarded. A folder
stuck behind slow neighbours in one order is near the front of the other,
so one slow remote does not hold up the whole report.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor

from .folders import Folder
from .status import (
    DEFAULT_REMOTE,
    DisplayMode,
    DivergencePolicy,
    RepoDescriptor,
    collect_status,
)

logger = logging.getLogger(__name__)

OnResult = Callable[[RepoDescriptor, int, int], None]


class ResultMap:
    """Thread-safe, write-once map of results by folder name."""

    def __init__(
        self, names: Iterable[str], on_result: OnResult | None = None
    ) -> None:
        self._lock = threading.Lock()
        self._results: dict[str, RepoDescriptor] = {}
        self._published = {name: threading.Event() for name in names}
        self._on_result = on_result

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._results

    @property
    def total(self) -> int:
        """Return the number of distinct folders expected."""
        return len(self._published)

    def is_complete(self) -> bool:
        """Return whether every expected folder has a result."""
        return len(self) >= self.total

    def published_event(self, name: str) -> threading.Event:
        """Return the event set once a result for `name` is published."""
        return self._published[name]

    def publish(self, descriptor: RepoDescriptor) -> bool:
        """Store a result unless one is already stored for the same folder.

        Returns whether the result was stored.
        """
        with self._lock:
            if descriptor.name in self._results:
                return False
            self._results[descriptor.name] = descriptor
            self._published[descriptor.name].set()
            if self._on_result is not None:
                self._on_result(descriptor, len(self._results), self.total)
            return True

    def values(self) -> list[RepoDescriptor]:
        """Return the stored results, in publication order."""
        with self._lock:
            return list(self._results.values())


def _scan_one(
    folder: Folder,
    results: ResultMap,
    *,
    mode: DisplayMode,
    policy: DivergencePolicy,
    remote: str,
) -> bool:
    cancel = results.published_event(folder.name)
    if cancel.is_set():
        return False
    descriptor = collect_status(
        folder, mode=mode, policy=policy, remote=remote, cancel=cancel
    )
    published = results.publish(descriptor)
    if not published:
        logger.debug("%s: result discarded, already published", folder.name)
    return published


def _failure(future: Future[bool]) -> BaseException | None:
    if not future.done() or future.cancelled():
        return None
    return future.exception()


def _check_failures(
    futures: dict[str, list[Future[bool]]], results: ResultMap, *, hedged: bool
) -> None:
    """Raise once every scan of a folder has failed without a result."""
    if not hedged:
        return
    for name, attempts in futures.items():
        if name in results:
            continue
        errors = [_failure(future) for future in attempts]
        if all(exc is not None for exc in errors):
            msg = f"Error while analyzing repo in '{name}'"
            raise RuntimeError(msg) from errors[-1]


def scan_folders(  # noqa: PLR0913
    folders: Sequence[Folder],
    *,
    mode: DisplayMode = DisplayMode.WORDS,
    policy: DivergencePolicy | None = None,
    remote: str = DEFAULT_REMOTE,
    jobs: int = 8,
    hedge_delay: float = 1.0,
    poll_interval: float = 0.1,
    on_result: OnResult | None = None,
) -> list[RepoDescriptor]:
    """Return the status of every folder, one result per folder name."""
    policy = policy or DivergencePolicy()
    results = ResultMap((folder.name for folder in folders), on_result=on_result)
    if results.total == 0:
        return []

    executors = [
        ThreadPoolExecutor(max_workers=jobs, thread_name_prefix=f"git-ls-{family}")
        for family in ("forward", "reverse")
    ]
    futures: dict[str, list[Future[bool]]] = {}

    def launch(executor: ThreadPoolExecutor, order: Iterable[Folder]) -> None:
        for folder in order:
            future = executor.submit(
                _scan_one, folder, results, mode=mode, policy=policy, remote=remote
            )
            futures.setdefault(folder.name, []).append(future)

    try:
        start = time.monotonic()
        launch(executors[0], folders)
        hedged = False
        while not results.is_complete():
            if not hedged and time.monotonic() - start >= hedge_delay:
                logger.debug("launching reverse scan of %d folders", len(folders))
                launch(executors[1], reversed(folders))
                hedged = True
            _check_failures(futures, results, hedged=hedged)
            time.sleep(poll_interval)
    finally:
        for executor in executors:
            executor.shutdown(wait=False, cancel_futures=True)
    return results.values()
