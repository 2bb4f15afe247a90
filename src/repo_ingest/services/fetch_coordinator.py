"""Concurrent content retrieval with per-file failure isolation.

One task is spawned per file under a semaphore-bounded pool.  A failed
fetch is recorded and never disturbs its siblings; results are reassembled
in input order so the digest is deterministic for a given tree snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from repo_ingest.domain.entities import (
    ClassifiedFile,
    FetchedFile,
    FetchOutcome,
    FileCategory,
)
from repo_ingest.domain.exceptions import FileFetchFailedError
from repo_ingest.domain.ports.source_provider import SourceProvider
from repo_ingest.domain.value_objects import RepositoryRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """A path to fetch and the category its result should carry."""

    path: str
    category: FileCategory = FileCategory.OTHER


async def fetch_contents(
    provider: SourceProvider,
    ref: RepositoryRef,
    branch: str,
    files: Sequence[ClassifiedFile | FetchRequest],
    *,
    concurrency_limit: int = 5,
    timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> FetchOutcome:
    """Fetch *files* concurrently and partition them into successes and failures.

    Parameters
    ----------
    concurrency_limit:
        Maximum number of fetches in flight at once.
    timeout:
        Seconds after which no new fetches start and in-flight ones are
        abandoned.  Unfinished paths are reported in ``failed_paths``.
    cancel_event:
        Setting this event has the same effect as the timeout elapsing.
    """
    if concurrency_limit < 1:
        raise ValueError("concurrency_limit must be at least 1")
    if not files:
        return FetchOutcome()

    sem = asyncio.Semaphore(concurrency_limit)

    async def _fetch_one(path: str) -> str:
        async with sem:
            if cancel_event is not None and cancel_event.is_set():
                raise asyncio.CancelledError
            content = await provider.get_file_content(ref, path, branch)
            if content is None:
                raise FileFetchFailedError(f"File not found: {path}")
            return content

    tasks = [asyncio.create_task(_fetch_one(f.path)) for f in files]
    cancelled = await _wait_all(tasks, timeout=timeout, cancel_event=cancel_event)

    fetched: list[FetchedFile] = []
    failed: set[str] = set()
    total_bytes = 0

    for request, task in zip(files, tasks):
        if task.cancelled():
            failed.add(request.path)
            continue
        exc = task.exception()
        if exc is not None:
            logger.debug("Failed to fetch %s, skipping", request.path, exc_info=exc)
            failed.add(request.path)
            continue
        fetched_file = FetchedFile(
            path=request.path, content=task.result(), category=request.category
        )
        total_bytes += fetched_file.size_bytes
        fetched.append(fetched_file)

    if failed:
        logger.info("%d of %d file(s) could not be fetched", len(failed), len(files))
    if cancelled:
        logger.warning(
            "Fetch cancelled with %d of %d file(s) completed", len(fetched), len(files)
        )

    return FetchOutcome(
        fetched=tuple(fetched),
        failed_paths=frozenset(failed),
        total_bytes=total_bytes,
        cancelled=cancelled,
    )


async def _wait_all(
    tasks: list[asyncio.Task[str]],
    *,
    timeout: float | None,
    cancel_event: asyncio.Event | None,
) -> bool:
    """Wait for *tasks* until all finish or the deadline or event stops the wait.

    Returns *True* if waiting stopped early.  No task is left running on
    return, including when the caller itself is cancelled.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout
    stop = asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
    pending: set[asyncio.Future] = set(tasks)
    stopped_early = False

    try:
        while pending:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                stopped_early = True
                break

            watched = pending | {stop} if stop is not None else pending
            done, _ = await asyncio.wait(
                watched, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            if not done:
                stopped_early = True
                break
            if stop is not None and stop in done:
                stopped_early = True
                break
            pending -= done
    finally:
        if stop is not None:
            stop.cancel()
        for task in pending:
            task.cancel()
        leftovers = [t for t in (*pending, stop) if t is not None]
        if leftovers:
            await asyncio.gather(*leftovers, return_exceptions=True)

    return stopped_early
