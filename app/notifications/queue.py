"""
Per-request deferred email queue.

Jobs created while a request is being handled are buffered here and
executed once, at the end of the request, by one of three paths:

    QUEUED ──► INLINE_FLUSH ─────────┐
          ├──► SPAWNED ──────────────┼──► DONE
          └──► SYNCHRONOUS_FALLBACK ─┘

    INLINE_FLUSH          run every job in-process after the response
                          has been sent to the client
    SPAWNED               write the batch to a temp file and hand it to a
                          detached worker process
    SYNCHRONOUS_FALLBACK  the spawn failed; run every job in-process
                          before the request finishes

The pending list is emptied before any path starts, so a job is handed
off at most once. flush() never raises.

Usage:
    queue = DeferredJobQueue(runner=JobRunner(gateway))
    queue.enqueue(job)
    ...
    queue.flush(inline=True)   # after the response went out
    queue.flush()              # spawn, or run synchronously on failure
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from notifications.spawner import SpawnError

if TYPE_CHECKING:
    from notifications.jobs import EmailJob
    from notifications.runner import JobRunner
    from notifications.spawner import WorkerSpawner

logger = logging.getLogger(__name__)


class FlushState(str, Enum):
    QUEUED = "queued"
    INLINE_FLUSH = "inline_flush"
    SPAWNED = "spawned"
    SYNCHRONOUS_FALLBACK = "synchronous_fallback"
    DONE = "done"


class DeferredJobQueue:
    """
    Buffer of email jobs for one request.

    Attributes:
        flush_registered: Set on the first enqueue. The request adapter
            checks it to schedule exactly one flush.
        state: Current FlushState
        last_path: Execution path taken by the most recent flush
    """

    def __init__(
        self,
        runner: JobRunner | None = None,
        spawner: WorkerSpawner | None = None,
    ):
        self._runner = runner
        self._spawner = spawner
        self._jobs: list[EmailJob] = []
        self.flush_registered = False
        self.state = FlushState.QUEUED
        self.last_path: FlushState | None = None

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def pending(self) -> tuple[EmailJob, ...]:
        return tuple(self._jobs)

    @property
    def runner(self) -> JobRunner:
        if self._runner is None:
            from notifications.dispatcher import build_runner

            self._runner = build_runner()
        return self._runner

    @property
    def spawner(self) -> WorkerSpawner:
        if self._spawner is None:
            from notifications.spawner import WorkerSpawner

            self._spawner = WorkerSpawner()
        return self._spawner

    def enqueue(self, job: EmailJob) -> None:
        """Buffer a job. Nothing runs until flush()."""
        if self.state is FlushState.DONE:
            # Late job (e.g. queued by another job); needs another flush
            self.state = FlushState.QUEUED
            self.flush_registered = False
        self._jobs.append(job)
        if not self.flush_registered:
            self.flush_registered = True
            logger.debug("Deferred email flush registered for this request")

    def flush(self, inline: bool = False) -> FlushState | None:
        """
        Execute every pending job through one path.

        Args:
            inline: The response has already been delivered, so jobs can
                run in this process without making the client wait

        Returns:
            The path taken, or None if there was nothing to flush
        """
        jobs = self._take()
        if not jobs:
            return None

        try:
            if inline:
                self._run_path(FlushState.INLINE_FLUSH, jobs)
            else:
                self._spawn_or_run(jobs)
        except Exception:
            # The batch is not retried; jobs the runner had not reached are lost
            logger.exception(
                f"Email flush via {self.last_path} crashed; up to {len(jobs)} "
                f"job(s) may not have been sent"
            )
        finally:
            self.state = FlushState.DONE

        return self.last_path

    def _take(self) -> list[EmailJob]:
        jobs = self._jobs
        self._jobs = []
        self.flush_registered = False
        return jobs

    def _spawn_or_run(self, jobs: list[EmailJob]) -> None:
        try:
            self.spawner.spawn(jobs)
        except SpawnError as e:
            logger.warning(
                f"Email worker unavailable, sending {len(jobs)} job(s) "
                f"before the response: {e}"
            )
            self._run_path(FlushState.SYNCHRONOUS_FALLBACK, jobs)
            return
        except Exception:
            logger.exception(
                f"Email worker spawn crashed, sending {len(jobs)} job(s) "
                f"before the response"
            )
            self._run_path(FlushState.SYNCHRONOUS_FALLBACK, jobs)
            return

        self.state = FlushState.SPAWNED
        self.last_path = FlushState.SPAWNED

    def _run_path(self, path: FlushState, jobs: list[EmailJob]) -> None:
        self.state = path
        self.last_path = path
        self.runner.run_batch(jobs)
