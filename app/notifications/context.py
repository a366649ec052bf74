"""
Request-scoped binding of the deferred job queue.

The middleware binds a fresh DeferredJobQueue for each request. Code that
dispatches notifications asks for the current queue; getting None back
means there is no client connection to protect (Celery task, script,
worker process) and jobs should run immediately.

A ContextVar keeps concurrent ASGI requests from seeing each other's queue.

Usage:
    with bound_queue(DeferredJobQueue()) as queue:
        ...
        queue.flush()
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

    from notifications.queue import DeferredJobQueue

_current_queue: ContextVar[DeferredJobQueue | None] = ContextVar(
    "notification_job_queue", default=None
)


def get_current_queue() -> DeferredJobQueue | None:
    return _current_queue.get()


def bind_queue(queue: DeferredJobQueue) -> Token:
    """Make `queue` current; pass the returned token to reset_queue()."""
    return _current_queue.set(queue)


def reset_queue(token: Token) -> None:
    _current_queue.reset(token)


@contextmanager
def bound_queue(queue: DeferredJobQueue) -> Generator[DeferredJobQueue, None, None]:
    token = bind_queue(queue)
    try:
        yield queue
    finally:
        reset_queue(token)
