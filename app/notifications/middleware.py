"""
End-of-request flush for deferred notification emails.

DeferredEmailMiddleware gives each request its own DeferredJobQueue and,
if anything was queued, schedules exactly one flush:

    - Inline: attached to the response's close hook, which the server
      calls after the body has been delivered. The client never waits
      on email work.
    - Otherwise: flush() before returning, which hands the batch to a
      detached worker (or runs it synchronously if that fails).

Settings:
    NOTIFICATION_INLINE_FLUSH: Set False to always use the worker handoff

Add after AuthenticationMiddleware in MIDDLEWARE.
"""

from __future__ import annotations

import logging
from functools import partial

from django.conf import settings

from notifications.context import bind_queue, reset_queue
from notifications.queue import DeferredJobQueue

logger = logging.getLogger(__name__)


class DeferredEmailMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        queue = DeferredJobQueue()
        token = bind_queue(queue)
        try:
            response = self.get_response(request)
        except Exception:
            queue.flush()
            raise
        finally:
            reset_queue(token)

        if queue.flush_registered:
            self._schedule_flush(queue, response)
        return response

    @staticmethod
    def _schedule_flush(queue: DeferredJobQueue, response) -> None:
        closers = getattr(response, "_resource_closers", None)
        if settings.NOTIFICATION_INLINE_FLUSH and closers is not None:
            closers.append(partial(queue.flush, inline=True))
            logger.debug(f"{len(queue)} email job(s) deferred until after the response")
            return

        queue.flush()
