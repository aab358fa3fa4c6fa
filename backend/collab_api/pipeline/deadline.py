"""
Collab Platform API - Deadline Enforcer
========================================

What:  Bounds the wall-clock time of a route handler.
How:   Runs the handler as a task and waits up to `timeout_seconds`.
       On overrun the task is cancelled, its cancellation is allowed to
       settle, and RequestTimeoutError is raised in its place.
When:  Around every PipelineRoute handler (validation, business logic and
       response serialization).

Overrun semantics:
    - The handler's result, if any, is discarded.
    - Cancellation unwinds the handler's session scope, and get_db_session
      rolls back because the request is recorded as failed. Writes already
      committed by the handler itself are not undone.
    - Errors raised by the handler within the bound propagate unchanged,
      including its own TimeoutError.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from collab_api.exceptions import RequestTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0


class DeadlineEnforcer:
    """
    Enforces a fixed upper bound on handler execution time.

    Args:
        timeout_seconds: The bound, fixed at construction (default 30s).
    """

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.timeout_seconds = timeout_seconds

    async def run(self, operation: Awaitable[T]) -> T:
        task = asyncio.ensure_future(operation)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            # Caller went away (client disconnect, server shutdown)
            task.cancel()
            raise

        if task in done:
            # Result or exception passes through untouched
            return task.result()

        task.cancel()
        # Let the cancelled handler unwind before the failure is rendered
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is None:
            logger.debug("Handler completed after the deadline; result discarded")
        raise RequestTimeoutError(self.timeout_seconds)
