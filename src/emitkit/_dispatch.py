"""Subscriber invocation helpers: fire-and-forget scheduling and failure reporting."""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from emitkit._config import _effective_config
from emitkit._logging import get_logger
from emitkit.errors import SubscriberFailure

__all__ = ['fire', 'report_failure', 'schedule']

logger = get_logger(__name__)

# Strong references to fire-and-forget futures; the loop only keeps weak ones.
_background: set[asyncio.Future[Any]] = set()


def report_failure(
    exc: BaseException,
    *,
    handler: object,
    channel: str | None = None,
) -> SubscriberFailure:
    """Surface a subscriber failure nobody is awaiting.

    Logs a structured error event and, when enabled and an asyncio loop is
    running, passes the exception to the loop's exception handler so the
    host application sees it the way it sees any unretrieved task failure.

    Returns:
        The SubscriberFailure describing the error.
    """
    failure = SubscriberFailure.from_exception(exc, handler=handler, channel=channel)
    logger.error('subscriber failed', failure=failure, exc_info=exc)

    if _effective_config().report_to_loop:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return failure
        loop.call_exception_handler({
            'message': f"Subscriber '{failure.handler}' failed",
            'exception': exc,
            'failure': failure,
        })
    return failure


def _on_done(future: asyncio.Future[Any], *, handler: object, channel: str | None) -> None:
    _background.discard(future)
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        report_failure(exc, handler=handler, channel=channel)


def schedule(
    awaitable: Awaitable[Any],
    *,
    handler: object,
    channel: str | None = None,
) -> asyncio.Future[Any] | None:
    """Run ``awaitable`` in the background on the running loop.

    Its failure, if any, goes to report_failure(). Without a running loop the
    awaitable cannot run; coroutines are closed and the problem is reported
    as a failure of ``handler``.

    Returns:
        The scheduled future, or None if nothing could be scheduled.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        report_failure(
            RuntimeError('no running event loop to run the awaitable returned by a subscriber'),
            handler=handler,
            channel=channel,
        )
        return None

    future = asyncio.ensure_future(awaitable, loop=loop)
    _background.add(future)
    future.add_done_callback(functools.partial(_on_done, handler=handler, channel=channel))
    return future


def fire(callback: Callable[[Any], Any], value: Any, *, channel: str | None = None) -> None:
    """Invoke ``callback(value)`` without propagating or awaiting anything."""
    try:
        result = callback(value)
    except Exception as exc:
        report_failure(exc, handler=callback, channel=channel)
        return
    if inspect.isawaitable(result):
        schedule(result, handler=callback, channel=channel)
