"""Emitter error types: dual struct+exception for structured reports and raise-based code."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import msgspec

__all__ = [
    'DispatchFailed',
    'DispatchFailedError',
    'NotResolved',
    'NotResolvedError',
    'SubscriberFailure',
    'SubscriberFailureError',
]


def _describe_handler(handler: object) -> str:
    """Best-effort printable name for a subscriber callback."""
    name = getattr(handler, '__qualname__', None) or getattr(handler, '__name__', None)
    return name if name is not None else repr(handler)


def _dispatch_message(count: int, channel: str | None) -> str:
    msg = f'{count} subscriber{"s" if count != 1 else ""} failed during emit'
    if channel:
        msg = f'[{channel}] {msg}'
    return msg


# --- Subscriber Errors ---


class SubscriberFailure(msgspec.Struct, frozen=True, gc=False):
    """A subscriber raised or its awaitable failed - struct variant."""

    handler: str
    error_type: str
    message: str
    channel: str | None = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        handler: object,
        channel: str | None = None,
    ) -> SubscriberFailure:
        """Describe ``exc`` raised by ``handler`` on ``channel``."""
        return cls(
            handler=_describe_handler(handler),
            error_type=type(exc).__qualname__,
            message=str(exc),
            channel=channel,
        )

    def to_exception(self) -> SubscriberFailureError:
        """Convert to exception for raise-based code."""
        return SubscriberFailureError(self.handler, self.message, self.channel)


class SubscriberFailureError(Exception):
    """A subscriber raised or its awaitable failed - exception variant."""

    def __init__(self, handler: str, message: str, channel: str | None = None) -> None:
        self.handler = handler
        self.message = message
        self.channel = channel
        msg = f"Subscriber '{handler}' failed: {message}"
        if channel:
            msg = f'[{channel}] {msg}'
        super().__init__(msg)

    def to_struct(self) -> SubscriberFailure:
        """Convert to struct for structured reports."""
        cause = self.__cause__
        error_type = type(cause).__qualname__ if cause is not None else type(self).__qualname__
        return SubscriberFailure(self.handler, error_type, self.message, self.channel)


# --- Dispatch Errors ---


class DispatchFailed(msgspec.Struct, frozen=True, gc=False):
    """One or more subscribers failed during a concurrent emit - struct variant."""

    failures: tuple[SubscriberFailure, ...]
    channel: str | None = None

    def to_exception(self) -> DispatchFailedError:
        """Convert to exception for raise-based code.

        The struct does not retain the original exceptions, so each failure
        is rebuilt as a SubscriberFailureError.
        """
        return DispatchFailedError([f.to_exception() for f in self.failures], channel=self.channel)


class DispatchFailedError(ExceptionGroup):
    """One or more subscribers failed during a concurrent emit - exception variant.

    Bundles every underlying exception so callers can handle them with ``except*``.
    """

    channel: str | None
    handlers: tuple[object, ...]

    def __new__(
        cls,
        exceptions: Sequence[Exception],
        *,
        channel: str | None = None,
        handlers: Sequence[object] | None = None,
    ) -> DispatchFailedError:
        self = super().__new__(cls, _dispatch_message(len(exceptions), channel), list(exceptions))
        self.channel = channel
        self.handlers = tuple(handlers) if handlers is not None else ()
        return self

    def __init__(
        self,
        exceptions: Sequence[Exception],
        *,
        channel: str | None = None,
        handlers: Sequence[object] | None = None,
    ) -> None:
        super().__init__(_dispatch_message(len(exceptions), channel), list(exceptions))

    def derive(self, excs: Sequence[Exception]) -> DispatchFailedError:
        """Rebuild with a subset of exceptions (used by ``except*`` and ``split``)."""
        return DispatchFailedError(excs, channel=self.channel)

    def __reduce__(self) -> tuple[Any, ...]:
        return (_restore_dispatch_failed, (type(self), list(self.exceptions), self.channel, self.handlers))

    def to_struct(self) -> DispatchFailed:
        """Convert to struct for structured reports."""
        handlers = self.handlers or (None,) * len(self.exceptions)
        failures = tuple(
            SubscriberFailure.from_exception(exc, handler=handler, channel=self.channel)
            for exc, handler in zip(self.exceptions, handlers, strict=False)
        )
        return DispatchFailed(failures, self.channel)


def _restore_dispatch_failed(
    cls: type[DispatchFailedError],
    exceptions: list[Exception],
    channel: str | None,
    handlers: tuple[object, ...],
) -> DispatchFailedError:
    return cls(exceptions, channel=channel, handlers=handlers)


# --- Deferred Errors ---


class NotResolved(msgspec.Struct, frozen=True, gc=False):
    """Deferred value requested before resolution - struct variant."""

    def to_exception(self) -> NotResolvedError:
        """Convert to exception for raise-based code."""
        return NotResolvedError()


class NotResolvedError(Exception):
    """Deferred value requested before resolution - exception variant."""

    def __init__(self) -> None:
        super().__init__('Deferred not resolved yet. Await it first.')

    def to_struct(self) -> NotResolved:
        """Convert to struct for structured reports."""
        return NotResolved()
