"""Deferred: a resolve-once awaitable value, settable from synchronous code."""

from __future__ import annotations

from typing import Any

import aiologic

from emitkit.errors import NotResolved

__all__ = ['Deferred']

_UNSET: Any = object()


class Deferred[T]:
    """A value that becomes available once, the next time a channel emits.

    Unlike asyncio.Future, a Deferred is not bound to an event loop at
    creation, so SyncChannel.emit can resolve it from plain synchronous code
    and any number of tasks can await it afterwards. Awaiting a resolved
    Deferred returns immediately.
    """

    __slots__ = ('_event', '_value')

    def __init__(self) -> None:
        self._event: aiologic.Event = aiologic.Event()
        self._value: T = _UNSET

    def resolve(self, value: T) -> bool:
        """Resolve with ``value``.

        Returns:
            True if this call resolved the Deferred, False if it already was.
        """
        if self._value is not _UNSET:
            return False
        self._value = value
        self._event.set()
        return True

    def done(self) -> bool:
        """Check whether the Deferred has been resolved."""
        return self._value is not _UNSET

    def result(self) -> T:
        """Get the resolved value without waiting.

        Raises:
            NotResolvedError: If the Deferred has not been resolved yet.
        """
        if self._value is _UNSET:
            raise NotResolved().to_exception()
        return self._value

    async def wait(self) -> T:
        """Wait for resolution and return the value."""
        # aiologic.Event supports both async and green contexts
        await self._event
        return self._value

    def __await__(self) -> Any:
        """Support await syntax."""
        return self.wait().__await__()

    def __repr__(self) -> str:
        if self._value is _UNSET:
            return '<Deferred pending>'
        return f'<Deferred resolved={self._value!r}>'
