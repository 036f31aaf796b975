"""Subscription handles returned by every subscribe-family channel method."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol

__all__ = ['Subscription']


class _Unsubscribable(Protocol):
    def _remove(self, token: int) -> bool: ...

    def _has(self, token: int) -> bool: ...


class Subscription[T]:
    """Handle to one registered subscriber entry.

    Each handle owns a token unique within its channel, so unsubscribe()
    removes exactly the entry it was created for, even when the same
    callback is subscribed more than once. Unsubscribing is idempotent.

    Can be used as a context manager to scope a subscription:

        ```python
        with channel.subscribe(print):
            channel.emit('hello')
        ```
    """

    __slots__ = ('_channel', '_token', 'callback')

    def __init__(self, channel: _Unsubscribable, token: int, callback: Callable[[T], Any]) -> None:
        self._channel = channel
        self._token = token
        self.callback = callback

    @property
    def token(self) -> int:
        return self._token

    @property
    def active(self) -> bool:
        """True until this subscription is removed from its channel."""
        channel = self._channel
        return channel is not None and channel._has(self._token)

    def unsubscribe(self) -> bool:
        """Remove this entry from the owning channel.

        Returns:
            True if the entry was removed by this call, False if it was
            already gone.
        """
        channel = self._channel
        if channel is None:
            return False
        self._channel = None
        return channel._remove(self._token)

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        state = 'active' if self.active else 'inactive'
        return f'<Subscription #{self._token} {state}>'
