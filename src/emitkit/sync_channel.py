"""SyncChannel: synchronous fan-out of a value to every subscriber."""

from __future__ import annotations

import functools
import itertools
import threading
from collections.abc import Callable
from typing import Any, overload

from emitkit._dispatch import fire
from emitkit.deferred import Deferred
from emitkit.subscription import Subscription

__all__ = ['SyncChannel']

_UNSET: Any = object()

type Handler[T] = Callable[[T], Any]


class SyncChannel[T]:
    """Event channel whose emit() dispatches immediately and returns nothing.

    Subscribers are called in subscription order. A subscriber returning an
    awaitable has it scheduled on the running loop without waiting for it.
    Subscriber failures never reach the caller of emit(); they are logged
    and forwarded to the running loop's exception handler.

    Dispatch iterates over a snapshot of the subscriber table and skips
    entries removed mid-dispatch, so subscribers may unsubscribe themselves
    or each other and emit re-entrantly. Subscribers added mid-dispatch
    first see the next emit.

    Example:
        ```python
        clicks: SyncChannel[int] = SyncChannel()
        clicks.subscribe(lambda n: print('clicked', n))
        clicks.emit(1)
        ```
    """

    __slots__ = ('__weakref__', '_first', '_lock', '_subscribers', '_tokens', '_upstream', '_value', 'name')

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self._subscribers: dict[int, Handler[T]] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()
        self._value: T = _UNSET
        self._first: Deferred[None] = Deferred()
        self._upstream: Subscription[Any] | None = None

    # --- State ---

    @property
    def value(self) -> T | None:
        """The most recently emitted value, or None before the first emit."""
        return None if self._value is _UNSET else self._value

    @property
    def has_value(self) -> bool:
        """True once emit() has been called at least once."""
        return self._value is not _UNSET

    @property
    def first(self) -> Deferred[None]:
        """Resolves the first time this channel ever emits.

        The same Deferred is returned on every access, so waiters arriving
        after the first emit see it already resolved.
        """
        return self._first

    @property
    def next_event(self) -> Deferred[T]:
        """A new Deferred resolved with the value of the next emit."""
        deferred: Deferred[T] = Deferred()
        self.subscribe_once(deferred.resolve)
        return deferred

    @property
    def upstream(self) -> Subscription[Any] | None:
        """For channels created by pipe(), the relay subscription on the source."""
        return self._upstream

    # --- Subscription ---

    def subscribe(self, callback: Handler[T]) -> Subscription[T]:
        """Subscribe ``callback`` to every future emit."""
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback
        return Subscription(self, token, callback)

    def subscribe_immediate(self, callback: Handler[T]) -> Subscription[T]:
        """Subscribe ``callback`` and call it now with the last value, if any."""
        subscription = self.subscribe(callback)
        if self._value is not _UNSET:
            fire(callback, self._value, channel=self.name)
        return subscription

    def subscribe_once(self, callback: Handler[T]) -> Subscription[T]:
        """Subscribe ``callback`` for the next emit only.

        The entry is removed before the callback runs, so it is invoked at
        most once even if it emits on this channel itself.
        """
        subscription: Subscription[T]

        @functools.wraps(callback)
        def once(value: T) -> Any:
            subscription.unsubscribe()
            return callback(value)

        once._emitkit_once_of = callback  # type: ignore[attr-defined]

        subscription = self.subscribe(once)
        return subscription

    def unsubscribe(self, callback: Handler[T] | Subscription[T]) -> bool:
        """Remove the first entry registered for ``callback``.

        Accepts either the callback or a Subscription returned by one of the
        subscribe methods. Callbacks wrapped by subscribe_once() match too.

        Returns:
            True if an entry was removed, False if none matched.
        """
        if isinstance(callback, Subscription):
            return callback.unsubscribe()
        with self._lock:
            for token, registered in self._subscribers.items():
                if registered == callback or getattr(registered, '_emitkit_once_of', None) == callback:
                    del self._subscribers[token]
                    return True
        return False

    def _remove(self, token: int) -> bool:
        with self._lock:
            return self._subscribers.pop(token, None) is not None

    def _has(self, token: int) -> bool:
        return token in self._subscribers

    # --- Dispatch ---

    def emit(self, value: T = None) -> None:  # type: ignore[assignment]
        """Store ``value`` as the last value and dispatch it to all subscribers."""
        self._value = value
        self._first.resolve(None)

        with self._lock:
            snapshot = list(self._subscribers.items())

        for token, callback in snapshot:
            if token in self._subscribers:
                fire(callback, value, channel=self.name)

    # --- Chaining ---

    @overload
    def pipe(self) -> SyncChannel[T]: ...

    @overload
    def pipe[U](self, transform: Callable[[T], U]) -> SyncChannel[U]: ...

    def pipe(self, transform: Callable[[T], Any] | None = None) -> SyncChannel[Any]:
        """Create a channel that re-emits every value of this one.

        Args:
            transform: Applied to each value before it is re-emitted.
                Values are relayed unchanged when omitted.

        Returns:
            A new SyncChannel with its own subscribers. It stays attached to
            this channel until ``derived.upstream.unsubscribe()`` is called.
        """
        derived: SyncChannel[Any] = SyncChannel(name=f'{self.name}|pipe' if self.name else None)

        if transform is None:
            relay = derived.emit
        else:

            def relay(value: T) -> None:
                derived.emit(transform(value))

        derived._upstream = self.subscribe(relay)
        return derived

    def __len__(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        label = f' {self.name!r}' if self.name else ''
        return f'<SyncChannel{label} subscribers={len(self._subscribers)}>'
