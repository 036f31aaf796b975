"""AsyncChannel: fan-out to possibly-async subscribers with an awaitable emit."""

from __future__ import annotations

import asyncio
import functools
import inspect
import itertools
import threading
from collections.abc import Awaitable, Callable
from typing import Any, overload

import anyio

from emitkit._config import Strategy, _effective_config
from emitkit._dispatch import schedule
from emitkit.deferred import Deferred
from emitkit.errors import DispatchFailedError
from emitkit.subscription import Subscription

__all__ = ['AsyncChannel']

_UNSET: Any = object()

type AsyncHandler[T] = Callable[[T], Awaitable[Any] | Any]


class AsyncChannel[T]:
    """Event channel whose emit() can be awaited until every subscriber finishes.

    Subscribers may be plain functions or return awaitables. How emit()
    waits for them depends on the strategy fixed at construction:

    - SEQUENTIAL: each subscriber is awaited before the next is called.
      The first failure propagates from emit() unchanged and the remaining
      subscribers are skipped for that emission.
    - CONCURRENT: every subscriber is called in subscription order, then all
      returned awaitables run together. Failures do not cancel siblings;
      once all have settled they are raised together as DispatchFailedError.

    Dispatch uses the same snapshot rule as SyncChannel: entries removed
    mid-dispatch are skipped and entries added mid-dispatch wait for the
    next emit.

    Example:
        ```python
        saved: AsyncChannel[dict] = AsyncChannel(strategy='concurrent')
        saved.subscribe(write_audit_log)
        saved.subscribe(invalidate_cache)
        await saved.emit({'id': 42})
        ```
    """

    __slots__ = (
        '__weakref__',
        '_first',
        '_lock',
        '_subscribers',
        '_tokens',
        '_upstream',
        '_value',
        'name',
        'strategy',
    )

    def __init__(self, strategy: Strategy | str | None = None, *, name: str | None = None) -> None:
        """Create an async channel.

        Args:
            strategy: SEQUENTIAL or CONCURRENT (or their string values).
                Defaults to the configured default strategy.
            name: Optional label used in repr() and failure reports.
        """
        if strategy is None:
            self.strategy = _effective_config().default_strategy
        elif isinstance(strategy, str):
            self.strategy = Strategy(strategy)
        else:
            self.strategy = strategy
        self.name = name
        self._subscribers: dict[int, AsyncHandler[T]] = {}
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
        return self._value is not _UNSET

    @property
    def first(self) -> Deferred[None]:
        """Resolves the first time this channel ever emits."""
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

    def subscribe(self, callback: AsyncHandler[T]) -> Subscription[T]:
        """Subscribe ``callback`` to every future emit."""
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback
        return Subscription(self, token, callback)

    async def subscribe_immediate(self, callback: AsyncHandler[T]) -> Subscription[T]:
        """Subscribe ``callback`` and, if the channel has emitted, await it with the last value."""
        subscription = self.subscribe(callback)
        if self._value is not _UNSET:
            result = callback(self._value)
            if inspect.isawaitable(result):
                await result
        return subscription

    def subscribe_once(self, callback: AsyncHandler[T]) -> Subscription[T]:
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

    def unsubscribe(self, callback: AsyncHandler[T] | Subscription[T]) -> bool:
        """Remove the first entry registered for ``callback``.

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

    async def emit(self, value: T = None) -> None:  # type: ignore[assignment]
        """Store ``value`` as the last value and dispatch it to all subscribers.

        Completes once dispatch has finished under the channel's strategy.
        Use emit_nowait() for fire-and-forget dispatch.

        Raises:
            Exception: SEQUENTIAL strategy; the first subscriber failure.
            DispatchFailedError: CONCURRENT strategy; every subscriber failure.
        """
        self._value = value
        self._first.resolve(None)

        with self._lock:
            snapshot = list(self._subscribers.items())

        if self.strategy is Strategy.SEQUENTIAL:
            await self._emit_sequential(snapshot, value)
        else:
            await self._emit_concurrent(snapshot, value)

    def emit_nowait(self, value: T = None) -> asyncio.Future[None] | None:  # type: ignore[assignment]
        """Run emit(value) in the background on the running loop.

        Failures are logged and forwarded to the loop's exception handler
        instead of being raised, as with SyncChannel.

        Returns:
            The background future, or None if no loop is running (the
            emission is then dropped and reported as a failure).
        """
        return schedule(self.emit(value), handler=self.emit, channel=self.name)

    async def _emit_sequential(self, snapshot: list[tuple[int, AsyncHandler[T]]], value: T) -> None:
        for token, callback in snapshot:
            if token not in self._subscribers:
                continue
            result = callback(value)
            if inspect.isawaitable(result):
                await result

    async def _emit_concurrent(self, snapshot: list[tuple[int, AsyncHandler[T]]], value: T) -> None:
        errors: list[Exception] = []
        failed: list[AsyncHandler[T]] = []
        pending: list[tuple[AsyncHandler[T], Awaitable[Any]]] = []

        for token, callback in snapshot:
            if token not in self._subscribers:
                continue
            try:
                result = callback(value)
            except Exception as exc:
                errors.append(exc)
                failed.append(callback)
                continue
            if inspect.isawaitable(result):
                pending.append((callback, result))

        async def settle(callback: AsyncHandler[T], awaitable: Awaitable[Any]) -> None:
            try:
                await awaitable
            except Exception as exc:
                errors.append(exc)
                failed.append(callback)

        if pending:
            async with anyio.create_task_group() as tg:
                for callback, awaitable in pending:
                    tg.start_soon(settle, callback, awaitable)

        if errors:
            raise DispatchFailedError(errors, channel=self.name, handlers=failed)

    # --- Chaining ---

    @overload
    def pipe(self, *, strategy: Strategy | str | None = None) -> AsyncChannel[T]: ...

    @overload
    def pipe[U](
        self, transform: Callable[[T], U], *, strategy: Strategy | str | None = None
    ) -> AsyncChannel[U]: ...

    def pipe(
        self,
        transform: Callable[[T], Any] | None = None,
        *,
        strategy: Strategy | str | None = None,
    ) -> AsyncChannel[Any]:
        """Create a channel that re-emits every value of this one.

        Awaiting emit() on this channel also awaits the derived channel's
        dispatch, since the relay is an ordinary subscriber.

        Args:
            transform: Applied to each value before it is re-emitted.
                Values are relayed unchanged when omitted.
            strategy: Strategy for the derived channel. Defaults to the
                configured default, not this channel's strategy.

        Returns:
            A new AsyncChannel with its own subscribers. It stays attached to
            this channel until ``derived.upstream.unsubscribe()`` is called.
        """
        derived: AsyncChannel[Any] = AsyncChannel(strategy, name=f'{self.name}|pipe' if self.name else None)

        if transform is None:
            relay = derived.emit
        else:

            async def relay(value: T) -> None:
                await derived.emit(transform(value))

        derived._upstream = self.subscribe(relay)
        return derived

    def __len__(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        label = f' {self.name!r}' if self.name else ''
        return f'<AsyncChannel{label} strategy={self.strategy.value} subscribers={len(self._subscribers)}>'
