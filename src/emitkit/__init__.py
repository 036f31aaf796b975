"""
emitkit: typed in-process event channels.

Each channel instance is one event kind. Subscribers are called in subscription
order with the emitted value; channels remember the last value and offer one-shot
subscriptions, replay-on-subscribe, awaitable next/first events, and pipe()
transform chains.

- `SyncChannel[T]`: emit() dispatches immediately; async subscribers are scheduled
  fire-and-forget and their failures reported, never raised.
- `AsyncChannel[T]`: `await emit()` completes after every subscriber has finished,
  either one at a time (`Strategy.SEQUENTIAL`) or all together
  (`Strategy.CONCURRENT`).

Example:
    ```python
    from emitkit import AsyncChannel, SyncChannel

    ready: SyncChannel[None] = SyncChannel()
    ready.subscribe(lambda _: print('ready'))
    ready.emit()

    jobs: AsyncChannel[str] = AsyncChannel(strategy='concurrent')
    jobs.subscribe(process_job)
    await jobs.emit('job-1')
    ```
"""

from emitkit._config import EmitterConfig, Strategy, get_config, init
from emitkit._dispatch import report_failure
from emitkit._logging import add_log_hook, clear_log_hooks, configure_logging, get_logger, remove_log_hook
from emitkit.async_channel import AsyncChannel
from emitkit.deferred import Deferred
from emitkit.errors import (
    DispatchFailed,
    DispatchFailedError,
    NotResolved,
    NotResolvedError,
    SubscriberFailure,
    SubscriberFailureError,
)
from emitkit.subscription import Subscription
from emitkit.sync_channel import SyncChannel

__all__ = [
    # Channels
    'AsyncChannel',
    'Deferred',
    # Errors - struct variants
    'DispatchFailed',
    # Errors - exception variants
    'DispatchFailedError',
    # Config
    'EmitterConfig',
    'NotResolved',
    'NotResolvedError',
    'Strategy',
    'SubscriberFailure',
    'SubscriberFailureError',
    'Subscription',
    'SyncChannel',
    # Logging
    'add_log_hook',
    'clear_log_hooks',
    'configure_logging',
    'get_config',
    'get_logger',
    'init',
    'remove_log_hook',
    'report_failure',
]
