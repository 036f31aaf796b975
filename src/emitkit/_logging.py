"""Structured logging for emitkit.

Subscriber failures nobody awaits are reported through structlog. The
processor chain expands msgspec failure structs into flat event fields and
renders JSON with msgspec, so hooks and log shippers see ``handler``,
``error_type``, ``message`` and ``channel`` as top-level keys.

Nothing is configured on import. configure_logging() (or
``emitkit.init(log_level=...)``) installs one stderr handler on the root
logger, next to whatever handlers the host application already has.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import msgspec
import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    'add_log_hook',
    'clear_log_hooks',
    'configure_logging',
    'get_logger',
    'remove_log_hook',
]

# Name given to the handler configure_logging() installs, so a second call
# replaces it instead of stacking another one.
_HANDLER_NAME = 'emitkit'

_log_hooks: list[Callable[[dict[str, Any]], None]] = []


def _expand_structs(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Flatten a ``failure=`` struct into the event's own fields.

    Keys already present on the event win over the struct's fields.
    """
    failure = event_dict.get('failure')
    if isinstance(failure, msgspec.Struct):
        del event_dict['failure']
        for key, value in msgspec.structs.asdict(failure).items():
            event_dict.setdefault(key, value)
    return event_dict


def _run_hooks(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for hook in _log_hooks:
        try:
            hook(event_dict.copy())
        except Exception:  # noqa: BLE001, S112
            continue
    return event_dict


def _encode_json(obj: Any, **_: Any) -> str:
    return msgspec.json.encode(obj, enc_hook=repr).decode()


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.stdlib.ExtraAdder(),
        _expand_structs,
        _run_hooks,
    ]


def _renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer(serializer=_encode_json)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(level: str = 'INFO', *, json_output: bool = True) -> None:
    """Route structlog and stdlib records through one structlog-formatted handler.

    Handlers installed by the host application are left in place. Calling
    this again swaps emitkit's handler for a fresh one.

    Args:
        level: Root logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL").
        json_output: If True, emit JSON lines. If False, use console output.
    """
    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _renderer(json_output),
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        A structlog BoundLogger.
    """
    return structlog.get_logger(name)


# --- Logging Hooks ---


def add_log_hook(hook: Callable[[dict[str, Any]], None]) -> None:
    """Register a hook called with a copy of every log event.

    Hooks see events only after configure_logging() has installed the
    processor chain. A hook that raises is skipped for that event.

    Args:
        hook: Callable that receives the event dict.
    """
    _log_hooks.append(hook)


def remove_log_hook(hook: Callable[[dict[str, Any]], None]) -> None:
    """Remove a previously registered log hook."""
    if hook in _log_hooks:
        _log_hooks.remove(hook)


def clear_log_hooks() -> None:
    """Remove all registered log hooks."""
    _log_hooks.clear()
