"""Emitter configuration: Strategy enum, EmitterConfig, and initialization."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum

from emitkit._logging import configure_logging

__all__ = [
    'EmitterConfig',
    'Strategy',
    'get_config',
    'init',
]


class Strategy(Enum):
    """How AsyncChannel.emit awaits its subscribers."""

    SEQUENTIAL = 'sequential'
    CONCURRENT = 'concurrent'

    @classmethod
    def _missing_(cls, value: object) -> Strategy | None:
        if isinstance(value, str):
            normalized = value.lower()
            if normalized == 'parallel':
                return cls.CONCURRENT
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(frozen=True)
class EmitterConfig:
    """Process-wide emitter configuration.

    Attributes:
        default_strategy: Strategy for AsyncChannels created without one.
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = leave logging alone.
        json_logs: Render logs as JSON (True) or coloured console output (False).
        report_to_loop: Forward fire-and-forget subscriber failures to the running
            asyncio loop's exception handler in addition to logging them.
    """

    default_strategy: Strategy = Strategy.SEQUENTIAL
    log_level: str | None = None
    json_logs: bool = True
    report_to_loop: bool = True


# Global configuration (set by init())
_config: EmitterConfig | None = None

_DEFAULT_CONFIG = EmitterConfig()


def _detect_strategy() -> Strategy:
    """Detect the default strategy from the EMITKIT_STRATEGY environment variable."""
    env_strategy = os.environ.get('EMITKIT_STRATEGY', '')
    if not env_strategy:
        return Strategy.SEQUENTIAL
    try:
        return Strategy(env_strategy)
    except ValueError:
        logging.warning("Unknown EMITKIT_STRATEGY value '%s', defaulting to sequential", env_strategy)
        return Strategy.SEQUENTIAL


def init(
    default_strategy: Strategy | str | None = None,
    log_level: str | None = None,
    *,
    json_logs: bool = True,
    report_to_loop: bool = True,
) -> EmitterConfig:
    """Initialize emitkit with the specified configuration.

    Calling init() is optional; channels fall back to defaults until it runs.

    Args:
        default_strategy: Strategy for new AsyncChannels. Detected from
            EMITKIT_STRATEGY if None. Accepts a Strategy or its string value.
        log_level: Logging level ("DEBUG", "INFO", etc.). None = leave logging alone.
        json_logs: JSON output when logging is configured here.
        report_to_loop: Forward fire-and-forget failures to the running loop.

    Returns:
        The EmitterConfig that was set.

    Example:
        ```python
        import emitkit

        emitkit.init(default_strategy='concurrent', log_level='INFO')
        ```
    """
    global _config  # noqa: PLW0603

    if default_strategy is None:
        resolved_strategy = _detect_strategy()
    elif isinstance(default_strategy, str):
        resolved_strategy = Strategy(default_strategy)
    else:
        resolved_strategy = default_strategy

    _config = EmitterConfig(
        default_strategy=resolved_strategy,
        log_level=log_level,
        json_logs=json_logs,
        report_to_loop=report_to_loop,
    )

    if log_level is not None:
        configure_logging(log_level, json_output=json_logs)

    return _config


def get_config() -> EmitterConfig:
    """Get the current configuration.

    Raises:
        RuntimeError: If init() has not been called.
    """
    if _config is None:
        msg = 'emitkit not initialized. Call emitkit.init() first.'
        raise RuntimeError(msg)
    return _config


def _effective_config() -> EmitterConfig:
    """Configuration used by channels: the init() result, or defaults."""
    return _config if _config is not None else _DEFAULT_CONFIG
