"""Pytest configuration and shared fixtures for emitkit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator


@pytest.fixture(autouse=True)
def reset_emitkit() -> Generator[None]:
    """Forget init() configuration and log hooks around each test."""
    from emitkit import _config
    from emitkit._logging import clear_log_hooks

    _config._config = None
    clear_log_hooks()
    yield
    _config._config = None
    clear_log_hooks()


@pytest.fixture
def captured_logs() -> Generator[list[dict[str, Any]]]:
    """Configure JSON logging and collect every event dict emitted."""
    from emitkit import add_log_hook, configure_logging

    received: list[dict[str, Any]] = []
    configure_logging(level='DEBUG', json_output=True)
    add_log_hook(received.append)
    yield received
    structlog.reset_defaults()


@pytest.fixture
async def loop_failures() -> AsyncGenerator[list[dict[str, Any]]]:
    """Capture contexts passed to the running loop's exception handler."""
    import asyncio

    loop = asyncio.get_running_loop()
    contexts: list[dict[str, Any]] = []
    previous = loop.get_exception_handler()
    loop.set_exception_handler(lambda _loop, context: contexts.append(context))
    yield contexts
    loop.set_exception_handler(previous)
