"""
Shared protocols for kvtree.

The encoder, decoder and store clients accept any logger matching
LoggerProtocol, so callers can route traversal events wherever they want.
"""

from __future__ import annotations

import logging
from typing import Protocol


class LoggerProtocol(Protocol):
    """
    Protocol for async logger - lets the engine work with any logging implementation.

    Implementations:
    - StdlibLogger (below): forwards to a logging.Logger
    - CLILogger (cli/logger.py): prints to stdout with optional verbose mode
    - NullLogger (below): No-op implementation for when logging is optional
    """

    async def info(self, message: str) -> None: ...
    async def warning(self, message: str) -> None: ...
    async def error(self, message: str) -> None: ...


class NullLogger:
    """
    No-op logger implementation for when logging is optional.

    Default logger of Encoder and Decoder.
    """

    async def info(self, message: str) -> None:
        pass

    async def warning(self, message: str) -> None:
        pass

    async def error(self, message: str) -> None:
        pass


class StdlibLogger:
    """Adapts a standard library logger to LoggerProtocol."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger('kvtree')

    async def info(self, message: str) -> None:
        self.logger.info(message)

    async def warning(self, message: str) -> None:
        self.logger.warning(message)

    async def error(self, message: str) -> None:
        self.logger.error(message)
