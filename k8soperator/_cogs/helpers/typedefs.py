"""
Rudimentary type [re-]definitions shared across the codebase.

Some stdlib classes are generics for the type-checkers, but not at runtime
(e.g. ``logging.LoggerAdapter`` and ``asyncio.Task`` in older Pythons).
"""
import logging
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = Union[logging.Logger, LoggerAdapter]
