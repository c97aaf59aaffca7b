"""Logging for procspec.

Every module logs through a child of the ``procspec`` logger. Execution records carry
the descriptor name, the requested result shape and the connection scheme as
``extra_fields`` so that :class:`ExecutionFormatter` can emit them as JSON keys. Bound
values and full connection strings are never logged.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

from procspec._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "EXECUTION_FIELDS",
    "HANDLER_NAME",
    "ExecutionFormatter",
    "configure_logging",
    "get_logger",
    "log_execution",
)

EXECUTION_FIELDS = ("descriptor", "shape", "scheme")
HANDLER_NAME = "procspec"


class ExecutionFormatter(logging.Formatter):
    """JSON-lines formatter that lifts ``extra_fields`` into top-level keys."""

    def format(self, record: LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_entry.update(extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return str(encode_json(log_entry))


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the ``procspec`` namespace.

    Args:
        name: Logger name. If not provided, returns the root procspec logger.

    Returns:
        The namespaced logger.
    """
    if name is None:
        return logging.getLogger("procspec")

    if not name.startswith("procspec"):
        name = f"procspec.{name}"

    return logging.getLogger(name)


def configure_logging(
    level: str = "WARNING", *, structured: bool = False, stream: TextIO | None = None
) -> logging.Handler:
    """Install a stream handler on the ``procspec`` logger.

    A handler installed by an earlier call is replaced, so calling this twice does not
    duplicate output. Handlers added by the application are left alone.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        structured: Emit JSON lines through :class:`ExecutionFormatter` instead of text.
        stream: Target stream. Defaults to ``sys.stderr``.

    Returns:
        The installed handler.
    """
    root_logger = logging.getLogger("procspec")
    root_logger.setLevel(level.upper())
    for existing in [h for h in root_logger.handlers if h.get_name() == HANDLER_NAME]:
        root_logger.removeHandler(existing)
        existing.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(HANDLER_NAME)
    if structured:
        formatter: logging.Formatter = ExecutionFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    return handler


def log_execution(
    logger: logging.Logger,
    message: str,
    *,
    descriptor: str | None,
    shape: Any,
    scheme: str,
    level: int = logging.DEBUG,
) -> None:
    """Log a statement execution with its descriptor, shape and scheme.

    Args:
        logger: The logger to use.
        message: Log message.
        descriptor: Query or procedure name, ``None`` for raw statements.
        shape: The requested result shape.
        scheme: Connection string scheme, ``""`` when absent.
        level: Log level.
    """
    if not logger.isEnabledFor(level):
        return
    fields = dict(zip(EXECUTION_FIELDS, (descriptor, str(shape), scheme)))
    logger.log(
        level,
        "%s: %s (%s, %s)",
        message,
        descriptor or "<raw>",
        fields["shape"],
        scheme or "<none>",
        extra={"extra_fields": fields},
    )
