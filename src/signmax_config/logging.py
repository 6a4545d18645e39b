"""Structured logging helpers for the peer tooling CLIs.

Library modules obtain loggers through :func:`get_logger`, which attaches a
``NullHandler`` and wraps the logger in a :class:`LoggerAdapter` that injects
``operation`` and ``status`` fields. Handlers are configured once
at the CLI boundary via :func:`setup_logging`; log records go to ``stderr`` so
that command output on ``stdout`` stays machine-readable.

Examples
--------
>>> from signmax_config.logging import get_logger, with_fields
>>> logger = get_logger(__name__)
>>> logger.info("Install planned", extra={"operation": "install", "status": "planned"})
>>> adapter = with_fields(logger, operation="audit", consumer_root="/srv/app")
>>> adapter.info("Audit started")
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "JsonFormatter",
    "LoggerAdapter",
    "get_logger",
    "setup_logging",
    "with_fields",
]

_STANDARD_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents.

    The payload always carries ``ts``, ``level``, ``name`` and ``message``;
    structured fields passed through ``extra`` are appended when they are
    JSON-friendly scalars, lists or dicts.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format ``record`` as JSON.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format.

        Returns
        -------
        str
            JSON-encoded log entry.
        """
        data: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if (
                key not in _STANDARD_RECORD_KEYS
                and key not in data
                and not key.startswith("_")
                and value is not None
                and isinstance(value, (str, int, float, bool, list, dict))
            ):
                data[key] = value

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class LoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger adapter that injects structured context fields.

    Fields bound on the adapter (``extra`` at construction time) are merged
    into every record unless the call site overrides them. ``operation`` and
    ``status`` always end up on the record; ``status`` is inferred from the
    level when the caller does not supply one.
    """

    logger: logging.Logger

    def process(self, msg: str, kwargs: Mapping[str, Any]) -> tuple[str, Any]:
        """Merge bound fields into the call's ``extra`` mapping.

        Parameters
        ----------
        msg : str
            Log message.
        kwargs : Mapping[str, Any]
            Keyword arguments of the logging call.

        Returns
        -------
        tuple[str, Any]
            The message and the updated keyword arguments.
        """
        if not isinstance(kwargs, dict):
            return msg, kwargs

        extra = kwargs.setdefault("extra", {})
        if isinstance(self.extra, dict):
            for key, value in self.extra.items():
                extra.setdefault(key, value)

        extra.setdefault("operation", "unknown")
        return msg, kwargs

    def log(self, level: int, msg: object, *args: object, **kwargs: Any) -> None:
        extra = kwargs.setdefault("extra", {})
        if "status" not in extra:
            if level >= logging.ERROR:
                extra["status"] = "error"
            elif level >= logging.WARNING:
                extra["status"] = "warning"
            else:
                extra["status"] = "success"
        super().log(level, msg, *args, **kwargs)

    def debug(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: object, *args: object, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: object, *args: object, exc_info: Any = True, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)


def get_logger(name: str) -> LoggerAdapter:
    """Return a structured logger adapter for ``name``.

    Parameters
    ----------
    name : str
        Logger name (typically ``__name__``).

    Returns
    -------
    LoggerAdapter
        Adapter with structured context injection.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return LoggerAdapter(logger, {})


def with_fields(logger: logging.Logger | LoggerAdapter, **fields: object) -> LoggerAdapter:
    """Return an adapter bound to ``fields``.

    Parameters
    ----------
    logger : logging.Logger | LoggerAdapter
        Base logger (an existing adapter is unwrapped first).
    **fields : object
        Structured fields injected into every record.

    Returns
    -------
    LoggerAdapter
        Adapter carrying ``fields``.
    """
    base_logger = logger.logger if isinstance(logger, LoggerAdapter) else logger
    return LoggerAdapter(base_logger, dict(fields))


def setup_logging(level: int | str = logging.WARNING, *, json_logs: bool = True) -> None:
    """Configure the root logger with a ``stderr`` handler.

    Parameters
    ----------
    level : int | str, optional
        Threshold level name or number. Defaults to ``WARNING``.
    json_logs : bool, optional
        Use :class:`JsonFormatter` when ``True``, a plain text format otherwise.
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    resolved = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    logging.basicConfig(level=resolved, handlers=[handler], force=True)

