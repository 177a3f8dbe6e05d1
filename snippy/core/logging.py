"""Logging setup: one readable line per record, structured extras as JSON.

Records emitted while a correlation id is bound (an HTTP request, or a
``run_in_transaction`` call) carry it in square brackets after the logger
name, so every line of one request or transaction can be grepped together.
"""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_correlation_id: ContextVar[str | None] = ContextVar("snippy_correlation_id", default=None)

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def current_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Bind ``correlation_id`` to every record logged inside the block."""
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)


class JSONExtrasFormatter(logging.Formatter):
    """Formatter for ``timestamp | LEVEL | logger [cid] | message {extras}``.

    Example:
        2026-01-15 10:30:45 | INFO     | snippy.services.snippets [3f2a9c01bd44] | Snippet created {"short_id": "aB3xZ9q"}
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        correlation_id = extras.pop("correlation_id", None) or current_correlation_id()

        source = record.name if correlation_id is None else f"{record.name} [{correlation_id}]"
        line = f"{self.formatTime(record, self.datefmt)} | {record.levelname:<8} | {source} | {record.message}"
        if extras:
            try:
                line = f"{line} {json.dumps(extras, default=str, ensure_ascii=False)}"
            except (TypeError, ValueError):
                line = f"{line} {extras!r}"

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line = f"{line}\n{record.exc_text}"
        return line


def setup_logging(*, debug: bool = False) -> None:
    """Attach a stdout handler to the ``snippy`` logger (once)."""
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger("snippy")
    logger.setLevel(level)
    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
