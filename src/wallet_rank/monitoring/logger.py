"""JSON logging with a per-wallet correlation id.

Log lines go to stderr so command output on stdout stays machine readable.
A ``WalletRankError`` attached to a record is serialized through its
``to_dict()`` so failures keep their structured details.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any, Dict, Iterator, Optional

from ..config.settings import MonitoringConfig, get_app_config
from ..exceptions import WalletRankError

NO_CORRELATION = "-"

_active_correlation: ContextVar[str] = ContextVar("wallet_rank_correlation", default=NO_CORRELATION)
_handler: Optional[logging.Handler] = None
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_FIELDS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields are nested under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            # Formatting runs in the emitting context, so the active scope applies.
            "correlation_id": _active_correlation.get(),
        }
        extra = _extras(record)
        if extra:
            line["extra"] = extra
        if record.exc_info:
            error = record.exc_info[1]
            if isinstance(error, WalletRankError):
                line["error"] = error.to_dict()
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def configure_logging(
    config: Optional[MonitoringConfig] = None,
    *,
    stream: Optional[IO[str]] = None,
    force: bool = False,
) -> logging.Handler:
    """Install the JSON handler on the root logger once per process.

    ``force`` replaces an earlier handler, e.g. to point output at another stream.
    """

    global _handler
    if _handler is not None and not force:
        return _handler
    monitoring = config or get_app_config().monitoring
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(monitoring.log_level.upper(), logging.INFO))
    logging.captureWarnings(True)
    _handler = handler
    return handler


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def current_correlation_id() -> str:
    return _active_correlation.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str]) -> Iterator[None]:
    """Tag every record emitted inside the block, awaited calls included."""

    token = _active_correlation.set(correlation_id or NO_CORRELATION)
    try:
        yield
    finally:
        _active_correlation.reset(token)


__all__ = [
    "NO_CORRELATION",
    "StructuredFormatter",
    "configure_logging",
    "correlation_scope",
    "current_correlation_id",
    "get_logger",
]
