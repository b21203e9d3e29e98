"""
Structured JSON logging for the payments service.

Every record is a single JSON object on one line:

    {"@timestamp": ..., "message": ..., "log": {"level": "INFO"},
     "service": {"name": ..., "version": ..., "environment": ...}, ...fields}

``JsonLogger`` is built once by the application and handed to each request
as a ``ContextLogger`` bound to that request's baggage.
"""

import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

BAGGAGE_FIELD = "baggage"

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def format_exception(exc: BaseException) -> Dict[str, str]:
    """Exception type, message and full stack trace as log fields."""
    if exc.__traceback__ is not None:
        tb_str = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        tb_str = f"{type(exc).__name__}: {exc}\n(No traceback available)"
    return {
        'type': type(exc).__name__,
        'message': str(exc),
        'stacktrace': tb_str,
    }


class JsonLogger:
    """Writes JSON log lines to a stream (stdout by default)."""

    def __init__(
        self,
        service_name: str = 'payments-service',
        version: str = '1.0.0',
        environment: str = 'development',
        level: str = 'INFO',
        stream: Optional[TextIO] = None,
    ) -> None:
        level = level.upper()
        if level == 'WARNING':
            level = 'WARN'
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        self.service_name = service_name
        self.version = version
        self.environment = environment
        self.level = level
        self._stream = stream

    def enabled(self, level: str) -> bool:
        return LEVELS[level] >= LEVELS[self.level]

    def log(self, level: str, message: str, **context: Any) -> None:
        if not self.enabled(level):
            return
        log_entry = {
            '@timestamp': _timestamp(),
            'message': message,
            'log': {'level': level},
            'service': {
                'name': self.service_name,
                'version': self.version,
                'environment': self.environment,
            },
        }
        log_entry.update(context)
        stream = self._stream if self._stream is not None else sys.stdout
        print(json.dumps(log_entry, default=str), file=stream, flush=True)

    def log_exception(self, level: str, message: str, exc: BaseException, **context: Any) -> None:
        """Log with full stack trace attached under ``exception``."""
        self.log(level, message, exception=format_exception(exc), **context)

    def bind(self, baggage: str) -> "ContextLogger":
        return ContextLogger(self, baggage)


class ContextLogger:
    """
    Request-scoped view of a ``JsonLogger``.

    Adds the request's baggage to every record under ``baggage``. A field
    passed explicitly by the caller is kept as-is, and the field is left out
    entirely when the request carried no baggage.
    """

    def __init__(self, logger: JsonLogger, baggage: str = '') -> None:
        self._logger = logger
        self.baggage = baggage

    def _fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        if self.baggage and BAGGAGE_FIELD not in fields:
            return {BAGGAGE_FIELD: self.baggage, **fields}
        return fields

    def debug(self, message: str, **fields: Any) -> None:
        self._logger.log('DEBUG', message, **self._fields(fields))

    def info(self, message: str, **fields: Any) -> None:
        self._logger.log('INFO', message, **self._fields(fields))

    def warn(self, message: str, **fields: Any) -> None:
        self._logger.log('WARN', message, **self._fields(fields))

    def error(self, message: str, **fields: Any) -> None:
        self._logger.log('ERROR', message, **self._fields(fields))

    def exception(self, message: str, exc: BaseException, **fields: Any) -> None:
        self._logger.log_exception('ERROR', message, exc, **self._fields(fields))
