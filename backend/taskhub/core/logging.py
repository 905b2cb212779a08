"""
Structured Logging Module
Provides session-scoped logging with session_id propagation.

The notification client runs one logical session per signed-in user; every
record emitted while a session is active carries its id so interleaved
sessions (tests, multi-account tooling) can be told apart.
"""
import asyncio
import logging
import uuid
import time
import json
from contextvars import ContextVar
from typing import Optional, Any, Dict
from functools import wraps

from taskhub.core.config import settings

# Context variable for session-scoped data
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)


def get_session_id() -> Optional[str]:
    """Get current session ID from context."""
    return session_id_var.get()


def set_session_id(session_id: Optional[str]) -> None:
    """Set session ID in context."""
    session_id_var.set(session_id)


def generate_session_id() -> str:
    """Generate a new unique session ID."""
    return str(uuid.uuid4())[:8]


class StructuredLogger:
    """
    Structured JSON logger with session context support.
    Logs in JSON format for production, human-readable for development.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.name = name
        self._is_json = settings.APP_ENV == 'production'

    def _build_log_record(
        self,
        level: str,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> Dict[str, Any]:
        record = {
            'timestamp': time.strftime('%Y-%m-%dT%H:%M:%S%z'),
            'level': level,
            'logger': self.name,
            'message': message,
            'env': settings.APP_ENV,
        }

        session_id = get_session_id()
        if session_id:
            record['session_id'] = session_id

        if extra:
            record['context'] = extra

        if error:
            record['error'] = {
                'type': type(error).__name__,
                'message': str(error),
            }

        return record

    def _format_message(self, record: Dict[str, Any]) -> str:
        if self._is_json:
            return json.dumps(record, default=str)

        parts = [
            f"[{record.get('session_id', '-')}]",
            record['message'],
        ]

        if 'context' in record:
            parts.append(f"| {record['context']}")

        if 'error' in record:
            parts.append(f"| error={record['error']['type']}: {record['error']['message']}")

        return ' '.join(parts)

    def debug(self, message: str, **extra):
        record = self._build_log_record('DEBUG', message, extra if extra else None)
        self.logger.debug(self._format_message(record))

    def info(self, message: str, **extra):
        record = self._build_log_record('INFO', message, extra if extra else None)
        self.logger.info(self._format_message(record))

    def warning(self, message: str, error: Optional[BaseException] = None, **extra):
        record = self._build_log_record('WARNING', message, extra if extra else None, error)
        self.logger.warning(self._format_message(record))

    def error(self, message: str, error: Optional[BaseException] = None, **extra):
        record = self._build_log_record('ERROR', message, extra if extra else None, error)
        self.logger.error(self._format_message(record))

    def exception(self, message: str, **extra):
        """Log an error with the active exception's traceback attached."""
        record = self._build_log_record('ERROR', message, extra if extra else None)
        self.logger.exception(self._format_message(record))


def get_logger(name: str = 'taskhub') -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)


# Pre-configured loggers for different domains
api_logger = get_logger('taskhub.api')
sync_logger = get_logger('taskhub.sync')
push_logger = get_logger('taskhub.push')


def log_operation(operation: str, logger: Optional[StructuredLogger] = None):
    """
    Decorator for logging coroutine entry/exit with timing.

    Usage:
        @log_operation("fetch_notifications", sync_logger)
        async def fetch_notifications(...):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            log = logger or api_logger
            start = time.time()
            log.debug(f"{operation} started")
            try:
                result = await func(*args, **kwargs)
            except asyncio.CancelledError:
                log.debug(f"{operation} cancelled")
                raise
            except Exception as e:
                duration = round((time.time() - start) * 1000, 2)
                log.warning(f"{operation} failed", error=e, duration_ms=duration)
                raise
            duration = round((time.time() - start) * 1000, 2)
            log.debug(f"{operation} completed", duration_ms=duration)
            return result

        return async_wrapper

    return decorator
