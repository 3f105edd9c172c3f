"""
Logging utilities for structured logging
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message',
))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields from record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ReminderPlaybackFilter(logging.Filter):
    """Filter for reminder playback specific logging"""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log records"""
        # Add alarm context if available
        if hasattr(record, 'alarm_id'):
            record.alarm_context = {
                "alarm_id": record.alarm_id
            }

        return True


def setup_logging(log_level: str = "INFO", log_format: str = "text",
                 log_file: Optional[str] = None) -> None:
    """
    Setup structured logging for the reminder playback engine.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ("json", "simple" or "text")
        log_file: Optional log file path
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers
    root_logger.handlers.clear()

    if log_format.lower() == "json":
        formatter = JSONFormatter()
    elif log_format.lower() == "simple":
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ReminderPlaybackFilter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(ReminderPlaybackFilter())
        root_logger.addHandler(file_handler)

    # Quiet chatty third-party loggers
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('comtypes').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').disabled = True


def get_logger(name: str) -> logging.Logger:
    """
    Get logger with reminder playback context.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_state_change(logger: logging.Logger, alarm_id: int,
                     old_state: str, new_state: str, **kwargs) -> None:
    """
    Log ringing session state changes.

    Args:
        logger: Logger instance
        alarm_id: Alarm the session belongs to
        old_state: Previous state
        new_state: New state
        **kwargs: Additional context
    """
    logger.info(
        f"Session state change: {old_state} -> {new_state} (alarm {alarm_id})",
        extra={
            "alarm_id": alarm_id,
            "event_type": "state_change",
            "old_state": old_state,
            "new_state": new_state,
            **kwargs
        }
    )


def log_playback_event(logger: logging.Logger, alarm_id: int, event_type: str,
                      **kwargs) -> None:
    """
    Log playback events.

    Args:
        logger: Logger instance
        alarm_id: Alarm being played
        event_type: Type of playback event
        **kwargs: Additional context
    """
    logger.info(
        f"Playback event: {event_type} (alarm {alarm_id})",
        extra={
            "alarm_id": alarm_id,
            "event_type": "playback",
            "playback_action": event_type,
            **kwargs
        }
    )


def log_error(logger: logging.Logger, alarm_id: Optional[int], error: Exception,
              context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log errors with context.

    Args:
        logger: Logger instance
        alarm_id: Alarm involved, if any
        error: Exception that occurred
        context: Additional context
    """
    logger.error(
        f"Error occurred: {str(error)}",
        extra={
            "alarm_id": alarm_id,
            "event_type": "error",
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        },
        exc_info=error
    )


def log_session_summary(logger: logging.Logger, alarm_id: int, summary: Dict[str, Any]) -> None:
    """
    Log how a ringing session ended.

    Args:
        logger: Logger instance
        alarm_id: Alarm the session belonged to
        summary: Session data (strategy, duration, outcome)
    """
    logger.info(
        f"Session summary for alarm {alarm_id}",
        extra={
            "alarm_id": alarm_id,
            "event_type": "session_summary",
            "summary": summary
        }
    )
