"""
Application Logger

Console and optional file logging for the EduCentral service, with an
optional JSON formatter for log aggregation.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
import asyncio
from typing import Dict, Any, Optional, Union, Callable, TypeVar

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
APP_LOGGER_NAME = "educentral"

F = TypeVar('F', bound=Callable[..., Any])

__all__ = [
    'configure_logger',
    'LoggerAdapter',
    'JsonFormatter',
    'app_logger',
    'get_app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON object.

    Extra structured fields can be attached with ``extra={"data": {...}}``.
    """

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        style: str = '%',
        validate: bool = True,
        *,
        indent: Optional[int] = None
    ):
        super().__init__(fmt, datefmt, style, validate)
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        log_object = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "name": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno
        }

        if record.exc_info:
            log_object["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        if hasattr(record, 'data') and isinstance(record.data, dict):
            log_object.update(record.data)

        return json.dumps(log_object, indent=self.indent, default=str)


def configure_logger(
    name: str = APP_LOGGER_NAME,
    level: Union[str, int] = logging.INFO,
    format_string: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    use_json: bool = False,
    log_file: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure a logger with console and file handlers.

    Calling this again replaces the handlers of the named logger, so it is
    safe to reconfigure once settings have been loaded.

    Args:
        name: Logger name
        level: Log level
        format_string: Log format string
        date_format: Date format string
        use_json: Whether to use JSON formatting
        log_file: Path to log file (if None, no file handler is created)
        console_output: Whether to output logs to console

    Returns:
        Configured logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers = []

    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(format_string, date_format)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except (FileNotFoundError, PermissionError) as e:
            logger.warning(f"Could not create log file {log_file}: {e}")

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that attaches a fixed context to every record.

    The context lands in ``record.data`` so the JSON formatter emits it as
    top-level fields.
    """

    def __init__(self, logger: logging.Logger, context: Dict[str, Any] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs = kwargs.copy()
        extra = dict(kwargs.get('extra') or {})
        data = dict(extra.get('data') or {})
        data.update(self.extra)
        extra['data'] = data
        kwargs['extra'] = extra

        if self.extra:
            context = " ".join(f"{k}={v}" for k, v in self.extra.items())
            msg = f"[{context}] {msg}"
        return msg, kwargs

    def with_context(self, **context) -> 'LoggerAdapter':
        new_context = dict(self.extra)
        new_context.update(context)
        return LoggerAdapter(self.logger, new_context)


def get_app_logger() -> logging.Logger:
    """
    Get or create the application logger.

    Returns:
        The configured application logger
    """
    logger = logging.getLogger(APP_LOGGER_NAME)

    if not logger.handlers:
        return configure_logger(
            name=APP_LOGGER_NAME,
            level=os.environ.get("LOG_LEVEL", "INFO"),
            use_json=os.environ.get("LOG_JSON", "false").lower() == "true",
            log_file=os.environ.get("LOG_FILE"),
            console_output=True
        )

    return logger


app_logger = get_app_logger()


def log_execution_time(logger: Optional[logging.Logger] = None) -> Callable[[F], F]:
    """
    Decorator that logs how long the wrapped function took.

    Works for both plain and coroutine functions.

    Args:
        logger: Optional logger to use. If not provided, uses app_logger.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                (logger or app_logger).error(
                    f"{func.__name__} failed after {time.perf_counter() - start_time:.3f} seconds: {e}"
                )
                raise
            (logger or app_logger).debug(
                f"{func.__name__} executed in {time.perf_counter() - start_time:.3f} seconds"
            )
            return result

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                (logger or app_logger).error(
                    f"{func.__name__} failed after {time.perf_counter() - start_time:.3f} seconds: {e}"
                )
                raise
            (logger or app_logger).debug(
                f"{func.__name__} executed in {time.perf_counter() - start_time:.3f} seconds"
            )
            return result

        return async_wrapper if asyncio.iscoroutinefunction(func) else wrapper
    return decorator
