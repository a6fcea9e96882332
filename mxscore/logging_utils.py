from __future__ import annotations

"""Logging helpers for structured payloads and parse-location metadata."""

from typing import Any, Dict, Iterable, Iterator, Optional
from pathlib import Path
from contextlib import contextmanager
import logging
import json
from datetime import datetime, timezone
import os
import contextvars


def summarize_payload(value: Any, *, max_list: int = 20, max_str: int = 200, depth: int = 3) -> Any:
    """Return a safe, size-limited summary of a payload for logging."""
    if depth <= 0:
        return f"<{type(value).__name__}>"
    if isinstance(value, dict):
        items = list(value.items())
        summarized: Dict[str, Any] = {}
        for key, val in items[:max_list]:
            summarized[str(key)] = summarize_payload(val, max_list=max_list, max_str=max_str, depth=depth - 1)
        if len(items) > max_list:
            summarized["__truncated__"] = True
            summarized["__len__"] = len(items)
        return summarized
    if isinstance(value, (list, tuple)):
        if len(value) > max_list:
            return {
                "__len__": len(value),
                "sample": [
                    summarize_payload(item, max_list=max_list, max_str=max_str, depth=depth - 1)
                    for item in value[:5]
                ],
            }
        return [
            summarize_payload(item, max_list=max_list, max_str=max_str, depth=depth - 1)
            for item in value
        ]
    if isinstance(value, str):
        if len(value) > max_str:
            return value[:max_str] + "...(truncated)"
        return value
    if isinstance(value, bytes):
        return {"__bytes__": len(value)}
    if isinstance(value, Path):
        return str(value)
    return value


DEFAULT_LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d:%(funcName)s "
    "source=%(source)s part=%(part)s measure=%(measure)s %(message)s"
)


_STANDARD_LOG_RECORD_KEYS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
)


_source = contextvars.ContextVar("log_source", default="-")
_part = contextvars.ContextVar("log_part", default="-")
_measure = contextvars.ContextVar("log_measure", default="-")


def set_log_context(
    *, source: Optional[str] = None, part: Optional[str] = None, measure: Optional[str] = None
) -> None:
    """Set context variables for log enrichment."""
    if source is not None:
        _source.set(source)
    if part is not None:
        _part.set(part)
    if measure is not None:
        _measure.set(measure)


def clear_log_context() -> None:
    """Reset log context variables to their default values."""
    _source.set("-")
    _part.set("-")
    _measure.set("-")


@contextmanager
def log_context(
    *, source: Optional[str] = None, part: Optional[str] = None, measure: Optional[str] = None
) -> Iterator[None]:
    """Scope log context variables to a block, restoring the previous values on exit."""
    tokens = []
    if source is not None:
        tokens.append((_source, _source.set(source)))
    if part is not None:
        tokens.append((_part, _part.set(part)))
    if measure is not None:
        tokens.append((_measure, _measure.set(measure)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


class LoggingContextFilter(logging.Filter):
    """Inject source/part/measure into each log record."""
    def filter(self, record: logging.LogRecord) -> bool:
        record.source = _source.get()
        record.part = _part.get()
        record.measure = _measure.get()
        return True


class JsonFormatter(logging.Formatter):
    """Format log records as JSON for structured logging sinks."""
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
            timespec="milliseconds"
        )
        payload = {
            "timestamp": timestamp,
            "severity": record.levelname,
            "level": record.levelname,
            "logger": record.name,
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
            "message": record.getMessage(),
            "source": getattr(record, "source", "-"),
            "part": getattr(record, "part", "-"),
            "measure": getattr(record, "measure", "-"),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_LOG_RECORD_KEYS
        }
        if extras:
            payload.update(extras)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _use_json_logs() -> bool:
    """Return True when environment config requests JSON logs."""
    return os.getenv("LOG_FORMAT", "").lower() == "json" or os.getenv(
        "LOG_JSON", ""
    ).lower() in {"1", "true", "yes"}


def build_formatter() -> logging.Formatter:
    """Build the active log formatter based on environment settings."""
    if _use_json_logs():
        return JsonFormatter()
    return logging.Formatter(DEFAULT_LOG_FORMAT)


def attach_context_filter(handler: logging.Handler) -> None:
    """Ensure a handler includes the logging context filter."""
    if not any(isinstance(f, LoggingContextFilter) for f in handler.filters):
        handler.addFilter(LoggingContextFilter())


def ensure_context_handlers(logger_names: Iterable[str] | None = None) -> None:
    """Apply consistent formatting/context to known logger handlers."""
    formatter = build_formatter()
    if logger_names is None:
        logger_names = ("", "mxscore")
    for name in logger_names:
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.setFormatter(formatter)
            attach_context_filter(handler)


def configure_logging(level: int | str | None = None) -> None:
    """Configure root logging for scripts and apply environment overrides."""
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)
    level_override = level or os.getenv("MXSCORE_LOG_LEVEL")
    if level_override:
        if isinstance(level_override, str):
            level_override = level_override.upper()
        logging.getLogger("mxscore").setLevel(level_override)
    ensure_context_handlers()


def get_logger(module_name: str) -> logging.Logger:
    """Return a logger, attaching a per-module file handler when MXSCORE_LOG_DIR is set."""
    logger = logging.getLogger(module_name)
    if getattr(logger, "_file_handler_attached", False):
        return logger
    log_dir_value = os.getenv("MXSCORE_LOG_DIR")
    if not log_dir_value:
        logger.propagate = True
        return logger
    log_dir = Path(log_dir_value)
    log_dir.mkdir(parents=True, exist_ok=True)
    filename = module_name.replace(".", "_") + ".log"
    handler = logging.FileHandler(log_dir / filename, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(build_formatter())
    attach_context_filter(handler)
    logger.addHandler(handler)
    logger.propagate = True
    setattr(logger, "_file_handler_attached", True)
    return logger
