"""
Logging setup for the Health Yaar backend and client.

Console output is colored and human-readable; the optional log file is
rotated and written as one JSON object per line. Records may carry a
structured payload in ``extra={"extra_fields": {...}}``.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

SENSITIVE_KEYS = ('password', 'token', 'secret', 'authorization', 'api_key', 'api-key')
# Keys whose values are base64 blobs; logged by size only
BLOB_KEYS = ('image', 'data', 'inlinedata')

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original:8s}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        extra_fields = getattr(record, 'extra_fields', None)
        if extra_fields:
            entry.update(filter_sensitive_data(extra_fields))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    return handler


def _file_handler(path: str, level: int, json_format: bool) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        filename=log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8',
    )
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    return handler


def setup_logging(config: Any) -> None:
    """
    Configure the root logger from a settings object.

    Args:
        config: Object exposing ``log_level``, ``log_console_enabled``,
            ``log_file_enabled``, ``log_file_path`` and ``log_json_format``
    """
    level = getattr(logging, str(config.log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    if config.log_console_enabled:
        root_logger.addHandler(_console_handler(level))

    if config.log_file_enabled:
        root_logger.addHandler(
            _file_handler(config.log_file_path, level, config.log_json_format)
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        f"Logging initialized: level={logging.getLevelName(level)}, "
        f"console={config.log_console_enabled}, file={config.log_file_enabled}"
    )


def _is_sensitive(key: str, keys: Iterable[str]) -> bool:
    lowered = key.lower()
    return any(sensitive in lowered for sensitive in keys)


def filter_sensitive_data(data: Any, sensitive_keys: Optional[Iterable[str]] = None) -> Any:
    """
    Mask credentials and collapse base64 blobs in data about to be logged.

    Args:
        data: dict, list or primitive
        sensitive_keys: Key fragments to mask (defaults to ``SENSITIVE_KEYS``)

    Returns:
        A copy with sensitive values replaced by ``"***FILTERED***"`` and
        blob values replaced by their length
    """
    keys = tuple(sensitive_keys) if sensitive_keys is not None else SENSITIVE_KEYS

    if isinstance(data, dict):
        filtered = {}
        for key, value in data.items():
            if _is_sensitive(str(key), keys):
                filtered[key] = "***FILTERED***"
            elif str(key).lower() in BLOB_KEYS and isinstance(value, str) and len(value) > 256:
                filtered[key] = f"<{len(value)} chars>"
            else:
                filtered[key] = filter_sensitive_data(value, keys)
        return filtered
    if isinstance(data, list):
        return [filter_sensitive_data(item, keys) for item in data]
    return data


def truncate_large_data(data: str, max_length: int = 5000) -> str:
    """Cut ``data`` to ``max_length`` characters, noting the original size."""
    if len(data) <= max_length:
        return data
    return data[:max_length] + f"... (truncated, total length: {len(data)})"
