"""
Logger module - Logging configuration and utilities

This module provides logging configuration with support for:
- File and console logging
- Configuration from .env
- Log rotation
- Unicode-safe console output on Windows
"""

import logging
import logging.handlers
import sys
import os
import json
from pathlib import Path
from typing import Optional, Dict, Any

_CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
_FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Settings resolved once from the environment on first get_logger() call
_settings: Dict[str, Any] = {}
_configured_loggers: Dict[str, logging.Logger] = {}


class SafeStreamHandler(logging.StreamHandler):
    """
    StreamHandler that replaces characters the console cannot encode
    instead of raising UnicodeEncodeError.
    """

    def emit(self, record):
        try:
            msg = self.format(record)
            stream = self.stream
            try:
                stream.write(msg + self.terminator)
            except UnicodeEncodeError:
                encoding = getattr(stream, 'encoding', None) or 'utf-8'
                stream.write(msg.encode(encoding, errors='replace').decode(encoding) + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def _load_settings() -> Dict[str, Any]:
    """Read logging settings from the environment (after loading .env)."""
    global _settings

    if _settings:
        return _settings

    from mission_planner.config.env_config import EnvConfig

    EnvConfig.load_env_file()

    _settings = {
        "log_folder": os.getenv("AGENT_LOG_FOLDER", "./logs"),
        "log_level": os.getenv("AGENT_LOG_LEVEL", "INFO").upper(),
        "enable_console": EnvConfig.get_bool("AGENT_ENABLE_CONSOLE_LOGGING", True),
        "enable_file": EnvConfig.get_bool("AGENT_ENABLE_FILE_LOGGING", False),
        "max_bytes": EnvConfig.get_int("AGENT_LOG_MAX_BYTES", 10 * 1024 * 1024),
        "backup_count": EnvConfig.get_int("AGENT_LOG_BACKUP_COUNT", 5),
    }
    if _settings["log_level"] not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        _settings["log_level"] = "INFO"
    return _settings


def _add_file_handler(logger: logging.Logger, name: str, settings: Dict[str, Any]) -> None:
    """Attach a rotating UTF-8 file handler under the configured log folder."""
    log_folder = settings["log_folder"]
    Path(log_folder).mkdir(parents=True, exist_ok=True)
    log_file = os.path.join(log_folder, f"{name}.log")

    try:
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=settings["max_bytes"],
            backupCount=settings["backup_count"],
            encoding='utf-8'
        )
    except OSError as e:
        logger.error(f"Failed to add file handler: {e}")
        return

    handler.setLevel(settings["log_level"])
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with standard formatting and .env configuration.

    The first call loads .env and reads the AGENT_LOG_* variables; later calls
    reuse those settings.

    Args:
        name: Logger name (typically __name__)
        level: Optional logging level override (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logging.Logger
    """
    if name in _configured_loggers:
        return _configured_loggers[name]

    settings = _load_settings()
    effective_level = (level or settings["log_level"]).upper()

    logger = logging.getLogger(name)
    logger.setLevel(effective_level)
    logger.propagate = True

    if not logger.handlers:
        if settings["enable_console"]:
            handler = SafeStreamHandler(sys.stdout)
            handler.setLevel(effective_level)
            handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
            logger.addHandler(handler)

        if settings["enable_file"]:
            _add_file_handler(logger, name, settings)

    _configured_loggers[name] = logger
    return logger


def log_performance(
    logger: logging.Logger,
    operation: str,
    duration_seconds: float,
    success: bool = True,
    metadata: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log a timing line for an operation.

    Args:
        logger: Logger to write to
        operation: Operation name
        duration_seconds: Duration in seconds
        success: Whether operation succeeded
        metadata: Additional context appended as JSON
    """
    status = "OK" if success else "FAILED"
    message = f"[PERF] {status} {operation} completed in {duration_seconds:.2f}s"
    if metadata:
        message = f"{message} | {json.dumps(metadata, default=str)}"

    if success:
        logger.info(message)
    else:
        logger.warning(message)
