"""
Avatar Color Logging
Loguru sink setup and a context-carrying logger for the display-color service.
"""
import sys
from typing import Any, Dict, Optional

from loguru import logger

from avatar_color.config import config

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} | {message} | {extra}"


def configure_logging(level: Optional[str] = None, serialize: Optional[bool] = None) -> None:
    """Replace loguru's default handler with a single stdout sink."""
    logger.remove()
    logger.add(
        sys.stdout,
        format=LOG_FORMAT,
        level=level or config.LOG_LEVEL,
        serialize=config.LOG_JSON if serialize is None else serialize,
    )


class StructuredLogger:
    """Logger that attaches fixed context (component, subject) to every record.

    Per-call ``extra`` fields are merged over the fixed context.
    """

    def __init__(self, **context: Any):
        self.context: Dict[str, Any] = context

    def bind(self, **context: Any) -> "StructuredLogger":
        return StructuredLogger(**{**self.context, **context})

    def _log(self, level: str, message: str, extra: Optional[Dict[str, Any]]):
        fields = {**self.context, **(extra or {})}
        # depth=2 reports the caller of info()/warning()/..., not this wrapper
        logger.bind(**fields).opt(depth=2).log(level, message)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log("INFO", message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log("WARNING", message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log("ERROR", message, extra)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._log("DEBUG", message, extra)


_logger: Optional[StructuredLogger] = None


def get_logger() -> StructuredLogger:
    """Return the root structured logger, configuring the sink on first use."""
    global _logger
    if _logger is None:
        configure_logging()
        _logger = StructuredLogger()
    return _logger
