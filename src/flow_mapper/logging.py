"""
Logging configuration for Flow Mapper.

Schema documents are rendered from templates and may embed credentials or
other environment values, so rendered text and template variables are
kept out of log output.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, cast

import structlog
from structlog.types import FilteringBoundLogger

if TYPE_CHECKING:
    from .config.manager import LoggingConfig


class RawContentFilter(logging.Filter):
    """
    Filter that drops stdlib log records carrying raw schema content.

    Note: Rendered schema text is only ever attached as extra fields, so
    checking record attributes is enough.
    """

    RAW_CONTENT_KEYS = {
        "raw_data",
        "raw_text",
        "rendered",
        "template_text",
        "variables",
        "yaml_data",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Args:
            record: Log record to filter

        Returns:
            True if record should be logged, False otherwise
        """
        return not any(key in self.RAW_CONTENT_KEYS for key in record.__dict__)


class RawContentProcessor:
    """Structlog processor that strips raw schema content from events."""

    def __call__(
        self, logger: FilteringBoundLogger, method_name: str, event_dict: Dict[str, Any]
    ) -> Dict[str, Any]:
        for key in RawContentFilter.RAW_CONTENT_KEYS:
            if key in event_dict:
                event_dict[key] = "[REDACTED]"
        return event_dict


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    redact_raw_content: bool = True,
) -> None:
    """
    Set up structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json, console)
        log_file: Optional log file path
        redact_raw_content: Whether to keep rendered schema text out of logs
    """
    level = getattr(logging, log_level.upper())

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_raw_content:
        processors.append(RawContentProcessor())

    if log_format == "json":
        processors.extend(
            [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        )
    else:
        processors.extend([structlog.dev.ConsoleRenderer(colors=True)])

    structlog.configure(
        processors=processors,  # type: ignore[arg-type]
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if log_format == "json":
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if redact_raw_content:
        for handler in handlers:
            handler.addFilter(RawContentFilter())

    logging.basicConfig(level=level, handlers=handlers, format="%(message)s", force=True)

    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def setup_logging_from_config(config: "LoggingConfig") -> None:
    """
    Set up structured logging from the logging section of a ConfigManager.

    Args:
        config: Validated logging settings, e.g. ``config_manager.logging``
    """
    setup_logging(
        log_level=config.level,
        log_format=config.format,
        log_file=config.file,
        redact_raw_content=config.redact_raw_content,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))
