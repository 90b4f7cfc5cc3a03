"""
Utilities shared by the orchestration modules.

Includes:
- Logging configuration (structlog)
- Validation helpers
- Timing context managers
"""

import logging
import sys
import time
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import structlog

from dao_e2e.errors import ConfigError


def configure_logging(level: int = logging.INFO, stream=None) -> None:
    """
    Configures structlog for the whole process.

    Args:
        level: Minimum level that is emitted (default: INFO)
        stream: Output stream (default: stderr, so child output on stdout
            stays readable)
    """
    stream = stream or sys.stderr
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str):
    """
    Returns a logger bound to the module name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog bound logger
    """
    return structlog.get_logger(logger_name=f"dao_e2e.{name.rsplit('.', 1)[-1]}")


# Validation
def validate_positive(value: Union[int, float], field_name: str) -> Union[int, float]:
    """
    Validates that a number is positive.

    Raises:
        ConfigError: If the value is not a positive number
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{field_name} must be a number, got {type(value).__name__}")

    if value <= 0:
        raise ConfigError(f"{field_name} must be positive, got {value}")

    return value


def validate_in(value: Any, allowed: Iterable[Any], field_name: str) -> Any:
    """
    Validates that a value is one of the allowed choices.

    Raises:
        ConfigError: If the value is not allowed
    """
    allowed = list(allowed)
    if value not in allowed:
        raise ConfigError(f"{field_name} must be one of {allowed}, got '{value}'")
    return value


# Context managers
class TimingContext:
    """Context manager that measures wall time in milliseconds."""

    def __init__(self, name: str = "operation", logger: Optional[Any] = None):
        self.name = name
        self.logger = logger
        self.start_time = None
        self.end_time = None
        self.duration_ms = 0

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.monotonic()
        self.duration_ms = int((self.end_time - self.start_time) * 1000)

        if self.logger:
            self.logger.debug("timing", operation=self.name, duration_ms=self.duration_ms)

        return False

    @property
    def elapsed_ms(self) -> int:
        """Milliseconds since the context was entered (usable before exit)."""
        if self.start_time is None:
            return 0
        end = self.end_time if self.end_time is not None else time.monotonic()
        return int((end - self.start_time) * 1000)


# Files
def clear_screenshots(directory: Union[str, Path]) -> int:
    """
    Deletes .png files below a directory and prunes emptied subdirectories.

    Returns:
        Number of screenshots removed
    """
    root = Path(directory)
    if not root.is_dir():
        return 0

    removed = 0
    for entry in root.iterdir():
        if entry.is_dir():
            removed += clear_screenshots(entry)
            if not any(entry.iterdir()):
                entry.rmdir()
        elif entry.suffix == ".png":
            entry.unlink()
            removed += 1
    return removed
