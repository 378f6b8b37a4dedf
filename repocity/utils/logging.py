import os
import sys

from loguru import logger

from repocity.constants import EVENTS_RETENTION_SIZE

EVENTS_LEVEL_NUM = 38
DEFAULT_LOG_BACKUP_COUNT = 10

_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"


def setup_logging(level: str = "INFO", log_dir: str = "",
                  events_retention_size: int = EVENTS_RETENTION_SIZE):
    """Route loguru to stderr and, when *log_dir* is set, a rotating events.log."""
    try:
        logger.level("EVENT", no=EVENTS_LEVEL_NUM, color="<magenta>")
    except (TypeError, ValueError):
        pass  # level already registered by an earlier call

    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        logger.add(
            os.path.join(log_dir, "events.log"),
            level=EVENTS_LEVEL_NUM,
            format=_FORMAT,
            rotation=events_retention_size,
            retention=DEFAULT_LOG_BACKUP_COUNT,
        )
    return logger


def log_event(message: str) -> None:
    logger.log("EVENT", message)


class ColoredLogger:
    """A simple logger that uses ANSI colors when calling loguru methods."""

    BLUE = "blue"
    YELLOW = "yellow"
    RED = "red"
    GREEN = "green"
    CYAN = "cyan"
    GRAY = "gray"
    RESET = "reset"

    _COLORS = {
        "blue": "\033[94m",
        "yellow": "\033[93m",
        "red": "\033[91m",
        "green": "\033[92m",
        "cyan": "\033[96m",
        "gray": "\033[90m",
        "reset": "\033[0m",
    }

    @staticmethod
    def _colored_msg(message: str, color: str) -> str:
        """Return the colored message based on the color provided."""
        if color not in ColoredLogger._COLORS:
            return message
        return (
            f"{ColoredLogger._COLORS[color]}{message}{ColoredLogger._COLORS['reset']}"
        )

    @staticmethod
    def info(message: str, color: str = "blue") -> None:
        logger.info(ColoredLogger._colored_msg(message, color))

    @staticmethod
    def warning(message: str, color: str = "yellow") -> None:
        logger.warning(ColoredLogger._colored_msg(message, color))

    @staticmethod
    def error(message: str, color: str = "red") -> None:
        logger.error(ColoredLogger._colored_msg(message, color))

    @staticmethod
    def success(message: str, color: str = "green") -> None:
        logger.success(ColoredLogger._colored_msg(message, color))
