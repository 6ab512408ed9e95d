import logging
import sys

from pathlib import Path

from campfire_client.config import Settings, get_settings

# ANSI color codes for terminal output
class LogColors:
    RESET = "\033[0m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    YELLOW = "\033[93m"
    MAGENTA = "\033[95m"
    GRAY = "\033[90m"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name"""

    COLORS = {
        logging.DEBUG: LogColors.GRAY,
        logging.INFO: LogColors.BLUE,
        logging.WARNING: LogColors.YELLOW,
        logging.ERROR: LogColors.RED,
        logging.CRITICAL: LogColors.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if record.levelno in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelno]}{levelname}{LogColors.RESET}"

        formatted = super().format(record)

        # Reset levelname for the next handler
        record.levelname = levelname

        return formatted


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure logging for an application using the client.

    The library never calls this itself; call it once at startup of the
    program that listens to rooms.
    """
    settings = settings or get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.log_level)

    if settings.is_development:
        formatter = ColoredFormatter(
            fmt="%(levelname)s:\t%(asctime)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(levelname)s:%(asctime)s:%(name)s:%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.is_production:
        from logging.handlers import RotatingFileHandler

        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        # 10MB per file, 5 backups
        file_handler = RotatingFileHandler(
            filename=log_dir / "campfire-client.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Usage in any module:
        from campfire_client.core.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Something happened")
    """
    return logging.getLogger(name)
