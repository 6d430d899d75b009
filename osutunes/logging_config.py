"""
Logging configuration for osutunes.
"""
import logging
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{reset}"
        return super().format(record)


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None,
                  console: bool = True) -> None:
    """Setup logging configuration for osutunes.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        console: Whether to log to stdout. The terminal UI turns this off
            because log lines would be drawn over the screen.

    Raises:
        ConfigurationError: If the log file cannot be opened
    """
    logger = logging.getLogger('osutunes')
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
        console_formatter = ColoredFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
        except OSError as e:
            raise ConfigurationError(f"Cannot open log file {log_path}: {e}") from e
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Module name

    Returns:
        Logger instance
    """
    return logging.getLogger(f'osutunes.{name}')


# Custom exceptions for better error handling
class OsuTunesError(Exception):
    """Base exception for osutunes."""
    pass


class AudioSinkError(OsuTunesError):
    """Audio playback related errors."""
    pass


class CatalogError(OsuTunesError):
    """Song catalog scanning and cache errors."""
    pass


class PlaylistError(OsuTunesError):
    """Playlist iteration and persistence errors."""
    pass


class ConfigurationError(OsuTunesError):
    """Configuration related errors."""
    pass
