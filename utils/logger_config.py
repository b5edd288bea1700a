"""
Unified logging configuration for the parallax revive toolkit.

Every module obtains its logger through :func:`get_logger`, which hangs it
under a single ``parallax_revive`` root. The root owns the handlers, so the
depth, compositing, preview and export stages all share one format and one
optional log file. Stage loggers can be tuned individually (for example to
see per-frame compositing detail without flooding the export log).
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Optional, Iterator
from pathlib import Path


DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LoggerConfig:
    """Centralized logger configuration manager."""

    _configured = False
    _root_logger_name = 'parallax_revive'

    @classmethod
    def setup_root_logger(
        cls,
        level: int = logging.INFO,
        format_string: Optional[str] = None,
        log_file: Optional[Path] = None
    ) -> logging.Logger:
        """
        Setup the root logger for the entire application.

        Args:
            level: Logging level (default: INFO)
            format_string: Custom format string (optional)
            log_file: Optional file path for logging to file

        Returns:
            logging.Logger: Configured root logger
        """
        if cls._configured:
            return logging.getLogger(cls._root_logger_name)

        root_logger = logging.getLogger(cls._root_logger_name)
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if log_file is not None:
            cls._attach_file_handler(root_logger, log_file, level, formatter)

        # Prevent propagation to avoid duplicate messages
        root_logger.propagate = False

        cls._configured = True
        root_logger.debug(f"Root logger configured: level={logging.getLevelName(level)}")
        return root_logger

    @classmethod
    def configure_from_settings(cls, level_name: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
        """
        Apply the ``log_level`` / ``log_file`` entries of a configuration file.

        Args:
            level_name: Level name such as "DEBUG" or "INFO"
            log_file: Optional path of a log file to append to

        Returns:
            logging.Logger: The root logger
        """
        level = logging.getLevelName(str(level_name).upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level_name}")

        root_logger = cls.setup_root_logger(level=level)
        cls.set_level(level)

        if log_file:
            log_path = Path(log_file)
            already_attached = any(
                isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_path.resolve()
                for h in root_logger.handlers
            )
            if not already_attached:
                formatter = logging.Formatter(DEFAULT_FORMAT)
                cls._attach_file_handler(root_logger, log_path, level, formatter)

        return root_logger

    @staticmethod
    def _attach_file_handler(
        root_logger: logging.Logger,
        log_file: Path,
        level: int,
        formatter: logging.Formatter
    ) -> None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.info(f"Logging to file: {log_file}")

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Get a logger that inherits from the root logger configuration.

        Args:
            name: Logger name (typically __name__ from calling module)

        Returns:
            logging.Logger: Configured logger
        """
        if not cls._configured:
            cls.setup_root_logger()

        logger = logging.getLogger(f"{cls._root_logger_name}.{name}")
        logger.propagate = True
        return logger

    @classmethod
    def set_level(cls, level: int) -> None:
        """
        Change the logging level for the root logger and its handlers.

        Args:
            level: New logging level
        """
        root_logger = logging.getLogger(cls._root_logger_name)
        root_logger.setLevel(level)

        for handler in root_logger.handlers:
            handler.setLevel(level)

    @classmethod
    def set_stage_level(cls, stage: str, level: int) -> None:
        """
        Override the level of every logger whose name contains ``stage``.

        Args:
            stage: Sub-package name, e.g. "compositing" or "export"
            level: Logging level for that stage
        """
        prefix = f"{cls._root_logger_name}."
        for name in list(logging.root.manager.loggerDict):
            if name.startswith(prefix) and stage in name:
                logging.getLogger(name).setLevel(level)

    @classmethod
    def is_configured(cls) -> bool:
        """Check if the root logger has been configured."""
        return cls._configured


@contextmanager
def stage_timer(logger: logging.Logger, label: str, level: int = logging.INFO) -> Iterator[None]:
    """
    Log how long a processing stage took.

    Args:
        logger: Logger to report to
        label: Stage description used in the message
        level: Level of the completion message
    """
    start = time.perf_counter()
    yield
    logger.log(level, f"{label} finished in {time.perf_counter() - start:.2f}s")


def get_logger(name: str = None) -> logging.Logger:
    """
    Convenience function to get a properly configured logger.

    Args:
        name: Logger name (if None, uses calling module's __name__)

    Returns:
        logging.Logger: Configured logger
    """
    if name is None:
        import inspect
        frame = inspect.currentframe().f_back
        name = frame.f_globals.get('__name__', 'unknown')

    return LoggerConfig.get_logger(name)


def initialize_default_logger():
    """Initialize the default logger configuration."""
    if not LoggerConfig.is_configured():
        LoggerConfig.setup_root_logger()


# Auto-initialize when imported
initialize_default_logger()
