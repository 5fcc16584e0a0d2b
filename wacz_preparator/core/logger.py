"""
Logging and Error Tracking

This module provides the logging setup used across wacz-preparator: a
console logger by default, optional rotating log files, a TRACE level for
stack traces of non-fatal failures, and an error tracker feeding the final
run report.
"""

import logging
import logging.handlers
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LEVEL_NAMES = {
    'trace': TRACE,
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}


def parse_level(name: str) -> int:
    """
    Map a level name (trace, debug, info, warn, error) to a logging level.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return LEVEL_NAMES[name.strip().lower()]
    except (KeyError, AttributeError):
        raise ValueError(f"Unknown log level: {name!r}") from None


class PreparatorLogger:
    """
    Centralized logging setup for wacz-preparator.

    Always logs to the console. When a log directory is given, also writes
    a detailed rotating log and an errors-only rotating log.
    """

    def __init__(self, log_dir: Optional[str] = None, app_name: str = "wacz_preparator"):
        """
        Args:
            log_dir: Directory to store log files (None for console only)
            app_name: Name of the root application logger
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.app_name = app_name
        self.loggers: Dict[str, logging.Logger] = {}

        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.setup_logger()

    def setup_logger(self, level: int = logging.INFO) -> logging.Logger:
        """
        Set up the application logger with console and optional file handlers.

        Calling it again only updates the level.

        Args:
            level: Logging level (default: INFO)

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(self.app_name)
        logger.setLevel(level)
        self.loggers['main'] = logger

        if logger.handlers:
            for handler in logger.handlers:
                if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                    handler.setLevel(level)
            return logger

        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

        if self.log_dir:
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{self.app_name}.log",
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(TRACE)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

            error_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{self.app_name}_errors.log",
                maxBytes=5*1024*1024,  # 5MB
                backupCount=3,
                encoding='utf-8'
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(detailed_formatter)
            logger.addHandler(error_handler)

        # requests/urllib3 chatter stays out of the run log
        logging.getLogger('urllib3').setLevel(logging.WARNING)

        return logger

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a child logger for a specific component.

        Args:
            name: Name of the component

        Returns:
            Logger instance propagating to the application logger
        """
        full_name = f"{self.app_name}.{name}"

        if full_name not in self.loggers:
            logger = logging.getLogger(full_name)
            logger.setLevel(logging.NOTSET)
            self.loggers[full_name] = logger

        return self.loggers[full_name]

    def log_system_info(self):
        """Log run environment for debugging."""
        logger = self.get_logger('system')
        logger.debug(f"Python version: {sys.version}")
        logger.debug(f"Platform: {sys.platform}")
        if self.log_dir:
            logger.debug(f"Log directory: {self.log_dir.absolute()}")


class ErrorTracker:
    """
    Collects the stage errors raised while a collection is prepared.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.errors: List[Dict[str, Any]] = []

    def log_error(self, error: Exception, context: Optional[str] = None) -> str:
        """
        Log an error with the stage it happened in.

        Args:
            error: The exception that occurred
            context: Stage or component where the error occurred

        Returns:
            Error ID for tracking
        """
        error_id = f"ERR_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.errors):03d}"

        self.errors.append({
            'id': error_id,
            'timestamp': datetime.now(),
            'type': type(error).__name__,
            'message': str(error),
            'context': context,
            'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
        })

        log_message = f"[{error_id}] {type(error).__name__}: {error}"
        if context:
            log_message += f" (Context: {context})"
        self.logger.error(log_message)
        self.logger.log(TRACE, f"[{error_id}] Full traceback:\n{self.errors[-1]['traceback']}")

        return error_id

    def get_error_summary(self) -> Dict[str, Any]:
        """Summary of the recorded errors, for the run report."""
        type_counts: Dict[str, int] = {}
        for error in self.errors:
            type_counts[error['type']] = type_counts.get(error['type'], 0) + 1
        return {
            'total_errors': len(self.errors),
            'error_types': type_counts,
            'recent_errors': self.errors[-5:],
        }


# Global logger instance
_logger_instance: Optional[PreparatorLogger] = None


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance, creating the console-only setup on first use.

    Args:
        name: Name of the component (optional)
    """
    global _logger_instance

    if _logger_instance is None:
        _logger_instance = PreparatorLogger()

    if name:
        return _logger_instance.get_logger(name)
    return _logger_instance.loggers['main']


def initialize_logging(log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Initialize the global logging system.

    Args:
        log_dir: Directory for log files (None for console only)
        level: Logging level

    Returns:
        The application logger
    """
    global _logger_instance
    _logger_instance = PreparatorLogger(log_dir)
    logger = _logger_instance.setup_logger(level)
    _logger_instance.log_system_info()
    return logger

