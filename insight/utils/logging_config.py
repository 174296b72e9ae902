"""
Logging Configuration and Progress Display

Configurable logging levels with optional rotating file output, secret
masking when dumping configuration, and a console progress bar that
renders analyze() progress events.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from tqdm import tqdm


LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

SENSITIVE_MARKERS = ("key", "password", "secret", "token")

# Third-party loggers that are noisy at DEBUG
NOISY_LOGGERS = ("urllib3", "requests")


class AnalysisProgressBar:
    """Console progress bar fed by analyze() progress events.

    Usage:
        >>> with AnalysisProgressBar("Analyzing") as bar:
        ...     service.analyze(prompt, "keyword_analysis", progress_callback=bar)
    """

    def __init__(self, description: str, stream=None, disable: bool = False):
        self.description = description
        self._bar = tqdm(
            total=100,
            desc=description,
            unit="%",
            file=stream or sys.stderr,
            disable=disable,
            leave=False,
        )
        self._last = 0

    def __call__(self, event: Dict[str, Any]):
        progress = int(event.get("progress", 0))
        if progress > self._last:
            self._bar.update(progress - self._last)
            self._last = progress

    def close(self):
        self._bar.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class LoggingConfig:
    """
    Centralized logging configuration for keyword-insight.

    Configures the root logger once per process; later calls are no-ops.
    """

    def __init__(self):
        self._configured = False
        self._log_file_handler: Optional[logging.Handler] = None
        self._console_handler: Optional[logging.Handler] = None

    def configure_logging(
        self,
        level: str = "info",
        log_file: Optional[str] = None,
        include_timestamps: bool = True,
        max_log_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> None:
        """
        Configure logging for the application.

        Args:
            level: Logging level (debug, info, warning, error)
            log_file: Optional log file path
            include_timestamps: Whether console lines carry timestamps
            max_log_file_size: Maximum log file size before rotation
            backup_count: Number of backup log files to keep
        """
        if self._configured:
            return

        log_level = LOG_LEVELS.get(level.lower(), logging.INFO)
        debug_mode = log_level == logging.DEBUG

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        root_logger.handlers.clear()

        self._console_handler = logging.StreamHandler(sys.stderr)
        self._console_handler.setLevel(log_level)
        self._console_handler.setFormatter(
            self._create_console_formatter(include_timestamps, debug_mode)
        )
        root_logger.addHandler(self._console_handler)

        if log_file:
            self._configure_file_logging(log_file, log_level, max_log_file_size, backup_count)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

        self._configured = True
        logging.getLogger(__name__).debug(f"Logging configured: level={level}, file={log_file}")

    def reset(self) -> None:
        """Allow configure_logging() to run again (used by tests)."""
        root_logger = logging.getLogger()
        for handler in (self._console_handler, self._log_file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        self._console_handler = None
        self._log_file_handler = None
        self._configured = False

    @staticmethod
    def _create_console_formatter(include_timestamps: bool, debug_mode: bool) -> logging.Formatter:
        parts = []
        if include_timestamps:
            parts.append("%(asctime)s")
        if debug_mode:
            parts.append("%(name)s")
        parts.extend(["%(levelname)s", "%(message)s"])

        return logging.Formatter(
            " - ".join(parts),
            datefmt="%Y-%m-%d %H:%M:%S" if debug_mode else "%H:%M:%S"
        )

    def _configure_file_logging(
        self,
        log_file: str,
        log_level: int,
        max_size: int,
        backup_count: int
    ) -> None:
        """Configure file logging with rotation."""
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            self._log_file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_size,
                backupCount=backup_count,
                encoding="utf-8"
            )
        except OSError as e:
            # Console logging still works without the file
            logging.getLogger(__name__).warning(f"Failed to setup log file {log_file}: {e}")
            return

        self._log_file_handler.setLevel(log_level)
        self._log_file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logging.getLogger().addHandler(self._log_file_handler)

    def log_configuration_details(self, config: Dict[str, Any]) -> None:
        """Log configuration details at debug level, secrets masked."""
        logger = logging.getLogger(__name__)
        if not logger.isEnabledFor(logging.DEBUG):
            return

        logger.debug("=== Configuration Details ===")
        for key, value in mask_sensitive(config).items():
            logger.debug(f"  {key}: {value}")
        logger.debug("=== End Configuration ===")

    def log_provider_selection(self, provider: str, kind: str, endpoint: str = "") -> None:
        logger = logging.getLogger(__name__)
        logger.info(f"Selected LLM provider: {provider}")
        logger.debug(f"Provider kind: {kind}; endpoint: {endpoint or '(local)'}")


def mask_sensitive(config: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a flat config dict with secret-looking values masked."""
    masked = {}
    for key, value in config.items():
        if any(marker in key.lower() for marker in SENSITIVE_MARKERS) and "tokens" not in key.lower():
            masked[key] = "***MASKED***" if value and value != "***MASKED***" else value
        else:
            masked[key] = value
    return masked


# Global logging configuration instance
logging_config = LoggingConfig()


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """
    Convenience function to configure logging.

    Args:
        level: Logging level (debug, info, warning, error)
        log_file: Optional log file path
    """
    logging_config.configure_logging(level=level, log_file=log_file)
