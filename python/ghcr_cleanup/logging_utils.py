import logging
import traceback
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# Third-party loggers that log every HTTP request at DEBUG/INFO
NOISY_LOGGERS = ("urllib3", "requests")


def setup_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> None:
    """Configure root logging once. Subsequent calls only adjust the level.

    HTTP client loggers stay at WARNING unless DEBUG is requested, so a
    paginated listing does not print a line per page request.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=fmt or DEFAULT_FORMAT)

    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def setup_cli_logging(verbose: bool = False) -> None:
    """Configure logging for a stage script's --verbose flag."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module/logger by name, after ensuring logging is configured."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name) if name else logging.getLogger(__name__)


def log_banner(logger: logging.Logger, title: str, width: int = 60) -> None:
    """Log a stage heading framed by '=' rules."""
    logger.info("=" * width)
    logger.info(f"   {title}")
    logger.info("=" * width)


def log_exception(logger: logging.Logger, message: str = "An error occurred", exc_info: Exception = None) -> None:
    """Centralized exception logging with full traceback.

    Args:
        logger: Logger instance to use
        message: Custom error message to log before the traceback
        exc_info: Exception instance (if None, uses current exception context)
    """
    logger.error(message)
    if exc_info is not None:
        logger.error(f"Exception type: {type(exc_info).__name__}")
        logger.error(f"Exception message: {str(exc_info)}")
    logger.error("Full traceback:")
    logger.error(traceback.format_exc())
