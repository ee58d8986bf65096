import logging
import os
import sys
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

from loguru import logger

from auth_refresh.core.config import Environment, settings

if TYPE_CHECKING:
    from loguru import Record

# ============================================
# CONTEXT VARIABLES FOR REQUEST TRACKING
# ============================================
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


# ============================================
# LOG LEVEL MAPPING
# ============================================

LOG_LEVELs = {
    50: "CRITICAL",
    40: "ERROR",
    30: "WARNING",
    20: "INFO",
    10: "DEBUG",
    0: "NOTSET",
}

# Standard library loggers of the HTTP stack routed through Loguru
HTTP_LOGGER_PREFIXES = ("httpx", "httpcore")


# ============================================
# CUSTOM FILTER FOR CORRELATION AND PROCESS ID
# ============================================


def correlation_filter(record: "Record") -> bool:
    """
    Add request ID and process ID to log records.
    This allows tracking a single outgoing request through the
    token refresh flow and differentiating between processes.

    Args:
        record (Record): Log record from Loguru.

    Returns:
        bool: Always True, no records are dropped.
    """
    record["extra"]["request_id"] = request_id_var.get() or "-"
    record["extra"]["process_id"] = os.getpid()

    return True


def new_request_id() -> str:
    """Short random identifier for one intercepted request"""
    return str(uuid.uuid4())[:8]


# ============================================
# INTERCEPT HANDLER FOR STANDARD LOGGING
# ============================================


class InterceptHandler(logging.Handler):
    """
    Intercepts standard logging and redirects to Loguru.
    Used to route httpx/httpcore log records through our Loguru configuration.
    """

    def emit(self, record: logging.LogRecord):
        """
        Process a log record and redirect it to Loguru.
        """
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller from where the logging call originated
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# ============================================
# MAIN LOGGER SETUP FUNCTION
# ============================================


def setup_logger():
    """
    Configure Loguru logger for the token refresh client.

    Features:
    - Colored console output with process and request IDs
    - Optional log file with 10MB rotation, 3 months retention and gzip compression
    - Thread and process safe with enqueue=True

    Call once at application startup.
    """
    # Remove default handler to avoid duplicate logs
    logger.remove()

    log_level = LOG_LEVELs[settings.log_level]

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<magenta>PID:{extra[process_id]}</magenta> | "
        "<yellow>ReqID:{extra[request_id]}</yellow> | "
        "<cyan>{name}:{function}:{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stdout,
        format=console_format,
        level=logging.DEBUG if settings.current_environment == Environment.DEV else log_level,
        colorize=True,
        enqueue=True,
        filter=correlation_filter,
    )

    if settings.log_to_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss!UTC} | "
            "{level: <8} | "
            "PID:{extra[process_id]} | "
            "ReqID:{extra[request_id]} | "
            "{name}:{function}:{line} | "
            "{message}"
        )

        logger.add(
            settings.log_file,
            format=file_format,
            level=log_level,
            rotation="10 MB",
            retention="3 months",
            compression="gz",
            enqueue=True,
            serialize=False,
            filter=correlation_filter,
            backtrace=True,
            # Variable values would leak tokens into the log file
            diagnose=False,
        )

    logger.info(
        f"Logger initialized | "
        f"Environment: {settings.current_environment.value} | "
        f"Level: {log_level}"
    )


# ============================================
# HTTPX LOGGER CONFIGURATION
# ============================================


def configure_httpx_logging():
    """
    Replace httpx/httpcore standard logging handlers with Loguru.

    Call after setup_logger().
    """
    for name in list(logging.root.manager.loggerDict.keys()) + list(HTTP_LOGGER_PREFIXES):
        if name.startswith(HTTP_LOGGER_PREFIXES):
            logging.getLogger(name).handlers = [InterceptHandler()]
            logging.getLogger(name).propagate = False

    logger.debug("httpx logging configured to use Loguru")


# ============================================
# SHUTDOWN HANDLER
# ============================================


def shutdown_logger():
    """
    Flush all pending logs.
    """
    logger.info("Shutting down logger...")

    # Let Loguru finish processing queued logs
    logger.complete()
