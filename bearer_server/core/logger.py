import logging
import os
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from loguru import logger

from bearer_server.core.config import Environment, settings

if TYPE_CHECKING:
    from loguru import Record

# Set by the request logging middleware for the duration of a request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "bearer_server.log"

LOG_LEVELs = {
    50: "CRITICAL",
    40: "ERROR",
    30: "WARNING",
    20: "INFO",
    10: "DEBUG",
    0: "NOTSET",
}

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>PID:{extra[process_id]}</magenta> | "
    "<yellow>ReqID:{extra[request_id]}</yellow> | "
    "<cyan>{name}:{function}:{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss!UTC} | "
    "{level: <8} | "
    "PID:{extra[process_id]} | "
    "ReqID:{extra[request_id]} | "
    "{name}:{function}:{line} | "
    "{message}"
)


def correlation_filter(record: "Record") -> bool:
    """
    Tag a record with the current request id and the worker pid.

    Records emitted outside a request get a short random id so that lines of
    one startup or background task can still be grouped.
    """
    record["extra"]["request_id"] = request_id_var.get() or str(uuid.uuid4())[:8]
    record["extra"]["process_id"] = os.getpid()

    return True


class InterceptHandler(logging.Handler):
    """
    Forward standard library log records (uvicorn, gunicorn) to loguru.
    """

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging module frames so loguru reports the real caller
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logger():
    """
    Configure loguru sinks for the token server.

    A colored console sink is always added; DEV logs everything down to DEBUG.
    With ``LOG_TO_FILE`` a rotating, compressed file sink is added as well.
    Both sinks are enqueued so gunicorn workers can share them.

    Sealed tokens, secrets and passwords are never passed to the logger, and
    the file sink runs without ``diagnose`` so traceback variables are not
    written either.
    """
    logger.remove()

    log_level = LOG_LEVELs[settings.log_level]

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=logging.DEBUG if settings.current_environment == Environment.DEV else log_level,
        colorize=True,
        enqueue=True,
        filter=correlation_filter,
    )

    if settings.log_to_file:
        LOG_DIR.mkdir(exist_ok=True)

        logger.add(
            LOG_FILE,
            format=FILE_FORMAT,
            level=log_level,
            rotation="10 MB",
            retention="3 months",
            compression="gz",
            enqueue=True,
            serialize=False,
            filter=correlation_filter,
            backtrace=True,
            diagnose=False,
        )

    logger.info(
        f"Logger initialized | "
        f"Environment: {settings.current_environment.value} | "
        f"Level: {log_level} | "
        f"File: {LOG_FILE if settings.log_to_file else 'disabled'}"
    )


def configure_uvicorn_logging():
    """Route uvicorn loggers through loguru. Call after ``setup_logger``."""
    # loguru does the level filtering
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for name in logging.root.manager.loggerDict.keys():
        if name.startswith("uvicorn"):
            logging.getLogger(name).handlers = [InterceptHandler()]
            logging.getLogger(name).propagate = False

    logger.debug("Uvicorn logging configured to use Loguru")


def shutdown_logger():
    """Drain the enqueued records before the worker exits."""
    logger.info("Shutting down logger...")
    logger.complete()
