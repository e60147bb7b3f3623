"""
Logging configuration for the application.

``setup_logging`` configures the root logger with a console handler
and, when ``LOG_FILE`` is set, a size‑rotated file handler.  Every
line carries the id of the HTTP request it was emitted under (``-``
outside a request), so the lines of one request can be picked out of
interleaved output::

    2024-05-01 12:00:00 [INFO] user_service_api.app.services.user_service [3f2a9c1e]: Creating user ann@example.com

The request id lives in ``request_id_var``; the HTTP middleware in
``main`` sets it for the duration of each request.
"""

import logging
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONSOLE_HANDLER_NAME = "user_service.console"
FILE_HANDLER_NAME = "user_service.file"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestContextFilter(logging.Filter):
    """Stamp each record with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()
        return True


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Configure root logger.

    Installs the handlers once per process; later calls (a second
    ``create_app()`` in the same process, for instance) leave the
    existing configuration alone.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).  Case
        insensitive; unknown names fall back to ``INFO``.
    logfile : Optional[str]
        Path to a file to log messages to.  If omitted or empty, no
        file handler is added.
    max_bytes, backup_count : int
        Rotation policy of the file handler.
    """
    root = logging.getLogger()
    if any(handler.name == CONSOLE_HANDLER_NAME for handler in root.handlers):
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    context_filter = RequestContextFilter()

    console_handler = logging.StreamHandler()
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)
    root.addHandler(console_handler)

    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.set_name(FILE_HANDLER_NAME)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    # The request middleware logs one line per request already.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
