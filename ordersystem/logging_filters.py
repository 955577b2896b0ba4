"""Logging setup and filters for enriching log records with request context.

``REQUEST_ID_CTX`` is set by the HTTP middleware (and by the gRPC servicer
from the ``x-request-id`` metadata). ``RequestIdFilter`` copies it onto
every record so the JSON formatter can always reference ``%(request_id)s``.
"""

import contextvars
import logging
from logging import Filter, LogRecord

from pythonjsonlogger import jsonlogger

REQUEST_ID_CTX = contextvars.ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    If no request is in flight, a hyphen ("-") is used as a placeholder.
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True


def configure_logging(level: str = "info") -> logging.Logger:
    """Attach a JSON stream handler to the ``ordersystem`` logger once.

    Args:
        level: Level name, case insensitive.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger("ordersystem")
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
        h.addFilter(RequestIdFilter())
        logger.addHandler(h)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
