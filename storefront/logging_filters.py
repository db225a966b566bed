"""Logging setup: JSON formatting and request-id enrichment.

``RequestIdFilter`` injects the current request id into log records using
the ContextVar set by the request-id middleware, so formatters can always
reference ``%(request_id)s``. ``configure_logging`` attaches a JSON
handler to the ``storefront`` logger namespace.
"""

import logging
from logging import Filter, LogRecord

from pythonjsonlogger import jsonlogger

from . import settings
from .middleware import REQUEST_ID_CTX

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    The value comes from ``REQUEST_ID_CTX``; outside a request it is "-".
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a JSON stream handler to the ``storefront`` logger once."""
    logger = logging.getLogger("storefront")
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
        h.addFilter(RequestIdFilter())
        logger.addHandler(h)
    logger.setLevel(level or settings.LOG_LEVEL)
    return logger
