import logging

from .middleware import get_request_id


class RequestIdFilter(logging.Filter):
    """Expose the current request id as ``%(request_id)s`` ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = getattr(record, "request_id", None) or get_request_id() or "-"
        return True
