import threading
import uuid

_local = threading.local()

REQUEST_ID_HEADER = "X-Request-Id"


def get_request_id(default: str | None = None) -> str | None:
    return getattr(_local, "request_id", default)


class RequestIdMiddleware:
    """Tag every request with an id (client supplied or generated) for logs and audit rows."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = (request.headers.get(REQUEST_ID_HEADER) or "")[:64] or str(uuid.uuid4())
        request.request_id = rid
        _local.request_id = rid
        try:
            response = self.get_response(request)
        finally:
            _local.request_id = None
        response[REQUEST_ID_HEADER] = rid
        return response
