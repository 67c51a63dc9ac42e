import logging
import re
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

_REQUEST_ID_RE = re.compile(r"^[a-zA-Z0-9\-_.]{1,128}$")
_INCOMING_HEADERS = ("X-Request-ID", "X-Correlation-ID")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def _incoming_request_id(request: Request) -> str | None:
    for header in _INCOMING_HEADERS:
        value = request.headers.get(header)
        if value and _REQUEST_ID_RE.match(value):
            return value
    return None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id that log records and audit rows pick up."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = _incoming_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id

        token = request_id_var.set(request_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
            logger.debug(
                "%s %s -> %d in %d ms",
                request.method,
                request.url.path,
                response.status_code,
                round((time.monotonic() - start) * 1000),
            )
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response
