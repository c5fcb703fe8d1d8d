import re
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from liftcycle.core.logging import add_log_context, clear_log_context, get_logger
from liftcycle.core.metrics import track_http_request


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids end up in logs and response headers
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id, binds it into the log context and times it.

    A well-formed incoming X-Request-ID is kept so a client retry can be traced
    across attempts; anything else is replaced with a fresh UUID.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        request.state.request_id = request_id
        clear_log_context()
        add_log_context(request_id=request_id)

        start = time.perf_counter()
        response: Response = await call_next(request)
        duration = time.perf_counter() - start
        response.headers[REQUEST_ID_HEADER] = request_id

        # Route template, not the raw path
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        track_http_request(request.method, endpoint, response.status_code, duration)
        logger.debug(
            "request_completed",
            method=request.method,
            path=endpoint,
            status=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )

        return response
