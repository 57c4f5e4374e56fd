"""
Request correlation middleware: one request id per request, bound into the logs.
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.exceptions.exception_handlers import generic_exception_handler
from src.core.logging import (
    clear_request_context,
    generate_request_id,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that tags every request with an id and echoes it back.

    A client-supplied ``X-Request-ID`` is reused when it is reasonably short,
    otherwise a new UUID is generated.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if not request_id or len(request_id) > _MAX_REQUEST_ID_LENGTH:
            request_id = generate_request_id()

        set_request_context(request_id=request_id)
        try:
            response = await call_next(request)
        except Exception as exc:
            # Unhandled errors still carry the request id header
            response = await generic_exception_handler(request, exc)
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
