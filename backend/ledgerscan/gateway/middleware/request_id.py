"""
Request ID Middleware

Tags every request with an ID so its log lines can be correlated.
"""
import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ...core.logging_config import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"

# Upstream IDs are echoed into logs and headers, keep them short and printable
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Reuses a well-formed X-Request-ID from the client or proxy, otherwise
    generates one. The ID is stored in request.state.request_id, attached to
    every log record emitted while handling the request and returned in the
    response headers.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER)
        if not request_id or not _VALID_REQUEST_ID.match(request_id):
            request_id = uuid.uuid4().hex

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
