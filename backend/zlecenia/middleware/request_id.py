# backend/zlecenia/middleware/request_id.py
"""
Request ID middleware.

Takes ``X-Request-ID`` from the client or generates one, exposes it to log
records through the request context and echoes it on the response.
"""

import time
from typing import Awaitable, Callable
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..core.request_context import reset_request_id, reset_user_id, set_request_id, set_user_id

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        request_token = set_request_id(request_id)
        user_token = set_user_id(None)
        start_time = time.time()
        try:
            response = await call_next(request)
        finally:
            reset_user_id(user_token)
            reset_request_id(request_token)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time-MS"] = str(int((time.time() - start_time) * 1000))
        return response
