# backend/marketplace/middleware/request_id.py
"""
Request id middleware.

Takes ``X-Request-ID`` from the caller (or mints one), exposes it on
``request.state`` and in the logging context, and echoes it back along
with the response time.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.request_context import bind_request, unbind_request
from ..core.ulid_helper import generate_ulid


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_ulid()
        request.state.request_id = request_id
        token = bind_request(request_id)
        start_time = time.time()
        try:
            response = await call_next(request)
        finally:
            unbind_request(token)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-MS"] = str(int((time.time() - start_time) * 1000))
        return response
