"""Request-scoped middleware for API requests."""

from typing import Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID to every request, reusing the caller's X-Request-ID if sent."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class SystemModeMiddleware(BaseHTTPMiddleware):
    """Reports the effective gateway mode (SIMULATED/REAL) in X-System-Mode."""

    def __init__(self, app, mode_provider: Callable[[], str]):
        super().__init__(app)
        self.mode_provider = mode_provider

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-System-Mode"] = self.mode_provider()
        return response
