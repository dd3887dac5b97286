"""
Custom middleware for the FastAPI application.
"""
import time
from typing import Callable, Dict, List
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from .logging import get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests and responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        response = await call_next(request)

        process_time = time.time() - start_time

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=round(process_time, 4),
        )

        response.headers["X-Process-Time"] = str(process_time)

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client sliding window rate limit for paths under ``path_prefix``."""

    def __init__(self, app, calls: int = 100, period: int = 900, path_prefix: str = "/api"):
        super().__init__(app)
        self.calls = calls
        self.period = period
        self.path_prefix = path_prefix
        self.clients: Dict[str, List[float]] = {}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.client or not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host
        now = time.time()
        window_start = now - self.period

        # Clean old entries
        self.clients = {
            ip: timestamps for ip, timestamps in self.clients.items()
            if any(timestamp > window_start for timestamp in timestamps)
        }

        recent_requests = [
            timestamp for timestamp in self.clients.get(client_ip, [])
            if timestamp > window_start
        ]

        if len(recent_requests) >= self.calls:
            logger.warning(
                "Rate limit exceeded",
                client_ip=client_ip,
                requests=len(recent_requests),
                limit=self.calls,
            )
            return Response(
                content='{"success": false, "error": {"error": "rate_limit_error", "message": "Too many requests, please try again later"}}',
                status_code=429,
                media_type="application/json",
                headers={
                    "X-RateLimit-Limit": str(self.calls),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(now + self.period)),
                },
            )

        self.clients[client_ip] = recent_requests + [now]

        remaining = max(0, self.calls - len(self.clients[client_ip]))
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.calls)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(now + self.period))

        return response
