"""
Custom middleware and request guards for the FastAPI application.
"""
import time
import logging
from collections import deque
from typing import Callable, Deque, Dict, Optional
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import uuid

from ..config import settings
from ..exceptions import RateLimitError

# Set up logging
logger = logging.getLogger(__name__)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging request and response information.
    """
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        """
        Process the request and log information.

        Args:
            request: The incoming request
            call_next: The next middleware or endpoint handler

        Returns:
            Response: The response from the next handler
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request {request_id} started: {request.method} {request.url.path} from {client_host}")

        start_time = time.time()

        try:
            response = await call_next(request)

            process_time = time.time() - start_time

            response.headers["X-Process-Time"] = str(process_time)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                f"Request {request_id} completed: {request.method} {request.url.path} "
                f"- Status: {response.status_code} - Duration: {process_time:.4f}s"
            )

            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request {request_id} failed: {request.method} {request.url.path} "
                f"- Error: {str(e)} - Duration: {process_time:.4f}s"
            )
            raise


class RateLimiter:
    """
    Sliding-window request limiter used as a route dependency.

    Windows are kept in process memory per client IP, so limits apply per
    worker process.
    """
    def __init__(
        self,
        name: str,
        limit: int,
        window_seconds: int,
        message: Optional[str] = None,
        code: Optional[str] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self.code = code
        self.timer = timer
        self.requests: Dict[str, Deque[float]] = {}
        self.last_sweep = timer()

    def hit(self, key: str) -> None:
        """
        Record one request for ``key``.

        Raises:
            RateLimitError: If the key already used its budget in the current window
        """
        now = self.timer()
        if now - self.last_sweep >= self.window_seconds:
            self.sweep(now)

        window = self.requests.setdefault(key, deque())
        while window and now - window[0] >= self.window_seconds:
            window.popleft()

        if len(window) >= self.limit:
            logger.warning(f"Rate limit '{self.name}' exceeded for {key}")
            raise RateLimitError(self.message, code=self.code)

        window.append(now)

    def sweep(self, now: float) -> None:
        """Forget clients whose whole window has expired."""
        expired = [
            key for key, window in self.requests.items() if not window or now - window[-1] >= self.window_seconds
        ]
        for key in expired:
            del self.requests[key]
        self.last_sweep = now

    def reset(self) -> None:
        self.requests.clear()

    async def __call__(self, request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        client_ip = request.client.host if request.client else "unknown"
        self.hit(client_ip)


login_limiter = RateLimiter(
    "login",
    settings.login_rate_limit,
    settings.login_rate_window_seconds,
    "Too many login attempts. Please try again in 15 minutes.",
    "TOO_MANY_LOGIN_ATTEMPTS",
)
register_limiter = RateLimiter(
    "register",
    settings.register_rate_limit,
    settings.register_rate_window_seconds,
    "Too many registrations from this IP. Please try again in an hour.",
    "TOO_MANY_REGISTRATIONS",
)
email_limiter = RateLimiter(
    "email",
    settings.email_rate_limit,
    settings.email_rate_window_seconds,
    "Too many emails sent. Please try again in an hour.",
    "TOO_MANY_EMAILS",
)
password_reset_limiter = RateLimiter(
    "password_reset",
    settings.password_reset_rate_limit,
    settings.password_reset_rate_window_seconds,
    "Too many password reset attempts. Please try again in an hour.",
    "TOO_MANY_PASSWORD_RESETS",
)


def setup_middlewares(app):
    """
    Set up all custom middlewares for the application.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(RequestLoggingMiddleware)
