"""Request/response logging with timing.

Each request outside ``LogConfig.excluded_paths`` produces a "Request
started" and a "Request completed" (or "Request failed") record carrying the
method, path, status and duration, plus a warning when it is slower than
``slow_request_threshold_ms``. The municipality of record routes is bound to
the log context so rate lookups can be filtered per municipality.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.core.config import LogConfig, get_settings
from src.core.context import generate_request_id

REQUEST_ID_HEADER = "X-Request-ID"
MAX_USER_AGENT_LENGTH = 200
RECORDS_PATH_PREFIX = "/records/"


def municipality_from_path(path: str) -> str | None:
    """Return the municipality segment of a ``/records/...`` path, if any."""
    if not path.startswith(RECORDS_PATH_PREFIX):
        return None
    segment = path.removeprefix(RECORDS_PATH_PREFIX).split("/", 1)[0]
    return segment or None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)
        self.settings = get_settings()

    def _get_client_ip(self, request: Request) -> str:
        """Extract the client IP, trusting proxy headers only in production."""
        if self.settings.environment == "production":
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                return forwarded_for.split(",")[0].strip()

            real_ip = request.headers.get("x-real-ip")
            if real_ip:
                return real_ip.strip()

        if request.client:
            return request.client.host
        return "unknown"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and log details.

        Raises:
            Exception: Any exception raised by the application is re-raised
                after logging.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        user_agent = request.headers.get("user-agent", "")[:MAX_USER_AGENT_LENGTH]
        context: dict[str, object] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_host": self._get_client_ip(request),
            "user_agent": user_agent or "unknown",
        }
        if municipality := municipality_from_path(request.url.path):
            context["municipality"] = municipality

        with logger.contextualize(**context):
            logger.info("Request started")
            start_time = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    "Request failed",
                    duration_ms=round(duration_ms, 2),
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
            response.headers[REQUEST_ID_HEADER] = request_id

            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=round(duration_ms, 2),
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )

            return response
