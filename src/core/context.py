"""Request-scoped correlation id storage.

The correlation id set by the request context middleware is read back by the
error handlers, the slow-query logger and the tracing hooks, so every log line
and span produced while serving one request can be joined together.
"""

import uuid
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class RequestContext:
    """Async-safe access to the current request's correlation id."""

    @staticmethod
    def set_correlation_id(correlation_id: str) -> None:
        """Set the correlation ID for the current context."""
        _correlation_id_var.set(correlation_id)

    @staticmethod
    def get_correlation_id() -> str | None:
        """Get the correlation ID from the current context.

        Returns:
            str | None: The correlation ID if set, None otherwise.
        """
        return _correlation_id_var.get()

    @staticmethod
    def clear() -> None:
        """Forget the correlation ID of the current context."""
        _correlation_id_var.set(None)


def generate_correlation_id() -> str:
    """Generate a UUID4 correlation ID for a request without one."""
    return str(uuid.uuid4())


def generate_request_id() -> str:
    """Generate a unique request ID in the format ``req-<uuid4>``.

    Request IDs identify a single error response, while correlation IDs span
    every log line of the request.
    """
    return f"req-{uuid.uuid4()}"
