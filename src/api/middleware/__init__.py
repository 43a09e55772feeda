"""Cross-cutting request/response handling.

- **RequestContextMiddleware**: correlation ids for every request
- **RequestLoggingMiddleware**: request logs with timing
- **error_handler**: maps exceptions to ErrorResponse payloads and status codes

Request context is registered last so it runs first, and request logs
already carry the correlation id.
"""
