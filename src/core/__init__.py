"""Cross-cutting functionality shared by every layer.

- **config**: Pydantic settings with environment overrides
- **context**: Request correlation IDs
- **exceptions**: Structured exception hierarchy with error codes
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Loguru configuration and formatters
- **observability**: OpenTelemetry tracing
"""
