"""Standardized error response schemas.

Every error leaving the API, whether raised by the record store, the
resolver, request validation or an unexpected failure, is rendered as an
ErrorResponse so clients can rely on one shape.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ServiceInfo(BaseModel):
    """Service information for error context."""

    name: str = Field(..., description="Name of the service", examples=["Ratekeeper"])
    version: str = Field(..., description="Version of the service", examples=["0.1.0"])
    environment: str = Field(
        ...,
        description="Environment where the service is running",
        examples=["development", "staging", "production"],
    )


class ErrorResponse(BaseModel):
    """Standardized error response model for API errors."""

    error_code: str = Field(
        ...,
        description="Unique error code identifying the error type",
        examples=["INVALID_RECORD", "VALIDATION_ERROR", "STORAGE_UNAVAILABLE"],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["valid_from must not be later than valid_to", "Invalid date format"],
    )

    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details (e.g., the offending field)",
        examples=[{"field": "valid_from"}],
    )

    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the error occurred (with timezone)",
    )

    severity: str | None = Field(
        default=None,
        description="Error severity level (LOW, MEDIUM, HIGH, CRITICAL)",
        examples=["LOW", "HIGH"],
    )

    service_info: ServiceInfo | None = Field(
        default=None,
        description="Information about the service that generated the error",
    )

    request_id: str | None = Field(
        default=None,
        description="Unique identifier of this error response",
        examples=["req-550e8400-e29b-41d4-a716-446655440000"],
    )

    debug_info: dict[str, Any] | None = Field(
        default=None,
        description="Debug information (only populated in development environments)",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error_code": "INVALID_RECORD",
                    "message": "valid_from must not be later than valid_to",
                    "details": {
                        "field": "valid_from",
                        "valid_from": "2024-06-30",
                        "valid_to": "2024-06-01",
                    },
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440000",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440000",
                    "timestamp": "2024-06-14T12:00:00+00:00",
                    "severity": "LOW",
                    "service_info": {
                        "name": "Ratekeeper",
                        "version": "0.1.0",
                        "environment": "production",
                    },
                },
                {
                    "error_code": "STORAGE_UNAVAILABLE",
                    "message": "Record storage failed during query_overlapping",
                    "timestamp": "2024-06-14T12:00:02+00:00",
                    "severity": "HIGH",
                },
            ]
        }
    }
