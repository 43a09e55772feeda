"""Pydantic models for request validation and response serialization.

- **errors**: Standardized error response format
- **tax_records**: The tax-rate record wire shape
"""
