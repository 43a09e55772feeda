"""Ratekeeper - municipal tax-rate service.

Ratekeeper stores tax-rate records for municipalities and answers which rate
applies on a given day when daily, weekly, monthly and yearly periods overlap.

Architecture Overview:
- **API Layer**: FastAPI routes, middleware and error responses
- **Core Layer**: Configuration, logging, tracing and the exception hierarchy
- **Domain Layer**: Rate records, granularity precedence and the resolver
- **Infrastructure Layer**: SQLAlchemy persistence of the record log
"""
