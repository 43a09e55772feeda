"""Database infrastructure: async SQLAlchemy persistence of the rate log.

Core components:
- **base**: Declarative base and common model fields
- **models**: The ``tax_records`` table
- **session**: Async engine, session lifecycle and schema bootstrap
- **repository**: Generic append/read repository
- **tax_records**: The SQL-backed record store
- **seed**: Initial rate records
- **dependencies**: FastAPI dependency injection helpers
"""

from src.infrastructure.database.base import Base, BaseModel
from src.infrastructure.database.models import TaxRateRecordModel
from src.infrastructure.database.repository import BaseRepository
from src.infrastructure.database.session import (
    check_database_connection,
    close_database,
    create_database_engine,
    create_schema,
    get_async_session,
    get_engine,
    get_session_factory,
)
from src.infrastructure.database.tax_records import TaxRateRepository

__all__ = [
    "Base",
    "BaseModel",
    "BaseRepository",
    "TaxRateRecordModel",
    "TaxRateRepository",
    "check_database_connection",
    "close_database",
    "create_database_engine",
    "create_schema",
    "get_async_session",
    "get_engine",
    "get_session_factory",
]
