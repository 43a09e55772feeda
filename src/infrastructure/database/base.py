"""SQLAlchemy declarative base and common model fields.

Key components:
- **Naming conventions**: Standardized constraint names for migrations
- **Base class**: Configured declarative base with metadata
- **BaseModel**: Abstract model with an autoincrement id and a creation
  timestamp

Rows in this service are append-only facts, so models carry ``created_at``
but no ``updated_at``.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# SQLite only autoincrements an INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base with naming conventions."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class BaseModel(Base):
    """Abstract base model with the fields shared by every table.

    - Sequential integer ID, never reused
    - Automatic created_at timestamp
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        IdType,
        primary_key=True,
        autoincrement=True,
        doc="Primary key with auto-incrementing ID",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Timestamp when the record was created (UTC)",
    )

    def __repr__(self) -> str:
        """Return the model class name and ID."""
        return f"<{self.__class__.__name__}(id={self.id})>"
