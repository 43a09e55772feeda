"""Base repository pattern implementation for database operations.

The base repository offers the append and read operations shared by every
model. There is deliberately no update or delete: stored rows are facts.
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from loguru import logger
from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import StorageUnavailableError
from src.infrastructure.database.base import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Base repository class providing common append/read operations.

    Every SQLAlchemy failure is re-raised as StorageUnavailableError with the
    original exception chained; nothing is retried.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.

    Example:
        class TaxRateRepository(BaseRepository[TaxRateRecordModel]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, TaxRateRecordModel)
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    def _storage_error(
        self, operation: str, error: SQLAlchemyError
    ) -> StorageUnavailableError:
        logger.error(
            "{} {} failed: {}",
            self.model_class.__name__,
            operation,
            type(error).__name__,
        )
        return StorageUnavailableError(
            f"Record storage failed during {operation}",
            context={"model": self.model_class.__name__, "operation": operation},
            cause=error,
        )

    async def create(self, obj: T) -> T:
        """Append a new row.

        Args:
            obj: The model instance to persist.

        Returns:
            T: The instance with its ID and server defaults populated.

        Raises:
            StorageUnavailableError: If the database rejects or cannot take the row.
        """
        try:
            self.session.add(obj)
            # Flush to get the ID without committing
            await self.session.flush()
            await self.session.refresh(obj)
        except SQLAlchemyError as e:
            raise self._storage_error("create", e) from e

        logger.info("Created {} with ID: {}", self.model_class.__name__, obj.id)
        return obj

    async def commit(self) -> None:
        """Commit the session's pending writes.

        Raises:
            StorageUnavailableError: If the commit fails; the session is
                rolled back.
        """
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("commit", e) from e

    async def count(self, *criteria: Any) -> int:
        """Count rows matching the optional WHERE criteria."""
        stmt = select(func.count()).select_from(self.model_class).where(*criteria)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._storage_error("count", e) from e
        return result.scalar() or 0

    async def fetch(self, stmt: Select[tuple[T]], operation: str) -> Sequence[T]:
        """Execute a SELECT of this model and return the rows.

        Args:
            stmt: The statement to run.
            operation: Name of the calling operation, used in logs and errors.

        Raises:
            StorageUnavailableError: If the query fails.
        """
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise self._storage_error(operation, e) from e

        rows = result.scalars().all()
        logger.debug(
            "{} returned {} {} row(s)", operation, len(rows), self.model_class.__name__
        )
        return rows
