"""SQL-backed record store for tax-rate records.

The overlap query pushes the precedence order into SQL: rows covering the
day are sorted by ``period_type`` and then by ``id``. Since ids grow with
every insert, equal granularities come back in insertion order, which is the
tie-break the resolver relies on.
"""

from datetime import date

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.tax_rates import TaxRateRecord, validate_record
from src.infrastructure.database.models import TaxRateRecordModel
from src.infrastructure.database.repository import BaseRepository


class TaxRateRepository(BaseRepository[TaxRateRecordModel]):
    """RecordStore implementation on top of an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TaxRateRecordModel)

    async def insert(self, record: TaxRateRecord) -> int:
        """Validate and append a record.

        The row is flushed before returning, so queries issued afterwards on
        the same session already see it.

        Args:
            record: The record to store.

        Returns:
            int: The identifier assigned to the new row.

        Raises:
            InvalidRecordError: If the record is malformed; nothing is written.
            StorageUnavailableError: If the database cannot take the row.
        """
        valid = validate_record(record)
        row = await self.create(TaxRateRecordModel.from_domain(valid))
        logger.info(
            "Stored {} rate record",
            valid.granularity.name.lower(),
            municipality=valid.jurisdiction,
            record_id=row.id,
            date_start=valid.valid_from.isoformat(),
            date_end=valid.valid_to.isoformat(),
        )
        return row.id

    async def query_all(self, jurisdiction: str) -> list[TaxRateRecord]:
        """Return every record of ``jurisdiction`` in insertion order.

        Raises:
            StorageUnavailableError: If the query fails.
        """
        stmt = (
            select(TaxRateRecordModel)
            .where(TaxRateRecordModel.municipality == jurisdiction)
            .order_by(TaxRateRecordModel.id)
        )
        rows = await self.fetch(stmt, "query_all")
        return [row.to_domain() for row in rows]

    async def query_overlapping(
        self, jurisdiction: str, day: date
    ) -> list[TaxRateRecord]:
        """Return the records covering ``day``, most specific first.

        Raises:
            StorageUnavailableError: If the query fails.
        """
        stmt = (
            select(TaxRateRecordModel)
            .where(
                TaxRateRecordModel.municipality == jurisdiction,
                TaxRateRecordModel.date_start <= day,
                TaxRateRecordModel.date_end >= day,
            )
            .order_by(TaxRateRecordModel.period_type, TaxRateRecordModel.id)
        )
        rows = await self.fetch(stmt, "query_overlapping")
        return [row.to_domain() for row in rows]

    async def list_records(self) -> list[TaxRateRecord]:
        """Return every stored record in insertion order.

        Raises:
            StorageUnavailableError: If the query fails.
        """
        stmt = select(TaxRateRecordModel).order_by(TaxRateRecordModel.id)
        rows = await self.fetch(stmt, "list_records")
        return [row.to_domain() for row in rows]
