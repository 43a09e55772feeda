"""The record store contract and its in-memory implementation.

Any store handed to the resolver must honour the same ordering contract:
``query_overlapping`` returns the covering records sorted by granularity,
most specific first, and records of equal granularity in insertion order.
"""

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from loguru import logger

from src.domain.tax_rates import TaxRateRecord, validate_record


class RecordStore(Protocol):
    """Append-only, queryable collection of tax-rate records."""

    async def insert(self, record: TaxRateRecord) -> int:
        """Validate and append ``record``; return its new identifier."""
        ...

    async def query_all(self, jurisdiction: str) -> Sequence[TaxRateRecord]:
        """Return every record of ``jurisdiction`` in insertion order."""
        ...

    async def query_overlapping(
        self, jurisdiction: str, day: date
    ) -> Sequence[TaxRateRecord]:
        """Return the records of ``jurisdiction`` covering ``day``, by precedence."""
        ...

    async def list_records(self) -> Sequence[TaxRateRecord]:
        """Return every record of every jurisdiction in insertion order."""
        ...


class InMemoryRecordStore:
    """List-backed RecordStore.

    Overlap queries are a linear scan followed by a stable sort on
    granularity, which keeps insertion order among equal granularities.
    Identifiers start at 1 and increase by one per insert.
    """

    def __init__(self, records: Sequence[TaxRateRecord] = ()) -> None:
        self._records: list[TaxRateRecord] = []
        self._next_id = 1
        for record in records:
            self._append(record)

    def _append(self, record: TaxRateRecord) -> int:
        valid = validate_record(record)
        record_id = self._next_id
        self._next_id += 1
        self._records.append(
            TaxRateRecord(
                jurisdiction=valid.jurisdiction,
                granularity=valid.granularity,
                valid_from=valid.valid_from,
                valid_to=valid.valid_to,
                rate=valid.rate,
                record_id=record_id,
            )
        )
        return record_id

    async def insert(self, record: TaxRateRecord) -> int:
        """Validate and append ``record``.

        Raises:
            InvalidRecordError: If the record is malformed; nothing is stored.
        """
        record_id = self._append(record)
        logger.debug(
            "Stored rate record {} in memory",
            record_id,
            municipality=record.jurisdiction,
        )
        return record_id

    async def query_all(self, jurisdiction: str) -> list[TaxRateRecord]:
        return [r for r in self._records if r.jurisdiction == jurisdiction]

    async def query_overlapping(
        self, jurisdiction: str, day: date
    ) -> list[TaxRateRecord]:
        covering = (
            r for r in self._records if r.jurisdiction == jurisdiction and r.covers(day)
        )
        return sorted(covering, key=lambda r: r.granularity)

    async def list_records(self) -> list[TaxRateRecord]:
        return list(self._records)
