"""Initial rate records loaded into an empty store at startup."""

from collections.abc import Sequence
from datetime import date

from loguru import logger

from src.domain.stores import RecordStore
from src.domain.tax_rates import Granularity, TaxRateRecord
from src.infrastructure.database.tax_records import TaxRateRepository

_YEAR_START = date(2024, 1, 1)
_YEAR_END = date(2024, 12, 31)

INITIAL_TAX_RECORDS: tuple[TaxRateRecord, ...] = (
    TaxRateRecord("Copenhagen", Granularity.YEARLY, _YEAR_START, _YEAR_END, 0.2),
    TaxRateRecord(
        "Copenhagen", Granularity.MONTHLY, date(2024, 5, 1), date(2024, 5, 31), 0.4
    ),
    TaxRateRecord("Copenhagen", Granularity.DAILY, _YEAR_START, _YEAR_START, 0.1),
    TaxRateRecord(
        "Copenhagen", Granularity.DAILY, date(2024, 12, 25), date(2024, 12, 25), 0.1
    ),
    TaxRateRecord("Aarhus", Granularity.YEARLY, _YEAR_START, _YEAR_END, 0.5),
)


async def insert_records(
    store: RecordStore, records: Sequence[TaxRateRecord]
) -> list[int]:
    """Insert ``records`` one by one and return their identifiers."""
    return [await store.insert(record) for record in records]


async def seed_initial_records(repository: TaxRateRepository) -> int:
    """Load INITIAL_TAX_RECORDS when the table holds no rows yet.

    Returns:
        int: The number of records inserted (0 when the table was not empty).
    """
    existing = await repository.count()
    if existing:
        logger.info("Skipping seed, {} rate record(s) already stored", existing)
        return 0

    ids = await insert_records(repository, INITIAL_TAX_RECORDS)
    logger.info("Seeded {} initial rate record(s)", len(ids))
    return len(ids)
