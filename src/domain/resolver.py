"""Resolution of the single applicable tax rate for a municipality and day.

Stores may hold any number of overlapping records. The resolver does not
require a partitioned calendar: it asks the store for every record covering
the day and takes the most specific one, relying on the store's ordering
contract (granularity ascending, then insertion order).
"""

from collections.abc import Sequence
from datetime import date

from loguru import logger

from src.core.exceptions import RateNotFoundError
from src.core.observability import trace_operation
from src.domain.stores import RecordStore
from src.domain.tax_rates import TaxRateRecord


class RateResolver:
    """Picks the applicable rate record out of a RecordStore.

    Args:
        store: The record store to read from. The resolver never writes.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def resolve(self, jurisdiction: str, day: date) -> TaxRateRecord:
        """Return the record that applies to ``jurisdiction`` on ``day``.

        Daily records outrank weekly ones, weekly outrank monthly and monthly
        outrank yearly. When several covering records share the winning
        granularity, the first inserted one wins.

        Args:
            jurisdiction: The municipality to look up.
            day: The calendar day to resolve.

        Returns:
            TaxRateRecord: The winning record.

        Raises:
            RateNotFoundError: If no record of the jurisdiction covers the day.
            StorageUnavailableError: If the store cannot be read.
        """
        with trace_operation(
            "rates.resolve", municipality=jurisdiction, date=day.isoformat()
        ) as span:
            candidates = await self.store.query_overlapping(jurisdiction, day)
            if not candidates:
                logger.debug(
                    "No rate record covers {} for {}",
                    day.isoformat(),
                    jurisdiction,
                    municipality=jurisdiction,
                )
                raise RateNotFoundError(
                    f"No tax rate for {jurisdiction} on {day.isoformat()}",
                    context={"municipality": jurisdiction, "date": day.isoformat()},
                )

            winner = candidates[0]
            span.set_attribute("candidates", len(candidates))
            span.set_attribute("granularity", winner.granularity.name)
            logger.debug(
                "Resolved {} rate {} out of {} candidate(s)",
                winner.granularity.name.lower(),
                winner.rate,
                len(candidates),
                municipality=jurisdiction,
                record_id=winner.record_id,
            )
            return winner

    async def resolve_all_for_jurisdiction(
        self, jurisdiction: str
    ) -> Sequence[TaxRateRecord]:
        """Return every record of ``jurisdiction`` without applying precedence."""
        return await self.store.query_all(jurisdiction)
