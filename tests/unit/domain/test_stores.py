"""Unit tests for the in-memory record store."""

from datetime import date

import pytest

from src.core.exceptions import InvalidRecordError
from src.domain.stores import InMemoryRecordStore
from src.domain.tax_rates import Granularity, TaxRateRecord


@pytest.mark.unit
class TestInMemoryRecordStore:
    """Test the list-backed RecordStore."""

    @pytest.mark.asyncio
    async def test_insert_assigns_sequential_ids(
        self, copenhagen_records: list[TaxRateRecord]
    ) -> None:
        """Identifiers start at 1 and grow by one per insert."""
        store = InMemoryRecordStore()

        ids = [await store.insert(record) for record in copenhagen_records]

        assert ids == [1, 2, 3, 4]
        stored = await store.list_records()
        assert [r.record_id for r in stored] == ids

    @pytest.mark.asyncio
    async def test_invalid_insert_stores_nothing(self) -> None:
        """A rejected record leaves the store untouched."""
        store = InMemoryRecordStore()
        bad = TaxRateRecord(
            "Copenhagen", Granularity.DAILY, date(2024, 2, 2), date(2024, 2, 1), 0.1
        )

        with pytest.raises(InvalidRecordError):
            await store.insert(bad)

        assert await store.list_records() == []
        assert await store.insert(
            TaxRateRecord(
                "Copenhagen", Granularity.DAILY, date(2024, 2, 1), date(2024, 2, 1), 0.1
            )
        ) == 1

    @pytest.mark.asyncio
    async def test_query_all_filters_by_jurisdiction(
        self, copenhagen_records: list[TaxRateRecord]
    ) -> None:
        """Only records of the requested jurisdiction come back, in order."""
        aarhus = TaxRateRecord(
            "Aarhus", Granularity.YEARLY, date(2024, 1, 1), date(2024, 12, 31), 0.5
        )
        store = InMemoryRecordStore([*copenhagen_records, aarhus])

        copenhagen = await store.query_all("Copenhagen")

        assert copenhagen == copenhagen_records
        assert await store.query_all("Aarhus") == [aarhus]
        assert await store.query_all("Odense") == []

    @pytest.mark.asyncio
    async def test_query_all_is_case_sensitive(
        self, copenhagen_records: list[TaxRateRecord]
    ) -> None:
        """Jurisdiction names are compared exactly."""
        store = InMemoryRecordStore(copenhagen_records)

        assert await store.query_all("copenhagen") == []

    @pytest.mark.asyncio
    async def test_jurisdiction_is_found_as_inserted(self) -> None:
        """A padded jurisdiction reads back under the same string."""
        store = InMemoryRecordStore()
        record = TaxRateRecord(
            " TestCity", Granularity.MONTHLY, date(2024, 6, 1), date(2024, 6, 30), 0.5
        )

        record_id = await store.insert(record)

        stored = await store.query_all(" TestCity")
        assert stored == [record]
        assert stored[0].record_id == record_id
        assert await store.query_overlapping(" TestCity", date(2024, 6, 15)) == [
            record
        ]
        assert await store.query_all("TestCity") == []

    @pytest.mark.asyncio
    async def test_query_overlapping_orders_by_granularity(
        self, copenhagen_records: list[TaxRateRecord]
    ) -> None:
        """Covering records come back most specific first."""
        store = InMemoryRecordStore(copenhagen_records)

        covering = await store.query_overlapping("Copenhagen", date(2024, 1, 1))

        assert [r.granularity for r in covering] == [
            Granularity.DAILY,
            Granularity.YEARLY,
        ]

    @pytest.mark.asyncio
    async def test_query_overlapping_keeps_insertion_order_on_ties(self) -> None:
        """Equal granularities keep the order they were inserted in."""
        first = TaxRateRecord(
            "Copenhagen", Granularity.WEEKLY, date(2024, 3, 4), date(2024, 3, 10), 0.3
        )
        second = TaxRateRecord(
            "Copenhagen", Granularity.WEEKLY, date(2024, 3, 6), date(2024, 3, 12), 0.35
        )
        store = InMemoryRecordStore([first, second])

        covering = await store.query_overlapping("Copenhagen", date(2024, 3, 7))

        assert [r.rate for r in covering] == [0.3, 0.35]
        assert [r.record_id for r in covering] == [1, 2]

    @pytest.mark.asyncio
    async def test_query_overlapping_excludes_non_covering(
        self, copenhagen_records: list[TaxRateRecord]
    ) -> None:
        """Records outside the day are not returned."""
        store = InMemoryRecordStore(copenhagen_records)

        assert await store.query_overlapping("Copenhagen", date(2023, 12, 31)) == []
        assert await store.query_overlapping("Aarhus", date(2024, 1, 1)) == []

    @pytest.mark.asyncio
    async def test_list_records_returns_a_copy(
        self, copenhagen_records: list[TaxRateRecord]
    ) -> None:
        """Mutating the returned list does not change the store."""
        store = InMemoryRecordStore(copenhagen_records)

        listed = await store.list_records()
        listed.clear()

        assert len(await store.list_records()) == len(copenhagen_records)
