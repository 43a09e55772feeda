"""Unit tests for the SQL record store with a mocked session."""

from datetime import date
from typing import cast

import pytest
from pytest_mock import MockerFixture, MockType
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from src.core.exceptions import InvalidRecordError, StorageUnavailableError
from src.domain.tax_rates import Granularity, TaxRateRecord
from src.infrastructure.database.models import TaxRateRecordModel
from src.infrastructure.database.seed import INITIAL_TAX_RECORDS, seed_initial_records
from src.infrastructure.database.tax_records import TaxRateRepository


@pytest.fixture
def mock_async_session(mocker: MockerFixture) -> MockType:
    """AsyncSession mock with a synchronous ``add``."""
    session = mocker.AsyncMock()
    session.add = mocker.Mock()
    return cast("MockType", session)


def make_record(**overrides: object) -> TaxRateRecord:
    """Build a monthly TestCity record."""
    fields: dict[str, object] = {
        "jurisdiction": "TestCity",
        "granularity": Granularity.MONTHLY,
        "valid_from": date(2024, 6, 1),
        "valid_to": date(2024, 6, 30),
        "rate": 0.5,
    }
    fields.update(overrides)
    return TaxRateRecord(**fields)  # type: ignore[arg-type]


@pytest.mark.unit
class TestTaxRateRepositoryInsert:
    """Test inserting records."""

    @pytest.mark.asyncio
    async def test_insert_returns_new_id(
        self, mock_async_session: MockType, mocker: MockerFixture
    ) -> None:
        """The row is added and flushed, and its id is returned."""

        async def assign_id(obj: TaxRateRecordModel) -> None:
            obj.id = 42

        mock_async_session.refresh.side_effect = assign_id
        repository = TaxRateRepository(mock_async_session)

        record_id = await repository.insert(make_record(jurisdiction=" TestCity "))

        assert record_id == 42
        mock_async_session.flush.assert_awaited_once()
        row = mock_async_session.add.call_args.args[0]
        assert isinstance(row, TaxRateRecordModel)
        assert row.municipality == " TestCity "
        assert row.period_type == 3

    @pytest.mark.asyncio
    async def test_invalid_record_is_not_added(
        self, mock_async_session: MockType
    ) -> None:
        """Validation happens before anything reaches the session."""
        repository = TaxRateRepository(mock_async_session)

        with pytest.raises(InvalidRecordError):
            await repository.insert(make_record(rate=-1.0))

        mock_async_session.add.assert_not_called()
        mock_async_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_failure_becomes_storage_error(
        self, mock_async_session: MockType
    ) -> None:
        """SQLAlchemy failures surface as StorageUnavailableError."""
        cause = OperationalError("INSERT", {}, Exception("database is locked"))
        mock_async_session.flush.side_effect = cause
        repository = TaxRateRepository(mock_async_session)

        with pytest.raises(StorageUnavailableError) as exc_info:
            await repository.insert(make_record())

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.context == {
            "model": "TaxRateRecordModel",
            "operation": "create",
        }

    @pytest.mark.asyncio
    async def test_commit_failure_becomes_storage_error(
        self, mock_async_session: MockType
    ) -> None:
        """A failed commit is rolled back and reported as StorageUnavailableError."""
        cause = OperationalError("COMMIT", {}, Exception("database is locked"))
        mock_async_session.commit.side_effect = cause
        repository = TaxRateRepository(mock_async_session)

        with pytest.raises(StorageUnavailableError) as exc_info:
            await repository.commit()

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.context["operation"] == "commit"
        mock_async_session.rollback.assert_awaited_once()


@pytest.mark.unit
class TestTaxRateRepositoryQueries:
    """Test read operations."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("query_all", ("Copenhagen",)),
            ("query_overlapping", ("Copenhagen", date(2024, 1, 1))),
            ("list_records", ()),
            ("count", ()),
        ],
    )
    async def test_query_failures_become_storage_errors(
        self,
        mock_async_session: MockType,
        operation: str,
        args: tuple[object, ...],
    ) -> None:
        """Every read reports database failures the same way."""
        mock_async_session.execute.side_effect = SQLAlchemyError("no such table")
        repository = TaxRateRepository(mock_async_session)

        with pytest.raises(StorageUnavailableError) as exc_info:
            await getattr(repository, operation)(*args)

        assert exc_info.value.context["operation"] == operation

    @pytest.mark.asyncio
    async def test_rows_are_converted_to_records(
        self, mock_async_session: MockType, mocker: MockerFixture
    ) -> None:
        """Rows come back as immutable domain records with their ids."""
        row = TaxRateRecordModel.from_domain(make_record())
        row.id = 5
        result = mocker.Mock()
        result.scalars.return_value.all.return_value = [row]
        mock_async_session.execute.return_value = result
        repository = TaxRateRepository(mock_async_session)

        records = await repository.query_overlapping("TestCity", date(2024, 6, 15))

        assert records == [make_record()]
        assert records[0].record_id == 5
        assert records[0].granularity is Granularity.MONTHLY


@pytest.mark.unit
class TestSeed:
    """Test loading the initial records."""

    @pytest.mark.asyncio
    async def test_seeds_empty_store(self, mocker: MockerFixture) -> None:
        """An empty store receives every initial record."""
        repository = mocker.AsyncMock()
        repository.count.return_value = 0
        repository.insert.side_effect = range(1, len(INITIAL_TAX_RECORDS) + 1)

        inserted = await seed_initial_records(repository)

        assert inserted == len(INITIAL_TAX_RECORDS) == 5
        assert [c.args[0] for c in repository.insert.await_args_list] == list(
            INITIAL_TAX_RECORDS
        )

    @pytest.mark.asyncio
    async def test_skips_populated_store(self, mocker: MockerFixture) -> None:
        """Existing data is never duplicated."""
        repository = mocker.AsyncMock()
        repository.count.return_value = 3

        assert await seed_initial_records(repository) == 0
        repository.insert.assert_not_called()
