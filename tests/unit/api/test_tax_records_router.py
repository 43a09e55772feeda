"""Unit tests for the record routes helpers and wire schemas."""

from datetime import date

import orjson
import pytest

from src.api.middleware.request_logging import municipality_from_path
from src.api.routers.tax_records import parse_date
from src.api.schemas.tax_records import TaxRecordSchema
from src.api.utils.responses import ORJSONResponse
from src.core.exceptions import InvalidRecordError, ValidationError
from src.domain.tax_rates import Granularity, TaxRateRecord


@pytest.mark.unit
class TestParseDate:
    """Test parsing of the date path segment."""

    def test_valid_date(self) -> None:
        """YYYY-MM-DD segments parse into dates."""
        assert parse_date("2024-05-02") == date(2024, 5, 2)

    @pytest.mark.parametrize("value", ["invalid-date", "2024-13-01", "2024-02-30", ""])
    def test_invalid_date(self, value: str) -> None:
        """Anything else is a validation error."""
        with pytest.raises(ValidationError, match="Invalid date format") as exc_info:
            parse_date(value)

        assert exc_info.value.context == {"date": value}
        assert isinstance(exc_info.value.__cause__, ValueError)


@pytest.mark.unit
class TestTaxRecordSchema:
    """Test conversion between the wire shape and domain records."""

    def test_from_domain(self) -> None:
        """Domain records render with wire field names."""
        record = TaxRateRecord(
            "Aarhus", Granularity.YEARLY, date(2024, 1, 1), date(2024, 12, 31), 0.5, 7
        )

        schema = TaxRecordSchema.from_domain(record)

        assert schema.model_dump(mode="json") == {
            "municipality": "Aarhus",
            "period_type": 4,
            "date_start": "2024-01-01",
            "date_end": "2024-12-31",
            "tax_rate": 0.5,
        }

    def test_to_domain(self) -> None:
        """Submissions convert into records without an id."""
        schema = TaxRecordSchema.model_validate(
            {
                "municipality": "TestCity",
                "period_type": 3,
                "date_start": "2024-06-01",
                "date_end": "2024-06-30",
                "tax_rate": 0.5,
            }
        )

        record = schema.to_domain()

        assert record.granularity is Granularity.MONTHLY
        assert record.valid_from == date(2024, 6, 1)
        assert record.record_id is None

    def test_unknown_period_type(self) -> None:
        """Unknown period types are invalid records."""
        schema = TaxRecordSchema(
            municipality="TestCity",
            period_type=9,
            date_start=date(2024, 6, 1),
            date_end=date(2024, 6, 30),
            tax_rate=0.5,
        )

        with pytest.raises(InvalidRecordError):
            schema.to_domain()


@pytest.mark.unit
class TestHelpers:
    """Test small API helpers."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/records/Copenhagen", "Copenhagen"),
            ("/records/Copenhagen/2024-01-01", "Copenhagen"),
            ("/records", None),
            ("/records/", None),
            ("/health", None),
        ],
    )
    def test_municipality_from_path(self, path: str, expected: str | None) -> None:
        """The municipality is read from record routes only."""
        assert municipality_from_path(path) == expected

    def test_orjson_response_renders_dates(self) -> None:
        """Dates are rendered as YYYY-MM-DD with sorted keys."""
        response = ORJSONResponse(content={"b": date(2024, 1, 1), "a": 1})

        assert orjson.loads(response.body) == {"a": 1, "b": "2024-01-01"}
        assert response.body.startswith(b'{"a"')
