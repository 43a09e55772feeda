"""Wire schemas for tax-rate records.

The field names follow the service's public JSON shape: ``municipality``,
``period_type`` (1 = daily ... 4 = yearly), ``date_start``, ``date_end`` and
``tax_rate``, with dates rendered as ``YYYY-MM-DD``.

Only types are checked here. The record invariants (non-empty municipality,
ordered dates, known period type, non-negative rate) are enforced by the
record store, so the API reports them the same way as any other caller sees
them.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from src.domain.tax_rates import Granularity, TaxRateRecord


class TaxRecordSchema(BaseModel):
    """A tax-rate record as submitted and returned by the API."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "municipality": "Copenhagen",
                    "period_type": 4,
                    "date_start": "2024-01-01",
                    "date_end": "2024-12-31",
                    "tax_rate": 0.2,
                }
            ]
        }
    )

    municipality: str = Field(
        ...,
        description="Municipality the rate applies to",
        examples=["Copenhagen", "Aarhus"],
    )
    period_type: int = Field(
        ...,
        description="Period granularity: 1 daily, 2 weekly, 3 monthly, 4 yearly",
        examples=[1, 4],
    )
    date_start: date = Field(..., description="First day of the period (inclusive)")
    date_end: date = Field(..., description="Last day of the period (inclusive)")
    tax_rate: float = Field(..., description="Fractional tax rate", examples=[0.2])

    @classmethod
    def from_domain(cls, record: TaxRateRecord) -> "TaxRecordSchema":
        """Render a domain record in the wire shape."""
        return cls(
            municipality=record.jurisdiction,
            period_type=int(record.granularity),
            date_start=record.valid_from,
            date_end=record.valid_to,
            tax_rate=record.rate,
        )

    def to_domain(self) -> TaxRateRecord:
        """Convert the submission into a domain record.

        Raises:
            InvalidRecordError: If ``period_type`` is not 1, 2, 3 or 4.
        """
        return TaxRateRecord(
            jurisdiction=self.municipality,
            granularity=Granularity.from_rank(self.period_type),
            valid_from=self.date_start,
            valid_to=self.date_end,
            rate=self.tax_rate,
        )


class RecordCreatedResponse(BaseModel):
    """Acknowledgement of a stored record."""

    id: int = Field(..., description="Identifier assigned to the stored record")
